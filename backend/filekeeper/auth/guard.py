"""Access-token gate for protected routes.

Usage:
    @router.get("/private", dependencies=[Depends(require_access_token)])
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Request

from ..errors import ForbiddenError, UnauthenticatedError
from .tokens import InvalidTokenError, TokenService, get_token_service

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the credential part of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


async def require_access_token(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    """Validate the bearer access token and expose its claims.

    The decoded claims are stored on ``request.state.user``.

    Raises:
        UnauthenticatedError: No bearer token was sent (401).
        ForbiddenError: The token is tampered or expired (403).
    """
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        raise UnauthenticatedError()
    try:
        claims = tokens.verify_access(token)
    except InvalidTokenError as e:
        logger.info("Rejected access token on %s: %s", request.url.path, e)
        raise ForbiddenError() from e
    request.state.user = claims
    return claims
