"""Auth router for registration, signin and token lifecycle.

Endpoints:
    POST   /users/signup      - Register a user
    POST   /users/signin      - Exchange credentials for access + refresh tokens
    POST   /signin/new_token  - Exchange a refresh token for a new access token
    DELETE /logout            - Revoke a refresh token
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from . import service
from .registry import RefreshTokenRegistry, get_refresh_registry
from .schemas import (
    AccessTokenResponse,
    MessageResponse,
    SigninRequest,
    SignupRequest,
    TokenPairResponse,
    TokenRequest,
)
from .service import UserStore
from .tokens import TokenService, get_token_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def get_user_store() -> UserStore:
    return UserStore.get_instance()


@router.post("/users/signup", response_model=MessageResponse)
async def signup(
    request: SignupRequest,
    users: UserStore = Depends(get_user_store),
) -> MessageResponse:
    """Register a new user.

    The body is validated before anything is written; a failing field
    yields 400 with the field named in ``error``.
    """
    await service.signup(request, users)
    return MessageResponse(message="User registered successfully")


@router.post("/users/signin", response_model=TokenPairResponse)
async def signin(
    request: SigninRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
    registry: RefreshTokenRegistry = Depends(get_refresh_registry),
) -> TokenPairResponse:
    """Sign in with an email or phone number.

    Returns:
        TokenPairResponse with a 10-minute access token and a 7-day refresh
        token. The refresh token is usable until logout or process restart.
    """
    access_token, refresh_token = await service.signin(
        identifier=request.identifier,
        password=request.password,
        users=users,
        tokens=tokens,
        registry=registry,
    )
    return TokenPairResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/signin/new_token", response_model=AccessTokenResponse)
async def new_token(
    request: Optional[TokenRequest] = None,
    tokens: TokenService = Depends(get_token_service),
    registry: RefreshTokenRegistry = Depends(get_refresh_registry),
) -> AccessTokenResponse:
    """Mint a new access token from a registered refresh token.

    401 when no token is sent, 403 when it is unregistered or invalid.
    """
    token = request.token if request else None
    access_token = await service.refresh_access_token(token, tokens, registry)
    return AccessTokenResponse(access_token=access_token)


@router.delete("/logout", status_code=204)
async def logout(
    request: Optional[TokenRequest] = None,
    registry: RefreshTokenRegistry = Depends(get_refresh_registry),
) -> Response:
    """Revoke a refresh token. Always answers 204."""
    await service.logout(request.token if request else None, registry)
    return Response(status_code=204)
