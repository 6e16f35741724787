"""JWT issuance and verification for access and refresh tokens.

Access and refresh tokens are signed with different secrets, so a refresh
token can never pass as an access token or the other way round. Both carry
the ``userId`` claim; refresh tokens also carry a random ``jti`` so that two
tokens issued to the same user in the same second are still distinct.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from ..config import AppConfig, get_config


class InvalidTokenError(Exception):
    """Signature, expiry or claim check failed."""


class TokenService:
    """Signs and verifies the two token kinds."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=10),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
    ) -> None:
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._algorithm = algorithm

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> "TokenService":
        config = config or get_config()
        return cls(
            access_secret=config.secrets.jwt.access_secret,
            refresh_secret=config.secrets.jwt.refresh_secret,
            access_ttl=timedelta(minutes=config.auth.access_token_expire_minutes),
            refresh_ttl=timedelta(days=config.auth.refresh_token_expire_days),
            algorithm=config.secrets.jwt.algorithm,
        )

    def _sign(self, claims: Dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(claims, iat=now, exp=now + ttl)
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def _verify(self, token: str, secret: str) -> Dict[str, Any]:
        try:
            claims = jwt.decode(token, secret, algorithms=[self._algorithm])
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e
        if "userId" not in claims:
            raise InvalidTokenError("Token is missing the userId claim")
        return claims

    def issue_access(self, user_id: int) -> str:
        return self._sign({"userId": user_id}, self._access_secret, self._access_ttl)

    def issue_refresh(self, user_id: int) -> str:
        claims = {"userId": user_id, "jti": uuid.uuid4().hex}
        return self._sign(claims, self._refresh_secret, self._refresh_ttl)

    def verify_access(self, token: str) -> Dict[str, Any]:
        """Return the claims of a valid access token.

        Raises:
            InvalidTokenError: If the token is malformed, tampered or expired.
        """
        return self._verify(token, self._access_secret)

    def verify_refresh(self, token: str) -> Dict[str, Any]:
        """Return the claims of a valid refresh token.

        Raises:
            InvalidTokenError: If the token is malformed, tampered or expired.
        """
        return self._verify(token, self._refresh_secret)


def get_token_service() -> TokenService:
    return TokenService.from_config()
