"""Authentication module.

Password hashing (bcrypt), JWT access/refresh tokens, the refresh-token
registry and the bearer-token guard used by the file routes.
"""

from .guard import require_access_token
from .registry import InMemoryRefreshTokenRegistry, get_refresh_registry, set_refresh_registry
from .router import router
from .tokens import InvalidTokenError, TokenService

__all__ = [
    "InMemoryRefreshTokenRegistry",
    "InvalidTokenError",
    "TokenService",
    "get_refresh_registry",
    "require_access_token",
    "router",
    "set_refresh_registry",
]
