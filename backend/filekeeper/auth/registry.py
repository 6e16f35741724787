"""Registry of refresh tokens that may still mint access tokens.

Tokens are held in memory only and live for the process lifetime; a
restart invalidates every outstanding refresh token. The registry is
reached through ``get_refresh_registry`` so a persistent implementation can
be installed with ``set_refresh_registry`` without touching the handlers.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Set

logger = logging.getLogger(__name__)


class RefreshTokenRegistry(Protocol):
    async def register(self, token: str) -> None: ...

    async def is_valid(self, token: str) -> bool: ...

    async def revoke(self, token: str) -> None: ...

    async def clear(self) -> None: ...


class InMemoryRefreshTokenRegistry:
    """asyncio-safe in-memory set of refresh tokens."""

    def __init__(self) -> None:
        self._tokens: Set[str] = set()
        self._lock = asyncio.Lock()

    async def register(self, token: str) -> None:
        async with self._lock:
            self._tokens.add(token)
        logger.debug("Refresh token registered (%d active)", len(self._tokens))

    async def is_valid(self, token: str) -> bool:
        async with self._lock:
            return token in self._tokens

    async def revoke(self, token: str) -> None:
        """Remove *token* (no-op if absent)."""
        async with self._lock:
            self._tokens.discard(token)
        logger.debug("Refresh token revoked (%d active)", len(self._tokens))

    async def clear(self) -> None:
        async with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        return len(self._tokens)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_registry: Optional[RefreshTokenRegistry] = None


def get_refresh_registry() -> RefreshTokenRegistry:
    """Return the installed registry, creating the in-memory one on first use."""
    global _registry
    if _registry is None:
        _registry = InMemoryRefreshTokenRegistry()
    return _registry


def set_refresh_registry(registry: Optional[RefreshTokenRegistry]) -> None:
    """Install a registry implementation (None resets to a fresh default)."""
    global _registry
    _registry = registry
