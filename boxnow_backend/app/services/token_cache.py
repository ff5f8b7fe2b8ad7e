"""
Single-slot bearer token cache

States: EMPTY -> VALID(token, expires_at). A refresh replaces the slot
wholesale. There is no lock around refresh: two callers that both see an
expired slot each exchange credentials and the last write wins, which is
harmless because every issued token is independently valid.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from app.core.utils import epoch_ms

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class TokenGrant:
    """What the credential exchange endpoint hands back."""
    access_token: str
    expires_in: int = DEFAULT_TOKEN_LIFETIME_SECONDS


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at_epoch_ms: int


class TokenCache:
    """
    Owns one Credential and knows how to refresh it.

    Args:
        exchange: coroutine function performing the client-credentials exchange
        safety_margin_seconds: stored expiry is pulled forward by this much
        clock: returns current epoch milliseconds (injectable for tests)
    """

    def __init__(
        self,
        exchange: Callable[[], Awaitable[TokenGrant]],
        safety_margin_seconds: int = 60,
        clock: Callable[[], int] = epoch_ms,
    ):
        self._exchange = exchange
        self._margin_ms = max(0, safety_margin_seconds) * 1000
        self._clock = clock
        self._credential: Optional[Credential] = None
        self.refresh_count = 0

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def is_valid(self) -> bool:
        return self._credential is not None and self._clock() < self._credential.expires_at_epoch_ms

    async def acquire(self) -> str:
        """Return a usable bearer token, exchanging credentials when needed."""
        if self.is_valid():
            return self._credential.token

        grant = await self._exchange()
        now = self._clock()
        lifetime_ms = max(0, int(grant.expires_in) * 1000 - self._margin_ms)
        self._credential = Credential(token=grant.access_token, expires_at_epoch_ms=now + lifetime_ms)
        self.refresh_count += 1

        logger.info(f"BoxNow token refreshed, valid for {lifetime_ms // 1000}s")
        return grant.access_token

    def invalidate(self) -> None:
        """Drop the cached credential (e.g. after the carrier rejects it)."""
        self._credential = None
