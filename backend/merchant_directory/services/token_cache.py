"""Bearer token cache for the franchise directory API."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable

from merchant_directory.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthToken:
    """A bearer credential issued by the directory service."""

    value: str
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCache:
    """
    Holds one bearer token, refreshed lazily.

    The token is reused while ``now < expires_at - drift_buffer``; after that,
    or after ``invalidate()``, the next ``get_token()`` authenticates again.
    ``get_token()`` returns None when no token can be obtained.
    """

    def __init__(
        self,
        authenticate: Callable[[], AuthToken | None],
        drift_buffer: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._authenticate = authenticate
        self.drift_buffer = drift_buffer
        self._clock = clock
        self._token: AuthToken | None = None
        self._lock = threading.Lock()

    def _is_fresh(self, token: AuthToken | None) -> bool:
        return token is not None and self._clock() < token.expires_at - self.drift_buffer

    def get_token(self) -> AuthToken | None:
        token = self._token
        if self._is_fresh(token):
            return token

        with self._lock:
            # Another caller may have refreshed while we waited
            if self._is_fresh(self._token):
                return self._token
            try:
                token = self._authenticate()
            except Exception as e:
                logger.error(f"Franchise API authentication failed: {e}")
                token = None
            self._token = token
            return token

    def invalidate(self) -> None:
        self._token = None


@lru_cache
def get_token_cache() -> TokenCache:
    """Process-wide token cache shared by imports and single-outlet lookups."""
    # Imported here: the client module builds on this one
    from merchant_directory.services.directory_client import authenticate

    settings = get_settings()
    return TokenCache(
        authenticate=authenticate,
        drift_buffer=timedelta(seconds=settings.token_drift_buffer_seconds),
    )
