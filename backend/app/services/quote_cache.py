"""Short-lived in-memory cache for quotes and price history."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_QUOTE_TTL_SECONDS = 30
DEFAULT_HISTORY_TTL_SECONDS = 60


def quote_key(symbol: str) -> str:
    return f"quote:{symbol}"


def history_key(symbol: str, range_: str) -> str:
    return f"history:{symbol}:{range_}"


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl_seconds: float

    def is_valid(self, now: float) -> bool:
        return now - self.stored_at < self.ttl_seconds


class TTLCache:
    """Key/value store where every entry carries its own time-to-live.

    Expired entries are dropped lazily when read. There is no size bound; keys
    come from a small set of tracked symbols and ranges.
    """

    def __init__(
        self,
        default_ttl_seconds: float = DEFAULT_QUOTE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Store a value, replacing any previous entry under the same key."""
        if ttl_seconds is None:
            ttl_seconds = self.default_ttl_seconds
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl_seconds=ttl_seconds)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl_seconds: Optional[float] = None,
    ) -> Any:
        """Return the cached value or await `fetch` and cache its result.

        Exceptions from `fetch` propagate and nothing is stored.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        value = await fetch()
        self.set(key, value, ttl_seconds)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for entry in self._entries.values() if entry.is_valid(now))
