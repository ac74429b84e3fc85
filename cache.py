"""In-memory TTL cache for per-source alert lists.

Keys are (source name, timeframe) pairs. Entries expire lazily: an
expired entry is dropped the next time it is read. There is no size
bound; the key space is the registry size times four timeframes.

Thread safety comes from a single lock around the dict. Concurrent
gather tasks write disjoint keys, so the lock is never contended for
long.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Hashable

from clock import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass(frozen=True)
class CacheEntry:
    key: Hashable
    value: Any
    expires_at: datetime


class TTLCache:
    """Key -> (value, expiry) store with expiry-on-read.

    Example:
        >>> cache = TTLCache()
        >>> cache.set(("CoinDesk", "24h"), [], ttl=60)
        >>> cache.get(("CoinDesk", "24h"))
        []
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._entries: dict[Hashable, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any | None:
        """Return the stored value, or None if absent or expired."""
        now = self._clock.now()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now >= entry.expires_at:
                del self._entries[key]
                logger.debug("Cache entry expired | key=%s", key)
                return None
            return entry.value

    def set(self, key: Hashable, value: Any, ttl: float = DEFAULT_TTL_SECONDS) -> None:
        """Store value under key until now + ttl seconds, replacing any prior entry."""
        expires_at = self._clock.now() + timedelta(seconds=ttl)
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=expires_at)

    def entry(self, key: Hashable) -> CacheEntry | None:
        """Raw entry lookup without expiry checks."""
        with self._lock:
            return self._entries.get(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
