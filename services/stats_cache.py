"""
Time-bounded in-memory cache for statistics bundles.

Entries live for a fixed TTL. Expired entries are dropped when a lookup
finds them and by a periodic sweep, so keys that are never queried again
do not pile up.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the absolute time it stops being valid."""
    key: str
    payload: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """
    Thread-safe key/value cache with per-entry expiry.

    An entry is valid while ``now < expires_at``. The clock is injectable
    so tests can move time forward without sleeping.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            ttl: Time-to-live in seconds, stamped on every set()
            clock: Returns the current time in seconds (wall clock by default)
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        """Return the payload for key, or None if absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                return None
            return entry.payload

    def set(self, key: str, payload: Any) -> CacheEntry:
        """Store payload under key, overwriting any previous entry."""
        entry = CacheEntry(key=key, payload=payload, expires_at=self._clock() + self.ttl)
        with self._lock:
            self._entries[key] = entry
        return entry

    def peek(self, key: str) -> Optional[CacheEntry]:
        """
        Return the live entry for key without removing or extending it.

        Expired entries are reported as absent but left for get()/sweep().
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or entry.is_expired(now):
            return None
        return entry

    def remaining(self, entry: CacheEntry) -> float:
        """Seconds until entry expires, never negative."""
        return max(0.0, entry.expires_at - self._clock())

    def invalidate(self, key: str) -> bool:
        """Remove key if present. Returns True if something was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_all(self) -> int:
        """Remove every entry. Returns how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def sweep(self) -> int:
        """Evict every expired entry. Returns how many were evicted."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Cache sweep evicted %d expired entries", len(expired))
        return len(expired)
