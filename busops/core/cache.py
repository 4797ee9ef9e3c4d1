"""In-process response cache with a fixed TTL and substring invalidation.

The proxy serves workspace query results from here so repeated dashboard
loads do not hit the upstream API. Entries are keyed by resource id
(``db_<databaseId>``) and expire after ``ttl`` seconds; writes invalidate
by substring so the next read after a write always goes upstream.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from busops.core.logging import get_logger, log_cache_operation

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A stored payload with its insertion time and lifetime."""

    value: Any
    stored_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class ResponseCache:
    """Key-value cache of upstream payloads.

    Entries are replaced as whole objects under a lock, so a reader sees
    either the old entry or the new one for a key, never a mix.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for ``key`` or None when missing or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_fresh(now):
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
            else:
                self._hits += 1

        log_cache_operation(logger, "get", key, hit=entry is not None)
        return entry.value if entry is not None else None

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        entry = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=self.ttl_seconds if ttl is None else ttl,
        )
        with self._lock:
            self._entries[key] = entry
        log_cache_operation(logger, "put", key, ttl=entry.ttl)

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """Remove keys containing ``pattern``, or everything when no pattern is given."""
        with self._lock:
            if pattern is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [key for key in self._entries if pattern in key]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)

        log_cache_operation(logger, "invalidate", pattern or "*", deleted=removed)
        return removed

    def size(self) -> int:
        """Number of entries currently held, expired ones included until read."""
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.ttl_seconds,
            }
