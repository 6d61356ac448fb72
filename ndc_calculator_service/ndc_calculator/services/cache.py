"""
In-process TTL + LRU cache shared by every lookup in the service.

Entries expire lazily: `get` treats an expired entry as absent and drops it.
When a new key is inserted at capacity, the least-recently-accessed entry is
evicted. All bookkeeping happens under one lock so concurrent readers never
see a half-written or half-evicted entry.
"""
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    last_accessed_at: float


class TTLCache:
    def __init__(self, max_entries: int = 1000, clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss: %s", key)
                return default

            now = self._clock()
            if now > entry.expires_at:
                del self._entries[key]
                logger.debug("Cache entry expired on access: %s", key)
                return default

            entry.last_accessed_at = now
            self._entries.move_to_end(key)
            logger.debug("Cache hit: %s", key)
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)

            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache entry evicted (LRU): %s", evicted)

            self._entries[key] = CacheEntry(value=value, expires_at=now + ttl_seconds, last_accessed_at=now)
            logger.debug("Cache set: %s (TTL: %ss)", key, ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                logger.debug("Cache delete: %s", key)

    def clear(self) -> None:
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        logger.info("Cache cleared (%d entries removed)", size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        # peek: membership never refreshes recency
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() <= entry.expires_at

    def _purge_expired(self, now: float) -> None:
        # caller holds the lock
        expired = [k for k, e in self._entries.items() if now > e.expires_at]
        for k in expired:
            del self._entries[k]
            logger.debug("Cache entry expired: %s", k)
