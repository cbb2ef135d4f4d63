"""Response cache - TTL-bound memoization of answers by normalized query."""

import hashlib
import logging
import re
import threading
import time
import unicodedata
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from ..models.answer import Answer, CachedResponse
from ..models.filters import SearchFilters

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class CacheStats:
    hits: int
    misses: int
    size: int
    evictions: int


def normalize_query(query: str) -> str:
    """NFKC, lower-case, trimmed, whitespace collapsed."""
    text = unicodedata.normalize("NFKC", query)
    return _WHITESPACE_RE.sub(" ", text.casefold()).strip()


class ResponseCache:
    """Thread-safe answer cache with lazy TTL expiry.

    Expired entries are treated as misses on read and removed. With
    ``max_entries`` set, least recently used entries are evicted on write.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            ttl_seconds: Entry lifetime.
            max_entries: Optional LRU bound; unbounded if None.
            clock: Monotonic time source.
        """
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._store: "OrderedDict[str, CachedResponse]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(query: str, filters: SearchFilters | None = None) -> str:
        """Derive a cache key; safe for any Unicode input."""
        digest = hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()
        if filters is not None and not filters.is_empty:
            return f"rag_{digest}_{filters.fingerprint()}"
        return f"rag_{digest}"

    def _expired(self, entry: CachedResponse, now: float) -> bool:
        return now - entry.created_at > self._ttl

    def get(self, key: str) -> Optional[CachedResponse]:
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._expired(entry, now):
                del self._store[key]
                self._misses += 1
                return None
            self._store.move_to_end(key)
            self._hits += 1
            return entry

    def put(self, key: str, answer: Answer) -> CachedResponse:
        entry = CachedResponse(cache_key=key, answer=answer, created_at=self._clock())
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            elif self._max_entries is not None and len(self._store) >= self._max_entries:
                self._store.popitem(last=False)
                self._evictions += 1
            self._store[key] = entry
        return entry

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def sweep(self) -> int:
        """Drop expired entries, returning how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._store.items() if self._expired(e, now)]
            for key in expired:
                del self._store[key]
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._store),
                evictions=self._evictions,
            )
