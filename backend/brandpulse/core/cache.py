"""
In-memory mention cache with a soft TTL and a stale-fallback window.

Entries are keyed by (source, brand). `get` only serves entries inside their
soft TTL; `get_stale` serves anything younger than `max_stale_age` and is
meant for the error path when a source cannot be fetched. Failures are never
cached and never evict an entry. Nothing is persisted across restarts.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from brandpulse.config import CACHE_MAX_STALE_AGE, CACHE_SOFT_TTL
from brandpulse.models import Mention

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


def get_cache_key(source: str, brand: str) -> CacheKey:
    return (source.lower(), brand.lower())


@dataclass
class CacheEntry:
    data: List[Mention]
    stored_at: float
    soft_expires_at: float


class MentionCache:
    """Thread-safe (source, brand) -> mentions store."""

    def __init__(
        self,
        soft_ttl: float = CACHE_SOFT_TTL,
        max_stale_age: float = CACHE_MAX_STALE_AGE,
        clock: Callable[[], float] = time.time,
    ):
        self.soft_ttl = soft_ttl
        self.max_stale_age = max_stale_age
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

        # Counters for monitoring
        self.hits = 0
        self.misses = 0

    def _entry(self, source: str, brand: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(get_cache_key(source, brand))

    def get(self, source: str, brand: str) -> Optional[List[Mention]]:
        """Cached mentions if still inside the soft TTL, else None."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(get_cache_key(source, brand))
            if entry is None or now >= entry.soft_expires_at:
                self.misses += 1
                return None
            self.hits += 1
            data = list(entry.data)

        logger.debug("Cache HIT for %s/%s", source, brand)
        return data

    def get_stale(self, source: str, brand: str) -> Optional[List[Mention]]:
        """Cached mentions regardless of soft expiry, as long as they are younger than max_stale_age."""
        entry = self._entry(source, brand)
        if entry is None:
            return None
        if self._clock() - entry.stored_at < self.max_stale_age:
            return list(entry.data)
        return None

    def put(self, source: str, brand: str, data: List[Mention], ttl: Optional[float] = None) -> None:
        """Store (overwriting) the mentions for a key."""
        now = self._clock()
        entry = CacheEntry(
            data=list(data),
            stored_at=now,
            soft_expires_at=now + (self.soft_ttl if ttl is None else ttl),
        )
        with self._lock:
            self._entries[get_cache_key(source, brand)] = entry

    def has(self, source: str, brand: str) -> bool:
        """True if an entry exists, expired or not."""
        return self._entry(source, brand) is not None

    def age(self, source: str, brand: str) -> Optional[float]:
        """Seconds since the entry was stored, or None."""
        entry = self._entry(source, brand)
        if entry is None:
            return None
        return self._clock() - entry.stored_at

    def format_age(self, source: str, brand: str) -> str:
        age = self.age(source, brand)
        if age is None:
            return "No cache"

        minutes = int(age // 60)
        hours = minutes // 60
        if hours > 0:
            return f"{hours}h {minutes % 60}m ago"
        return f"{minutes}m ago"

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        with self._lock:
            keys = list(self._entries)
            hits, misses = self.hits, self.misses
        return {
            "entries": len(keys),
            "keys": [f"{source}_{brand}" for source, brand in keys],
            "hits": hits,
            "misses": misses,
        }

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._entries)
