"""
In-memory embedding cache.

Entries are keyed by a SHA-256 digest of "model:text", expire after a TTL,
and the oldest slice is evicted when the cache is full. One instance is
meant to be shared by the services of a process; a lock guards every
operation so it can also be used from worker threads.
"""

import hashlib
import math
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from kbgraph.config import EmbeddingCacheConfig
from kbgraph.models.embedding import EmbeddingCacheEntry, EmbeddingCacheStats
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def cache_key(text: str, model: str) -> str:
    """Stable, fixed-length key for a (model, text) pair."""
    return hashlib.sha256(f"{model}:{text}".encode()).hexdigest()


class EmbeddingCache:
    """
    TTL cache of embedding vectors.

    Expired entries are treated as absent on read and removed lazily.
    Inserting into a full cache evicts the oldest eviction_fraction of
    entries (by creation time) first.
    """

    def __init__(
        self,
        config: EmbeddingCacheConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config or EmbeddingCacheConfig()
        self._clock = clock
        self._entries: dict[str, EmbeddingCacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def max_size(self) -> int:
        return self.config.max_size

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.config.ttl_seconds)

    def _get_live(self, key: str) -> EmbeddingCacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, text: str, model: str) -> list[float] | None:
        """Cached vector, or None when absent or expired."""
        with self._lock:
            entry = self._get_live(cache_key(text, model))
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return list(entry.embedding)

    def set(self, text: str, model: str, embedding: list[float]) -> None:
        key = cache_key(text, model)
        now = self._clock()

        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._evict_oldest()

            self._entries[key] = EmbeddingCacheEntry(
                key=key,
                embedding=list(embedding),
                created_at=now,
                expires_at=now + self.ttl,
            )

    def has(self, text: str, model: str) -> bool:
        with self._lock:
            return self._get_live(cache_key(text, model)) is not None

    def delete(self, text: str, model: str) -> bool:
        with self._lock:
            return self._entries.pop(cache_key(text, model), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def cleanup(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Removed {len(expired)} expired embeddings from cache")
        return len(expired)

    def get_stats(self) -> EmbeddingCacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            return EmbeddingCacheStats(
                size=len(self._entries),
                max_size=self.max_size,
                ttl_seconds=self.config.ttl_seconds,
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / lookups if lookups else 0.0,
            )

    def _evict_oldest(self) -> None:
        # Caller holds the lock
        count = max(1, math.ceil(self.max_size * self.config.eviction_fraction))
        oldest = sorted(self._entries.values(), key=lambda entry: entry.created_at)[:count]
        for entry in oldest:
            del self._entries[entry.key]

        logger.debug(
            "Evicted {} oldest embeddings from cache",
            len(oldest),
            extra={"max_size": self.max_size},
        )
