"""Bounded slot-keyed index with least-recently-used eviction."""

import logging
import threading
from collections import OrderedDict
from typing import Generic, Hashable, Iterator, Optional, TypeVar

from .. import metrics

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_CACHE_SIZE = 1024


class SlotIndexedCache(Generic[K, V]):
    """Fixed-capacity key/value index keyed by slot, epoch or block number.

    Keys are normalized to plain ints. ``get`` counts as an access and moves
    the entry to the most-recently-used end, so reads take the lock as well
    as writes; no method awaits while holding it.
    """

    eviction_policy = "lru"

    def __init__(self, name: str, capacity: int = DEFAULT_CACHE_SIZE):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.name = name
        self.capacity = capacity
        self._lock = threading.RLock()
        self._entries: "OrderedDict[int, V]" = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        """Return the value for key and mark it most recently used."""
        k = int(key)
        with self._lock:
            value = self._entries.get(k)
            if value is not None:
                self._entries.move_to_end(k)
        metrics.record_cache_lookup(self.name, value is not None)
        return value

    def peek(self, key: K) -> Optional[V]:
        """Return the value for key without touching its recency."""
        with self._lock:
            return self._entries.get(int(key))

    def put(self, key: K, value: V) -> Optional[int]:
        """Insert or overwrite key. Returns the evicted key, if any."""
        if value is None:
            raise ValueError("cannot cache None")
        k = int(key)
        evicted = None
        with self._lock:
            self._entries[k] = value
            self._entries.move_to_end(k)
            if len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
            size = len(self._entries)
        if evicted is not None:
            logger.debug(f"{self.name} cache evicted key {evicted}")
        metrics.update_cache_size(self.name, size)
        return evicted

    def nearest_below(self, key: K) -> Optional[int]:
        """Largest cached key strictly below key, without touching recency."""
        k = int(key)
        with self._lock:
            lower = [cached for cached in self._entries if cached < k]
        return max(lower) if lower else None

    def keys(self) -> list[int]:
        """Snapshot of keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return int(key) in self._entries  # type: ignore[call-overload]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[int]:
        return iter(self.keys())
