"""Execution block hash per slot, with backfill over empty or unseen slots.

An empty slot has the same execution head as its nearest non-empty ancestor,
so a slot with no observed block inherits the most recent earlier hash. Once
resolved, the inherited hash is written into every slot between the ancestor
and the queried slot so the next lookup is a direct hit. When a block is
observed later inside such a run, the inherited entries after it are rewritten
up to the next observed slot.
"""

import logging
import threading
from typing import Optional

from .. import metrics
from ..exceptions import NotFoundError
from ..types import Hash32, Slot
from .lru import DEFAULT_CACHE_SIZE, SlotIndexedCache

logger = logging.getLogger(__name__)


class ExecutionHashIndex:
    def __init__(self, capacity: int = DEFAULT_CACHE_SIZE):
        self._hashes: SlotIndexedCache[Slot, Hash32] = SlotIndexedCache("execution_hash", capacity)
        # Slots whose hash came from a block; every other entry was inherited.
        self._observed: set[int] = set()
        # Held for a whole put() or resolve() so rewrites never interleave.
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._hashes.capacity

    def get(self, slot: Slot) -> Optional[Hash32]:
        return self._hashes.get(slot)

    def put(self, slot: Slot, block_hash: Hash32) -> None:
        """Record the hash of a block observed at slot.

        Inherited entries after slot, up to the next observed slot, are
        rewritten to the new hash.
        """
        observed = int(slot)
        with self._lock:
            self._store(observed, block_hash)
            self._observed.add(observed)
            later = [s for s in self._observed if s > observed]
            bound = min(later) if later else None
            stale = [
                s for s in self._hashes.keys()
                if s > observed and (bound is None or s < bound) and s not in self._observed
            ]
            for inherited in stale:
                self._store(inherited, block_hash)
        if stale:
            logger.debug(f"Rewrote {len(stale)} inherited execution hashes after slot {observed}")

    def is_observed(self, slot: Slot) -> bool:
        with self._lock:
            return int(slot) in self._observed

    def __len__(self) -> int:
        return len(self._hashes)

    def _store(self, slot: int, block_hash: Hash32) -> None:
        evicted = self._hashes.put(slot, block_hash)
        if evicted is not None:
            self._observed.discard(evicted)

    def resolve(self, slot: Slot) -> Hash32:
        """Execution hash as of slot, inheriting from the nearest earlier slot.

        Raises:
            NotFoundError: nothing at or before slot has been observed
        """
        with self._lock:
            block_hash = self._hashes.get(slot)
            if block_hash is not None:
                return block_hash

            ancestor = self._hashes.nearest_below(slot)
            if ancestor is None:
                raise NotFoundError(f"No execution hash known at or before slot {slot}")

            block_hash = self._hashes.peek(ancestor)
            if block_hash is None:
                raise NotFoundError(f"Execution hash at slot {ancestor} was evicted during backfill")
            # Only the most recent `capacity` slots can be held at once.
            first = max(ancestor + 1, int(slot) - self.capacity + 1)
            for filled in range(first, int(slot) + 1):
                self._store(filled, block_hash)

        filled_count = int(slot) - first + 1
        logger.debug(
            f"Backfilled execution hash from slot {ancestor} into {filled_count} slots up to {slot}"
        )
        metrics.record_backfill(filled_count)
        return block_hash
