"""Cache of proposers, blocks and validators fetched from a remote beacon node."""

import logging
import threading
from typing import Iterable, Optional

from .. import metrics
from ..beacon.client import RemoteBeaconClient
from ..config import DEFAULT_BLOCK_VERSIONS
from ..exceptions import NotFoundError
from ..types import (
    BLSPubkey,
    Epoch,
    Hash32,
    SignedBeaconBlock,
    Slot,
    ValidatorInfo,
    ValidatorRecord,
    ValidatorStatus,
    decode_signed_block,
)
from .execution import ExecutionHashIndex
from .lru import DEFAULT_CACHE_SIZE, SlotIndexedCache

logger = logging.getLogger(__name__)


class ConsensusCache:
    """Slot-indexed view of the chain backed by a RemoteBeaconClient.

    Indices:
    - proposers: slot -> ValidatorInfo (bounded)
    - blocks: slot -> SignedBeaconBlock (bounded)
    - block numbers: execution block number -> slot (bounded); may point at
      a block that has since been evicted
    - validators: public key -> ValidatorRecord (unbounded, replaced wholesale)
    - execution hashes: slot -> block hash (bounded, backfill policy only)

    Remote calls are made without holding any index lock; results are
    committed afterwards. There is no atomicity across indices.
    """

    def __init__(
        self,
        client: RemoteBeaconClient,
        cache_size: int = DEFAULT_CACHE_SIZE,
        block_versions: Iterable[str] = DEFAULT_BLOCK_VERSIONS,
        backfill: bool = False,
    ):
        self.client = client
        self.block_versions = tuple(block_versions)
        self.proposers: SlotIndexedCache[Slot, ValidatorInfo] = SlotIndexedCache("proposer", cache_size)
        self.blocks: SlotIndexedCache[Slot, SignedBeaconBlock] = SlotIndexedCache("block", cache_size)
        self.block_numbers: SlotIndexedCache[int, Slot] = SlotIndexedCache("block_number", cache_size)
        self.execution_hashes: Optional[ExecutionHashIndex] = (
            ExecutionHashIndex(cache_size) if backfill else None
        )
        self._validators: dict[bytes, ValidatorRecord] = {}
        self._validators_lock = threading.Lock()

    @property
    def backfill(self) -> bool:
        return self.execution_hashes is not None

    # Reads

    def get_proposer(self, slot: Slot) -> Optional[ValidatorInfo]:
        """Proposer cached for slot; never fetched on a miss."""
        return self.proposers.get(slot)

    async def get_block(self, slot: Slot) -> Optional[SignedBeaconBlock]:
        """Block at slot, fetched on a miss. None if the slot is empty."""
        block = self.blocks.get(slot)
        if block is None:
            await self.fetch_block(slot)
            block = self.blocks.peek(slot)
        return block

    def get_validator(self, public_key: bytes) -> Optional[ValidatorRecord]:
        """Validator from the last full refresh."""
        with self._validators_lock:
            validators = self._validators
        validator = validators.get(bytes(public_key))
        metrics.record_cache_lookup("validator", validator is not None)
        return validator

    def get_validator_status(self, public_key: bytes) -> ValidatorStatus:
        validator = self.get_validator(public_key)
        if validator is None:
            raise NotFoundError(f"Missing validator entry for public key 0x{bytes(public_key).hex()}")
        return validator.coarse_status

    def get_proposer_public_key(self, slot: Slot) -> BLSPubkey:
        proposer = self.get_proposer(slot)
        if proposer is None:
            raise NotFoundError(f"Missing proposer for slot {slot}")
        return proposer.public_key

    def get_slot_for_block_number(self, block_number: int) -> Optional[Slot]:
        return self.block_numbers.get(block_number)

    def get_execution_hash(self, slot: Slot) -> Optional[Hash32]:
        if self.execution_hashes is None:
            return None
        return self.execution_hashes.get(slot)

    def resolve_execution_hash(self, slot: Slot) -> Hash32:
        """Execution hash as of slot, backfilled from the nearest earlier slot."""
        if self.execution_hashes is None:
            raise RuntimeError("Execution hash backfill is not enabled for this cache")
        return self.execution_hashes.resolve(slot)

    def validator_count(self) -> int:
        with self._validators_lock:
            return len(self._validators)

    def stats(self) -> dict:
        stats = {
            "proposers": len(self.proposers),
            "blocks": len(self.blocks),
            "block_numbers": len(self.block_numbers),
            "validators": self.validator_count(),
        }
        if self.execution_hashes is not None:
            stats["execution_hashes"] = len(self.execution_hashes)
        return stats

    # Fetches

    async def fetch_proposers(self, epoch: Epoch) -> None:
        """Fetch and cache the proposer of every slot in epoch.

        Raises:
            SyncingError: the remote node is syncing
        """
        duties = await self.client.get_proposer_duties(epoch)
        for duty in duties:
            self.proposers.put(duty.slot, duty.to_validator_info())
        logger.debug(f"Cached {len(duties)} proposer duties for epoch {epoch}")

    async def fetch_block(self, slot: Slot) -> None:
        """Fetch and cache the block at slot. An empty slot is not an error.

        Raises:
            ParseError: the block is malformed or of an unaccepted fork version
        """
        response = await self.client.get_block_json(slot)
        if response is None:
            logger.debug(f"No block at slot {slot}")
            return

        block = decode_signed_block(response, self.block_versions)
        self.blocks.put(slot, block)
        self.block_numbers.put(block.block_number, Slot(int(slot)))
        if self.execution_hashes is not None:
            self.execution_hashes.put(slot, block.block_hash)

    async def fetch_validators(self) -> None:
        """Replace the validator index with the validator set at head."""
        records = await self.client.get_validators("head")
        validators = {bytes(record.public_key): record for record in records}
        with self._validators_lock:
            self._validators = validators
        metrics.update_cache_size("validator", len(validators))
        logger.debug(f"Cached {len(validators)} validators")
