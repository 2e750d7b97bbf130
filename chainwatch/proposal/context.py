"""Values a proposer at a given slot needs, derived from its parent slot."""

import logging

from ..beacon.client import RemoteBeaconClient
from ..cache.consensus import ConsensusCache
from ..exceptions import NotFoundError
from ..types import Hash32, SignedBeaconBlock, Slot, uint256
from .base_fee import BASE_FEE_CHANGE_DENOMINATOR, GAS_ELASTICITY_MULTIPLIER, compute_base_fee

logger = logging.getLogger(__name__)


class ProposalContextResolver:
    """Derives next block number, base fee, gas limit, parent hash and randomness.

    The parent of a proposal at slot S is the block at slot S - 1. Reorgs and
    alternative branches are not considered.
    """

    def __init__(
        self,
        cache: ConsensusCache,
        client: RemoteBeaconClient,
        gas_elasticity_multiplier: int = GAS_ELASTICITY_MULTIPLIER,
        base_fee_change_denominator: int = BASE_FEE_CHANGE_DENOMINATOR,
    ):
        self.cache = cache
        self.client = client
        self.gas_elasticity_multiplier = gas_elasticity_multiplier
        self.base_fee_change_denominator = base_fee_change_denominator

    async def _parent_block(self, slot: Slot) -> SignedBeaconBlock:
        parent_slot = _parent_slot(slot)
        block = await self.cache.get_block(parent_slot)
        if block is None:
            raise NotFoundError(f"Could not find block for slot {parent_slot}")
        return block

    async def gas_limit_for_parent(self, block_number: int) -> int:
        """Gas limit of the parent of the block with the given execution number."""
        slot = self.cache.get_slot_for_block_number(block_number)
        if slot is None:
            raise NotFoundError(f"Missing block for block number {block_number}")
        parent = await self._parent_block(slot)
        return int(parent.execution_payload.gas_limit)

    async def next_block_number(self, slot: Slot) -> int:
        parent = await self._parent_block(slot)
        return parent.block_number + 1

    async def next_base_fee(self, slot: Slot) -> uint256:
        parent = await self._parent_block(slot)
        payload = parent.execution_payload
        parent_gas_target = int(payload.gas_limit) // self.gas_elasticity_multiplier
        return compute_base_fee(
            parent_gas_target,
            int(payload.gas_used),
            int(payload.base_fee_per_gas),
            self.base_fee_change_denominator,
        )

    async def parent_hash(self, slot: Slot) -> Hash32:
        """Execution block hash the proposal at slot builds on."""
        if self.cache.backfill:
            return self.cache.resolve_execution_hash(_parent_slot(slot))
        parent = await self._parent_block(slot)
        return parent.block_hash

    async def randomness_seed(self, slot: Slot) -> Hash32:
        """RANDAO mix recorded in the state at slot - 1."""
        return await self.client.get_randao(_parent_slot(slot))


def _parent_slot(slot: Slot) -> Slot:
    if int(slot) <= 0:
        raise NotFoundError(f"Slot {slot} has no parent slot")
    return Slot(int(slot) - 1)
