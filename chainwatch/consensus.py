"""Consensus client: the cache, head stream and proposal context behind one object."""

import asyncio
import logging
from typing import Optional

from .beacon import HeadEventStream, OverflowPolicy, RemoteBeaconClient
from .cache import BootstrapLoader, BootstrapReport, ConsensusCache
from .config import Config
from .proposal import ProposalContextResolver
from .types import (
    BLSPubkey,
    Epoch,
    Hash32,
    SignedBeaconBlock,
    Slot,
    ValidatorInfo,
    ValidatorRecord,
    ValidatorStatus,
    uint256,
)

logger = logging.getLogger(__name__)


class ConsensusClient:
    """Entry point for consumers of consensus data.

    Build with ``await ConsensusClient.create(config, current_slot, current_epoch)``,
    which warms the cache before returning. Bootstrap failures never prevent
    creation; they are available in ``bootstrap_report``.
    """

    def __init__(self, config: Config, client: Optional[RemoteBeaconClient] = None):
        config.validate()
        self.config = config
        self.client = client or RemoteBeaconClient(config.beacon_url, config.request_timeout)
        self.cache = ConsensusCache(
            self.client,
            cache_size=config.cache_size,
            block_versions=config.block_versions,
            backfill=config.backfill_enabled,
        )
        self.proposals = ProposalContextResolver(
            self.cache,
            self.client,
            gas_elasticity_multiplier=config.gas_elasticity_multiplier,
            base_fee_change_denominator=config.base_fee_change_denominator,
        )
        self.bootstrap_report: Optional[BootstrapReport] = None
        self._head_streams: list[HeadEventStream] = []

    @classmethod
    async def create(
        cls,
        config: Config,
        current_slot: Slot,
        current_epoch: Epoch,
        client: Optional[RemoteBeaconClient] = None,
    ) -> "ConsensusClient":
        consensus = cls(config, client)
        await consensus.load_current_context(current_slot, current_epoch)
        return consensus

    async def load_current_context(self, current_slot: Slot, current_epoch: Epoch) -> BootstrapReport:
        loader = BootstrapLoader(self.cache, self.config.slots_per_epoch)
        self.bootstrap_report = await loader.load(current_slot, current_epoch)
        if not self.bootstrap_report.ok:
            logger.warning("Could not load the current context from the consensus client")
        return self.bootstrap_report

    # Cache reads

    def get_proposer(self, slot: Slot) -> Optional[ValidatorInfo]:
        return self.cache.get_proposer(slot)

    def get_proposer_public_key(self, slot: Slot) -> BLSPubkey:
        return self.cache.get_proposer_public_key(slot)

    async def get_block(self, slot: Slot) -> Optional[SignedBeaconBlock]:
        return await self.cache.get_block(slot)

    def get_validator(self, public_key: bytes) -> Optional[ValidatorRecord]:
        return self.cache.get_validator(public_key)

    def get_validator_status(self, public_key: bytes) -> ValidatorStatus:
        return self.cache.get_validator_status(public_key)

    # Refreshes

    async def fetch_proposers(self, epoch: Epoch) -> None:
        await self.cache.fetch_proposers(epoch)

    async def fetch_block(self, slot: Slot) -> None:
        await self.cache.fetch_block(slot)

    async def fetch_validators(self) -> None:
        await self.cache.fetch_validators()

    # Proposal context

    async def get_parent_hash(self, slot: Slot) -> Hash32:
        return await self.proposals.parent_hash(slot)

    async def get_parent_gas_limit(self, block_number: int) -> int:
        return await self.proposals.gas_limit_for_parent(block_number)

    async def get_block_number_for_proposal(self, slot: Slot) -> int:
        return await self.proposals.next_block_number(slot)

    async def get_base_fee_for_proposal(self, slot: Slot) -> uint256:
        return await self.proposals.next_base_fee(slot)

    async def get_randomness_for_proposal(self, slot: Slot) -> Hash32:
        return await self.proposals.randomness_seed(slot)

    # Head events

    def stream_heads(self) -> asyncio.Queue:
        """Start a head subscription and return its queue of Coordinates."""
        stream = HeadEventStream(
            self.client,
            capacity=self.config.head_queue_capacity,
            overflow_policy=OverflowPolicy(self.config.head_overflow_policy),
        )
        self._head_streams.append(stream)
        return stream.start()

    async def close(self) -> None:
        for stream in self._head_streams:
            await stream.stop()
        self._head_streams.clear()
        await self.client.close()
