"""Tests for the consensus cache against an in-process beacon node."""

import asyncio

import pytest

from chainwatch.beacon import RemoteBeaconClient
from chainwatch.cache import ConsensusCache
from chainwatch.exceptions import NotFoundError, ParseError, SyncingError, TransportError
from chainwatch.types import Epoch, Slot, ValidatorStatus

from helpers import FakeBeaconNode, block_response, pubkey_hex, root_hex, serving, validator_json


def run_with_cache(node: FakeBeaconNode, test, **kwargs) -> None:
    async def run() -> None:
        async with serving(node) as url:
            client = RemoteBeaconClient(url, timeout=5.0)
            try:
                await test(ConsensusCache(client, **kwargs))
            finally:
                await client.close()

    asyncio.run(run())


class TestProposers:
    def test_fetch_caches_every_slot_of_epoch(self, node):
        async def test(cache):
            await cache.fetch_proposers(Epoch(2))

            for slot in range(8, 12):
                proposer = cache.get_proposer(Slot(slot))
                assert proposer.index == 100 + slot
                assert bytes(proposer.public_key) == (101 + slot).to_bytes(48, "big")
            assert cache.get_proposer(Slot(7)) is None
            assert cache.get_proposer(Slot(12)) is None

        run_with_cache(node, test)

    def test_proposer_is_not_fetched_on_miss(self, node):
        async def test(cache):
            assert cache.get_proposer(Slot(3)) is None
            assert node.requests == []

        run_with_cache(node, test)

    def test_proposer_public_key(self, node):
        async def test(cache):
            await cache.fetch_proposers(Epoch(0))

            assert bytes(cache.get_proposer_public_key(Slot(2))) == bytes.fromhex(pubkey_hex(103)[2:])
            with pytest.raises(NotFoundError):
                cache.get_proposer_public_key(Slot(4))

        run_with_cache(node, test)

    def test_syncing_node_propagates(self, node):
        node.syncing = True

        async def test(cache):
            with pytest.raises(SyncingError):
                await cache.fetch_proposers(Epoch(1))
            assert len(cache.proposers) == 0

        run_with_cache(node, test)


class TestBlocks:
    def test_fetch_block_indexes_slot_and_block_number(self, node):
        node.blocks[5] = block_response(slot=5, block_number=40)

        async def test(cache):
            await cache.fetch_block(Slot(5))

            block = await cache.get_block(Slot(5))
            assert block.block_number == 40
            assert cache.get_slot_for_block_number(40) == 5
            assert cache.get_slot_for_block_number(41) is None
            assert node.request_count("/eth/v2/beacon/blocks/5") == 1

        run_with_cache(node, test)

    def test_get_block_fetches_on_miss(self, node):
        node.blocks[9] = block_response(slot=9, block_number=70)

        async def test(cache):
            block = await cache.get_block(Slot(9))
            again = await cache.get_block(Slot(9))

            assert block is again
            assert node.request_count("/eth/v2/beacon/blocks/9") == 1

        run_with_cache(node, test)

    def test_empty_slot_is_not_cached(self, node):
        async def test(cache):
            await cache.fetch_block(Slot(6))
            assert len(cache.blocks) == 0

            assert await cache.get_block(Slot(6)) is None
            assert node.request_count("/eth/v2/beacon/blocks/6") == 2

        run_with_cache(node, test)

    def test_block_appearing_later_is_picked_up(self, node):
        async def test(cache):
            assert await cache.get_block(Slot(6)) is None
            node.blocks[6] = block_response(slot=6, block_number=50)

            block = await cache.get_block(Slot(6))
            assert block.block_number == 50

        run_with_cache(node, test)

    def test_unsupported_version_is_parse_error(self, node):
        response = block_response(slot=3, block_number=10)
        response["version"] = "phase0"
        node.blocks[3] = response

        async def test(cache):
            with pytest.raises(ParseError):
                await cache.fetch_block(Slot(3))
            assert len(cache.blocks) == 0

        run_with_cache(node, test)

    def test_restricted_versions(self, node):
        node.blocks[3] = block_response(slot=3, block_number=10, version="deneb")

        async def test(cache):
            with pytest.raises(ParseError):
                await cache.fetch_block(Slot(3))

        run_with_cache(node, test, block_versions=("bellatrix", "capella"))

    def test_server_error_propagates(self, node):
        node.failing.add("blocks")

        async def test(cache):
            with pytest.raises(TransportError):
                await cache.fetch_block(Slot(1))

        run_with_cache(node, test)

    def test_least_recently_used_block_is_evicted(self, node):
        for slot in range(1, 4):
            node.blocks[slot] = block_response(slot=slot, block_number=slot + 10)

        async def test(cache):
            for slot in range(1, 4):
                await cache.fetch_block(Slot(slot))

            assert cache.blocks.keys() == [2, 3]
            assert cache.get_slot_for_block_number(11) is None

        run_with_cache(node, test, cache_size=2)


class TestValidators:
    def test_lookup_by_public_key(self, node):
        node.validators = [validator_json(0), validator_json(1, status="pending_queued")]

        async def test(cache):
            await cache.fetch_validators()

            key = bytes.fromhex(pubkey_hex(2)[2:])
            assert cache.get_validator(key).index == 1
            assert cache.get_validator_status(key) is ValidatorStatus.PENDING
            assert cache.validator_count() == 2

        run_with_cache(node, test)

    def test_unknown_validator(self, node):
        node.validators = [validator_json(0)]

        async def test(cache):
            await cache.fetch_validators()

            unknown = bytes(48)
            assert cache.get_validator(unknown) is None
            with pytest.raises(NotFoundError):
                cache.get_validator_status(unknown)

        run_with_cache(node, test)

    def test_refresh_replaces_whole_set(self, node):
        node.validators = [validator_json(0), validator_json(1)]

        async def test(cache):
            await cache.fetch_validators()
            node.validators = [validator_json(2)]
            await cache.fetch_validators()

            assert cache.validator_count() == 1
            assert cache.get_validator(bytes.fromhex(pubkey_hex(1)[2:])) is None
            assert cache.get_validator(bytes.fromhex(pubkey_hex(3)[2:])).index == 2

        run_with_cache(node, test)

    def test_readers_see_old_set_until_refresh_completes(self, node):
        node.validators = [validator_json(0), validator_json(1)]
        old_key = bytes.fromhex(pubkey_hex(1)[2:])
        new_key = bytes.fromhex(pubkey_hex(6)[2:])

        async def test(cache):
            await cache.fetch_validators()
            node.hold_validators = True
            node.validators = [validator_json(5)]

            refresh = asyncio.create_task(cache.fetch_validators())
            for _ in range(200):
                if node.validators_pending is not None:
                    break
                await asyncio.sleep(0.01)
            assert node.validators_pending is not None

            assert cache.get_validator(old_key).index == 0
            assert cache.get_validator(new_key) is None
            assert cache.validator_count() == 2

            node.validators_pending.set()
            await asyncio.wait_for(refresh, 5)

            assert cache.get_validator(old_key) is None
            assert cache.get_validator(new_key).index == 5
            assert cache.validator_count() == 1

        run_with_cache(node, test)

    def test_failed_refresh_keeps_previous_set(self, node):
        node.validators = [validator_json(0), validator_json(1)]

        async def test(cache):
            await cache.fetch_validators()
            node.failing.add("validators")

            with pytest.raises(TransportError):
                await cache.fetch_validators()
            assert cache.validator_count() == 2

        run_with_cache(node, test)


class TestExecutionHashes:
    def test_backfill_mode_indexes_block_hashes(self, node):
        node.blocks[10] = block_response(slot=10, block_number=90)

        async def test(cache):
            await cache.fetch_block(Slot(10))

            expected = bytes.fromhex(root_hex(0xB000 + 90)[2:])
            assert bytes(cache.get_execution_hash(Slot(10))) == expected
            assert bytes(cache.resolve_execution_hash(Slot(13))) == expected
            assert bytes(cache.get_execution_hash(Slot(12))) == expected
            assert cache.stats()["execution_hashes"] == 4

        run_with_cache(node, test, backfill=True)

    def test_direct_mode_has_no_execution_hash_index(self, node):
        node.blocks[10] = block_response(slot=10, block_number=90)

        async def test(cache):
            await cache.fetch_block(Slot(10))

            assert not cache.backfill
            assert cache.get_execution_hash(Slot(10)) is None
            assert "execution_hashes" not in cache.stats()
            with pytest.raises(RuntimeError):
                cache.resolve_execution_hash(Slot(11))

        run_with_cache(node, test)
