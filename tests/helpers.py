"""In-process fake Beacon API node and response builders."""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from aiohttp import web
from aiohttp.test_utils import TestServer

ZERO_ROOT = "0x" + "00" * 32


def root_hex(n: int) -> str:
    return "0x" + n.to_bytes(32, "big").hex()


def pubkey_hex(n: int) -> str:
    return "0x" + n.to_bytes(48, "big").hex()


def execution_payload_json(
    block_number: int,
    gas_limit: int = 30_000_000,
    gas_used: int = 15_000_000,
    base_fee: int = 1_000_000_000,
    block_hash: Optional[str] = None,
    version: str = "bellatrix",
) -> dict:
    payload = {
        "parent_hash": root_hex(block_number - 1 if block_number else 0),
        "fee_recipient": "0x" + "11" * 20,
        "state_root": ZERO_ROOT,
        "receipts_root": ZERO_ROOT,
        "logs_bloom": "0x" + "00" * 256,
        "prev_randao": root_hex(7),
        "block_number": str(block_number),
        "gas_limit": str(gas_limit),
        "gas_used": str(gas_used),
        "timestamp": str(1_700_000_000 + 12 * block_number),
        "extra_data": "0x",
        "base_fee_per_gas": str(base_fee),
        "block_hash": block_hash or root_hex(0xB000 + block_number),
        "transactions": [],
    }
    if version != "bellatrix":
        payload["withdrawals"] = []
    if version in ("deneb", "electra", "fulu"):
        payload["blob_gas_used"] = "0"
        payload["excess_blob_gas"] = "0"
    return payload


def block_response(slot: int, block_number: int, version: str = "bellatrix", **payload) -> dict:
    """Body of /eth/v2/beacon/blocks/{slot} for a block carrying an execution payload."""
    return {
        "version": version,
        "execution_optimistic": False,
        "finalized": False,
        "data": {
            "message": {
                "slot": str(slot),
                "proposer_index": str(slot % 64),
                "parent_root": root_hex(slot - 1 if slot else 0),
                "state_root": root_hex(0x5000 + slot),
                "body": {
                    "randao_reveal": "0x" + "00" * 96,
                    "graffiti": ZERO_ROOT,
                    "execution_payload": execution_payload_json(
                        block_number, version=version, **payload
                    ),
                },
            },
            "signature": "0x" + "00" * 96,
        },
    }


def validator_json(index: int, status: str = "active_ongoing") -> dict:
    return {
        "index": str(index),
        "balance": "32000000000",
        "status": status,
        "validator": {
            "pubkey": pubkey_hex(index + 1),
            "withdrawal_credentials": ZERO_ROOT,
            "effective_balance": "32000000000",
            "slashed": False,
            "activation_eligibility_epoch": "0",
            "activation_epoch": "0",
            "exit_epoch": str(2**64 - 1),
            "withdrawable_epoch": str(2**64 - 1),
        },
    }


class FakeBeaconNode:
    """Beacon API double serving whatever the test puts in its tables."""

    def __init__(self, slots_per_epoch: int = 4):
        self.slots_per_epoch = slots_per_epoch
        self.blocks: dict[int, dict] = {}
        self.duty_epochs: set[int] = set()
        self.validators: Optional[list[dict]] = []
        self.randao: dict[int, str] = {}
        self.head_slot = 0
        self.syncing = False
        self.failing: set[str] = set()
        # Plain strings are sent as "head" events; (event_type, data) tuples
        # override the type, and an event_type of None omits the event line.
        self.head_events: list = []
        self.hold_event_stream = False
        self._released: list[asyncio.Event] = []
        self.hold_validators = False
        self.validators_pending: Optional[asyncio.Event] = None
        self.requests: list[str] = []

        self.app = web.Application()
        self.app.router.add_get("/eth/v1/validator/duties/proposer/{epoch}", self.get_duties)
        self.app.router.add_get("/eth/v2/beacon/blocks/{block_id}", self.get_block)
        self.app.router.add_get("/eth/v1/beacon/states/{state_id}/validators", self.get_validators)
        self.app.router.add_get("/eth/v1/beacon/states/{state_id}/randao", self.get_randao)
        self.app.router.add_get("/eth/v1/beacon/headers/head", self.get_head)
        self.app.router.add_get("/eth/v1/events", self.get_events)

    def duty_for(self, slot: int) -> dict:
        index = 100 + slot
        return {"pubkey": pubkey_hex(index + 1), "validator_index": str(index), "slot": str(slot)}

    def _failure(self, name: str) -> Optional[web.Response]:
        if name in self.failing:
            return web.json_response({"message": "Internal error"}, status=500)
        return None

    async def get_duties(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        if self.syncing:
            return web.json_response({"message": "Beacon node is currently syncing"}, status=503)
        failure = self._failure("duties")
        if failure:
            return failure
        epoch = int(request.match_info["epoch"])
        start = epoch * self.slots_per_epoch
        duties = [self.duty_for(slot) for slot in range(start, start + self.slots_per_epoch)]
        self.duty_epochs.add(epoch)
        return web.json_response({"dependent_root": ZERO_ROOT, "execution_optimistic": False, "data": duties})

    async def get_block(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        failure = self._failure("blocks")
        if failure:
            return failure
        block = self.blocks.get(int(request.match_info["block_id"]))
        if block is None:
            return web.json_response({"message": "Block not found"}, status=404)
        return web.json_response(block)

    async def get_validators(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        failure = self._failure("validators")
        if failure:
            return failure
        if self.hold_validators:
            self.validators_pending = asyncio.Event()
            self._released.append(self.validators_pending)
            await self.validators_pending.wait()
        if self.validators is None:
            return web.json_response({"message": "State not found"}, status=404)
        return web.json_response({"execution_optimistic": False, "finalized": False, "data": self.validators})

    async def get_randao(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        randao = self.randao.get(int(request.match_info["state_id"]))
        if randao is None:
            return web.json_response({"message": "State not found"}, status=404)
        return web.json_response({"execution_optimistic": False, "finalized": False, "data": {"randao": randao}})

    async def get_head(self, request: web.Request) -> web.Response:
        self.requests.append(request.path)
        return web.json_response({
            "data": {
                "root": root_hex(self.head_slot),
                "canonical": True,
                "header": {"message": {"slot": str(self.head_slot)}, "signature": "0x" + "00" * 96},
            }
        })

    async def get_events(self, request: web.Request) -> web.StreamResponse:
        self.requests.append(request.path)
        response = web.StreamResponse(
            status=200,
            headers={"Content-Type": "text/event-stream", "Cache-Control": "no-cache"},
        )
        await response.prepare(request)
        await response.write(b": keepalive\n\n")
        for event in self.head_events:
            event_type, data = event if isinstance(event, tuple) else ("head", event)
            frame = f"event: {event_type}\n" if event_type else ""
            await response.write(f"{frame}data: {data}\n\n".encode())
        if self.hold_event_stream:
            released = asyncio.Event()
            self._released.append(released)
            await released.wait()
        return response

    def release_streams(self) -> None:
        """Let held responses finish so the server can shut down."""
        for released in self._released:
            released.set()

    def request_count(self, path: str) -> int:
        return self.requests.count(path)


def head_event(slot: int, root: Optional[str] = None) -> str:
    return json.dumps({
        "slot": str(slot),
        "block": root or root_hex(0xA000 + slot),
        "state": ZERO_ROOT,
        "epoch_transition": False,
        "execution_optimistic": False,
    })


@asynccontextmanager
async def serving(node: FakeBeaconNode) -> AsyncIterator[str]:
    """Serve node on an ephemeral localhost port and yield its base URL."""
    server = TestServer(node.app, host="127.0.0.1")
    await server.start_server()
    try:
        yield f"http://{server.host}:{server.port}"
    finally:
        node.release_streams()
        await server.close()
