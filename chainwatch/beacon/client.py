"""Remote Beacon API client for the consensus data the cache is built from."""

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Optional, Union

import aiohttp

from .. import metrics
from ..exceptions import BeaconAPIError, NotFoundError, ParseError, SyncingError, TransportError
from ..types import (
    Epoch,
    Hash32,
    ProposerDuty,
    Slot,
    ValidatorRecord,
    parse_bytes,
    parse_uint,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

StateId = Union[int, str]


class RemoteBeaconClient:
    """Client for a remote Beacon API (any conformant client).

    Every call is a single request: failures are raised to the caller and
    never retried here.
    """

    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def _get(
        self,
        endpoint: str,
        path: str,
        allow_statuses: tuple[int, ...] = (),
    ) -> tuple[int, Any]:
        """GET a JSON document.

        Returns (status, body) for 200 and for any status in allow_statuses
        (body is None for the latter). Other statuses raise BeaconAPIError.
        """
        session = await self._ensure_session()
        url = f"{self.base_url}{path}"

        start_time = time.time()
        error_type = None

        try:
            async with session.get(url, headers={"Accept": "application/json"}) as response:
                if response.status in allow_statuses:
                    return response.status, None
                if response.status != 200:
                    error_type = str(response.status)
                    text = await response.text()
                    raise BeaconAPIError(response.status, text)
                try:
                    body = await response.json(content_type=None)
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    error_type = "malformed_envelope"
                    raise TransportError(f"Malformed response from {path}: {e}") from e
        except asyncio.TimeoutError as e:
            error_type = "timeout"
            raise TransportError(f"Timed out requesting {path}") from e
        except aiohttp.ClientError as e:
            error_type = "connection_error"
            logger.debug(f"Beacon API connection error on {path}: {e}")
            raise TransportError(f"Request to {path} failed: {e}") from e
        finally:
            metrics.record_beacon_api_call(endpoint, time.time() - start_time, error_type)

        if not isinstance(body, dict) or "data" not in body:
            raise TransportError(f"Malformed response envelope from {path}")
        return response.status, body

    async def get_proposer_duties(self, epoch: Epoch) -> list[ProposerDuty]:
        """Fetch proposer duties for every slot of an epoch.

        Raises:
            SyncingError: the node answered 503 (syncing)
        """
        path = f"/eth/v1/validator/duties/proposer/{int(epoch)}"
        try:
            _, body = await self._get("proposer_duties", path)
        except BeaconAPIError as e:
            if e.status == 503:
                raise SyncingError(
                    f"Could not fetch proposer duties in epoch {epoch} because node is syncing"
                ) from e
            raise

        data = body["data"]
        if not isinstance(data, list):
            raise ParseError(f"Proposer duties for epoch {epoch} are not a list")
        return [ProposerDuty.from_dict(duty) for duty in data]

    async def get_block_json(self, slot: Slot) -> Optional[dict]:
        """Fetch the versioned block at a slot, or None if the slot is empty."""
        path = f"/eth/v2/beacon/blocks/{int(slot)}"
        status, body = await self._get("block", path, allow_statuses=(404,))
        if status == 404:
            return None
        return body

    async def get_validators(self, state_id: StateId = "head") -> list[ValidatorRecord]:
        """Fetch the full validator set for a state."""
        path = f"/eth/v1/beacon/states/{state_id}/validators"
        status, body = await self._get("validators", path, allow_statuses=(404,))
        if status == 404:
            raise NotFoundError(f"Validators do not exist for state {state_id}")

        data = body["data"]
        if not isinstance(data, list):
            raise ParseError(f"Validators for state {state_id} are not a list")
        return [ValidatorRecord.from_dict(v) for v in data]

    async def get_randao(self, state_id: StateId) -> Hash32:
        """Fetch the RANDAO mix recorded in a state."""
        path = f"/eth/v1/beacon/states/{state_id}/randao"
        status, body = await self._get("randao", path, allow_statuses=(404,))
        if status == 404:
            raise NotFoundError(f"State not found: {state_id}")
        try:
            return parse_bytes(Hash32, body["data"]["randao"])
        except (KeyError, TypeError) as e:
            raise ParseError(f"Malformed randao response for state {state_id}") from e

    async def get_head_slot(self) -> Slot:
        """Get the slot of the current head block header."""
        _, body = await self._get("header", "/eth/v1/beacon/headers/head")
        try:
            return parse_uint(Slot, body["data"]["header"]["message"]["slot"])
        except (KeyError, TypeError) as e:
            raise ParseError("Malformed head header response") from e

    async def stream_events(self, topics: list[str]) -> AsyncIterator[tuple[str, str]]:
        """Yield (event_type, data) pairs from the SSE event stream.

        There is no reconnect: the iterator ends when the server closes the
        stream and raises TransportError if the connection fails.
        """
        session = await self._ensure_session()
        topics_param = ",".join(topics)
        url = f"{self.base_url}/eth/v1/events?topics={topics_param}"

        logger.info(f"Connecting to SSE stream: {url}")
        try:
            async with session.get(
                url,
                headers={"Accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(total=None, sock_read=None),
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    raise BeaconAPIError(response.status, text)

                logger.info("SSE connection established")

                event_type = None
                data_lines: list[str] = []

                async for line in response.content:
                    line = line.decode("utf-8", errors="replace").strip()

                    if not line:
                        if data_lines:
                            yield event_type or "message", "\n".join(data_lines)
                        event_type = None
                        data_lines = []
                        continue

                    if line.startswith(":"):
                        continue
                    if line.startswith("event:"):
                        event_type = line[6:].strip()
                    elif line.startswith("data:"):
                        data_lines.append(line[5:].strip())
        except asyncio.TimeoutError as e:
            raise TransportError("SSE connection timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"SSE connection error: {e}") from e

    async def close(self) -> None:
        """Close the client and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
