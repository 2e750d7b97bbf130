"""Head event subscription republishing chain heads as Coordinates."""

import asyncio
import json
import logging
from enum import Enum
from typing import Optional, Union

from .. import metrics
from ..exceptions import ConsensusError, ParseError
from ..types import Coordinate, Root, Slot, parse_bytes
from .client import RemoteBeaconClient

logger = logging.getLogger(__name__)

HEAD_TOPIC = "head"


class OverflowPolicy(str, Enum):
    """What to do with a new head when the consumer queue is full.

    BLOCK waits for the consumer, which stops the feed from being read while
    the consumer is stalled. DROP_OLDEST discards the pending event instead.
    """

    BLOCK = "block"
    DROP_OLDEST = "drop_oldest"


def parse_head_event(data: Union[str, bytes]) -> Coordinate:
    """Parse a head event payload: {"slot": "<decimal>", "block": "0x<root>"}."""
    try:
        event = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"could not unmarshal head event: {e}") from e
    if not isinstance(event, dict):
        raise ParseError("head event is not an object")

    slot = event.get("slot")
    if not isinstance(slot, str):
        raise ParseError(f"head event slot must be a decimal string, got {slot!r}")
    if "block" not in event:
        raise ParseError("head event has no block root")

    return Coordinate(
        slot=_parse_slot(slot),
        root=parse_bytes(Root, event["block"]),
    )


def _parse_slot(value: str) -> Slot:
    if not value.isdigit():
        raise ParseError(f"could not unmarshal slot from head event: {value!r}")
    try:
        return Slot(int(value))
    except ValueError as e:
        raise ParseError(f"head event slot out of range: {value}") from e


class HeadEventStream:
    """Publishes head events from one SSE subscription into a bounded queue.

    The queue is the only output: a terminated subscription is reported in
    the log and through ``running``, never as an exception to the consumer.
    """

    def __init__(
        self,
        client: RemoteBeaconClient,
        capacity: int = 1,
        overflow_policy: OverflowPolicy = OverflowPolicy.BLOCK,
    ):
        if capacity <= 0:
            raise ValueError(f"Queue capacity must be positive, got {capacity}")
        self.client = client
        self.capacity = capacity
        self.overflow_policy = OverflowPolicy(overflow_policy)
        self.queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Queue:
        """Open the subscription and return the queue heads are delivered to."""
        if self.running:
            raise RuntimeError("Head event stream already started")
        self.queue = asyncio.Queue(maxsize=self.capacity)
        self._task = asyncio.create_task(self._run(self.queue))
        return self.queue

    async def stop(self) -> None:
        """Cancel the subscription. Any event still queued is left in place."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self, queue: asyncio.Queue) -> None:
        try:
            async for event_type, data in self.client.stream_events([HEAD_TOPIC]):
                # Messages without an event line default to "message".
                if event_type not in (HEAD_TOPIC, "message"):
                    logger.debug(f"Ignoring {event_type} event on the head subscription")
                    metrics.record_head_event_dropped("other_topic")
                    continue
                try:
                    head = parse_head_event(data)
                except ParseError as e:
                    logger.warning(f"Dropping malformed head event: {e}")
                    metrics.record_head_event_dropped("malformed")
                    continue
                await self._publish(queue, head)
            logger.warning("Head event subscription ended; no further heads will be delivered")
        except ConsensusError as e:
            logger.error(f"Could not subscribe to head events: {e}")

    async def _publish(self, queue: asyncio.Queue, head: Coordinate) -> None:
        if self.overflow_policy is OverflowPolicy.DROP_OLDEST and queue.full():
            try:
                stale = queue.get_nowait()
                logger.debug(f"Dropping unconsumed head at slot {stale.slot}")
                metrics.record_head_event_dropped("overflow")
            except asyncio.QueueEmpty:
                pass
            queue.put_nowait(head)
        else:
            await queue.put(head)
        metrics.record_head_event(int(head.slot))
