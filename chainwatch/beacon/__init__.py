"""Remote Beacon API access: point queries and the head event stream."""

from .client import RemoteBeaconClient
from .events import HeadEventStream, OverflowPolicy, parse_head_event

__all__ = [
    "RemoteBeaconClient",
    "HeadEventStream",
    "OverflowPolicy",
    "parse_head_event",
]
