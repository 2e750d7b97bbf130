"""Chainwatch - consensus layer data access for chain monitoring."""

from .config import Config
from .consensus import ConsensusClient
from .exceptions import (
    ConsensusError,
    NotFoundError,
    SyncingError,
    ParseError,
    TransportError,
    BeaconAPIError,
    Uint256OverflowError,
)

__all__ = [
    "Config",
    "ConsensusClient",
    "ConsensusError",
    "NotFoundError",
    "SyncingError",
    "ParseError",
    "TransportError",
    "BeaconAPIError",
    "Uint256OverflowError",
]
