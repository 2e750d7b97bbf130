"""Bounded local view of consensus data."""

from .lru import DEFAULT_CACHE_SIZE, SlotIndexedCache
from .execution import ExecutionHashIndex
from .consensus import ConsensusCache
from .bootstrap import BootstrapFailure, BootstrapLoader, BootstrapReport

__all__ = [
    "DEFAULT_CACHE_SIZE",
    "SlotIndexedCache",
    "ExecutionHashIndex",
    "ConsensusCache",
    "BootstrapFailure",
    "BootstrapLoader",
    "BootstrapReport",
]
