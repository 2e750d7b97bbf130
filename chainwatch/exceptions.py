"""Exceptions raised by the chainwatch consensus client."""


class ConsensusError(Exception):
    """Base class for all chainwatch errors."""


class NotFoundError(ConsensusError):
    """Requested slot, epoch or key is absent locally and, where applicable, remotely."""


class SyncingError(ConsensusError):
    """Remote beacon node cannot serve the request because it is syncing."""


class ParseError(ConsensusError):
    """Remote response does not match the expected shape or fork version."""


class TransportError(ConsensusError):
    """Timeout, connection failure or malformed envelope from the remote node."""


class BeaconAPIError(TransportError):
    """Non-success status from the Beacon API."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Beacon API error {status}: {message}")


class Uint256OverflowError(ConsensusError, OverflowError):
    """A derived value does not fit in 256 bits."""
