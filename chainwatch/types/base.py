"""Base SSZ primitives and the small records cached from the Beacon API."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Type, TypeVar

from remerkleable.basic import uint64, uint256
from remerkleable.byte_arrays import Bytes32, Bytes48, Bytes96, ByteVector

from ..exceptions import ParseError

Bytes20 = ByteVector[20]

# Type aliases
Slot = uint64
Epoch = uint64
ValidatorIndex = uint64
Gwei = uint64
Root = Bytes32
Hash32 = Bytes32
BLSPubkey = Bytes48
BLSSignature = Bytes96
ExecutionAddress = Bytes20

B = TypeVar("B", bound=bytes)
U = TypeVar("U", bound=int)


def hex_to_bytes(value: Any) -> bytes:
    """Decode a 0x-prefixed hex string."""
    if not isinstance(value, str):
        raise ParseError(f"expected hex string, got {type(value).__name__}")
    if value.startswith("0x"):
        value = value[2:]
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise ParseError(f"invalid hex string: {e}") from e


def parse_bytes(typ: Type[B], value: Any) -> B:
    """Parse a hex string into a fixed-width byte vector type."""
    raw = hex_to_bytes(value)
    expected = typ.type_byte_length()
    if len(raw) != expected:
        raise ParseError(f"expected {expected} bytes, got {len(raw)}")
    return typ(raw)


def parse_uint(typ: Type[U], value: Any) -> U:
    """Parse a decimal string (the Beacon API encoding) into an unsigned type."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ParseError(f"expected decimal string, got {type(value).__name__}")
    try:
        number = int(value, 10) if isinstance(value, str) else value
    except ValueError as e:
        raise ParseError(f"invalid {typ.__name__} value {value!r}: {e}") from e
    if number < 0 or number.bit_length() > typ.type_byte_length() * 8:
        raise ParseError(f"{typ.__name__} value out of range: {value!r}")
    return typ(number)


def to_hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


class ValidatorStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @classmethod
    def from_api_status(cls, status: str) -> "ValidatorStatus":
        """Collapse a Beacon API status (e.g. "active_ongoing") into a coarse status."""
        if "active" in status:
            return cls.ACTIVE
        if "pending" in status:
            return cls.PENDING
        return cls.UNKNOWN


@dataclass(frozen=True)
class ValidatorInfo:
    """Proposer assigned to a slot."""

    public_key: BLSPubkey
    index: ValidatorIndex


@dataclass(frozen=True)
class ProposerDuty:
    """Entry of /eth/v1/validator/duties/proposer/{epoch}."""

    slot: Slot
    validator_index: ValidatorIndex
    public_key: BLSPubkey

    @classmethod
    def from_dict(cls, data: dict) -> "ProposerDuty":
        try:
            return cls(
                slot=parse_uint(Slot, data["slot"]),
                validator_index=parse_uint(ValidatorIndex, data["validator_index"]),
                public_key=parse_bytes(BLSPubkey, data["pubkey"]),
            )
        except (KeyError, TypeError) as e:
            raise ParseError(f"malformed proposer duty: {e!r}") from e

    def to_validator_info(self) -> ValidatorInfo:
        return ValidatorInfo(public_key=self.public_key, index=self.validator_index)


@dataclass(frozen=True)
class ValidatorRecord:
    """Validator entry from the validator set at head."""

    index: ValidatorIndex
    public_key: BLSPubkey
    status: str
    balance: Gwei
    effective_balance: Gwei
    slashed: bool
    activation_epoch: Epoch
    exit_epoch: Epoch

    @classmethod
    def from_dict(cls, data: dict) -> "ValidatorRecord":
        try:
            validator = data["validator"]
            return cls(
                index=parse_uint(ValidatorIndex, data["index"]),
                public_key=parse_bytes(BLSPubkey, validator["pubkey"]),
                status=str(data["status"]),
                balance=parse_uint(Gwei, data["balance"]),
                effective_balance=parse_uint(Gwei, validator["effective_balance"]),
                slashed=bool(validator.get("slashed", False)),
                activation_epoch=parse_uint(Epoch, validator["activation_epoch"]),
                exit_epoch=parse_uint(Epoch, validator["exit_epoch"]),
            )
        except (KeyError, TypeError) as e:
            raise ParseError(f"malformed validator record: {e!r}") from e

    @property
    def coarse_status(self) -> ValidatorStatus:
        return ValidatorStatus.from_api_status(self.status)


@dataclass(frozen=True)
class Coordinate:
    """A chain head observation: the block root seen at a slot."""

    slot: Slot
    root: Root


__all__ = [
    "uint64", "uint256",
    "Bytes20", "Bytes32", "Bytes48", "Bytes96",
    "Slot", "Epoch", "ValidatorIndex", "Gwei", "Root", "Hash32",
    "BLSPubkey", "BLSSignature", "ExecutionAddress",
    "hex_to_bytes", "parse_bytes", "parse_uint", "to_hex",
    "ValidatorStatus", "ValidatorInfo", "ProposerDuty", "ValidatorRecord",
    "Coordinate",
]
