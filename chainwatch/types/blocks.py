"""Fork-tagged signed beacon blocks, decoded from /eth/v2/beacon/blocks JSON.

Only the header fields and the execution payload are decoded; the rest of the
body is not needed by the cache. The variant is selected by the response's
``version`` discriminator and unsupported forks are rejected instead of being
coerced into a default shape.
"""

from dataclasses import dataclass
from typing import ClassVar, Iterable, Optional, Type

from ..exceptions import ParseError
from .base import (
    uint64, uint256,
    Slot, ValidatorIndex, Root, Hash32, Bytes32, BLSSignature, ExecutionAddress,
    parse_bytes, parse_uint,
)


@dataclass(frozen=True)
class ExecutionPayloadBellatrix:
    parent_hash: Hash32
    fee_recipient: ExecutionAddress
    prev_randao: Bytes32
    block_number: uint64
    gas_limit: uint64
    gas_used: uint64
    timestamp: uint64
    base_fee_per_gas: uint256
    block_hash: Hash32

    @classmethod
    def _common_fields(cls, data: dict) -> dict:
        return {
            "parent_hash": parse_bytes(Hash32, data["parent_hash"]),
            "fee_recipient": parse_bytes(ExecutionAddress, data["fee_recipient"]),
            "prev_randao": parse_bytes(Bytes32, data["prev_randao"]),
            "block_number": parse_uint(uint64, data["block_number"]),
            "gas_limit": parse_uint(uint64, data["gas_limit"]),
            "gas_used": parse_uint(uint64, data["gas_used"]),
            "timestamp": parse_uint(uint64, data["timestamp"]),
            "base_fee_per_gas": parse_uint(uint256, data["base_fee_per_gas"]),
            "block_hash": parse_bytes(Hash32, data["block_hash"]),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutionPayloadBellatrix":
        return cls(**cls._common_fields(data))


@dataclass(frozen=True)
class ExecutionPayloadCapella(ExecutionPayloadBellatrix):
    """Capella payload (adds withdrawals)."""

    withdrawals: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutionPayloadCapella":
        return cls(
            **cls._common_fields(data),
            withdrawals=len(data["withdrawals"]),
        )


@dataclass(frozen=True)
class ExecutionPayloadDeneb(ExecutionPayloadCapella):
    """Deneb payload (adds blob gas accounting). Electra and Fulu reuse it."""

    blob_gas_used: uint64 = uint64(0)
    excess_blob_gas: uint64 = uint64(0)

    @classmethod
    def from_dict(cls, data: dict) -> "ExecutionPayloadDeneb":
        return cls(
            **cls._common_fields(data),
            withdrawals=len(data["withdrawals"]),
            blob_gas_used=parse_uint(uint64, data["blob_gas_used"]),
            excess_blob_gas=parse_uint(uint64, data["excess_blob_gas"]),
        )


@dataclass(frozen=True)
class SignedBeaconBlock:
    """Common shape of every supported block variant."""

    version: ClassVar[str] = ""
    payload_type: ClassVar[Type[ExecutionPayloadBellatrix]] = ExecutionPayloadBellatrix

    slot: Slot
    proposer_index: ValidatorIndex
    parent_root: Root
    state_root: Root
    signature: BLSSignature
    execution_payload: ExecutionPayloadBellatrix

    @classmethod
    def from_dict(cls, data: dict) -> "SignedBeaconBlock":
        try:
            message = data["message"]
            return cls(
                slot=parse_uint(Slot, message["slot"]),
                proposer_index=parse_uint(ValidatorIndex, message["proposer_index"]),
                parent_root=parse_bytes(Root, message["parent_root"]),
                state_root=parse_bytes(Root, message["state_root"]),
                signature=parse_bytes(BLSSignature, data["signature"]),
                execution_payload=cls.payload_type.from_dict(
                    message["body"]["execution_payload"]
                ),
            )
        except (KeyError, TypeError) as e:
            raise ParseError(f"malformed {cls.version} block: {e!r}") from e

    @property
    def block_hash(self) -> Hash32:
        return self.execution_payload.block_hash

    @property
    def block_number(self) -> int:
        return int(self.execution_payload.block_number)


@dataclass(frozen=True)
class BellatrixSignedBeaconBlock(SignedBeaconBlock):
    version: ClassVar[str] = "bellatrix"
    payload_type: ClassVar[Type[ExecutionPayloadBellatrix]] = ExecutionPayloadBellatrix


@dataclass(frozen=True)
class CapellaSignedBeaconBlock(SignedBeaconBlock):
    version: ClassVar[str] = "capella"
    payload_type: ClassVar[Type[ExecutionPayloadBellatrix]] = ExecutionPayloadCapella


@dataclass(frozen=True)
class DenebSignedBeaconBlock(SignedBeaconBlock):
    version: ClassVar[str] = "deneb"
    payload_type: ClassVar[Type[ExecutionPayloadBellatrix]] = ExecutionPayloadDeneb


@dataclass(frozen=True)
class ElectraSignedBeaconBlock(SignedBeaconBlock):
    version: ClassVar[str] = "electra"
    payload_type: ClassVar[Type[ExecutionPayloadBellatrix]] = ExecutionPayloadDeneb


@dataclass(frozen=True)
class FuluSignedBeaconBlock(SignedBeaconBlock):
    version: ClassVar[str] = "fulu"
    payload_type: ClassVar[Type[ExecutionPayloadBellatrix]] = ExecutionPayloadDeneb


BLOCK_TYPES: dict[str, Type[SignedBeaconBlock]] = {
    block_type.version: block_type
    for block_type in (
        BellatrixSignedBeaconBlock,
        CapellaSignedBeaconBlock,
        DenebSignedBeaconBlock,
        ElectraSignedBeaconBlock,
        FuluSignedBeaconBlock,
    )
}


def decode_signed_block(
    response: dict,
    accepted_versions: Optional[Iterable[str]] = None,
) -> SignedBeaconBlock:
    """Decode a versioned block response envelope.

    Args:
        response: Body of /eth/v2/beacon/blocks/{block_id} ({"version", "data"})
        accepted_versions: Fork versions the caller is prepared to handle;
            defaults to every version in BLOCK_TYPES

    Raises:
        ParseError: the version is missing, unsupported or not accepted, or
            the block does not match the variant's shape
    """
    if not isinstance(response, dict):
        raise ParseError(f"block response is not an object: {type(response).__name__}")

    version = response.get("version")
    if not isinstance(version, str):
        raise ParseError("block response has no version discriminator")
    version = version.lower()

    block_type = BLOCK_TYPES.get(version)
    if block_type is None:
        raise ParseError(f"unsupported block version: {version}")
    if accepted_versions is not None and version not in accepted_versions:
        raise ParseError(f"block version {version} is not accepted")

    data = response.get("data")
    if not isinstance(data, dict):
        raise ParseError(f"{version} block response has no data")
    return block_type.from_dict(data)
