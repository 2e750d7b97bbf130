"""Types shared across chainwatch.

- base.py: SSZ primitives, hex/decimal parsing, validator and head records
- blocks.py: fork-tagged signed beacon blocks (bellatrix onwards)
"""

from .base import (
    uint64, uint256,
    Bytes20, Bytes32, Bytes48, Bytes96,
    Slot, Epoch, ValidatorIndex, Gwei, Root, Hash32,
    BLSPubkey, BLSSignature, ExecutionAddress,
    hex_to_bytes, parse_bytes, parse_uint, to_hex,
    ValidatorStatus, ValidatorInfo, ProposerDuty, ValidatorRecord,
    Coordinate,
)
from .blocks import (
    ExecutionPayloadBellatrix,
    ExecutionPayloadCapella,
    ExecutionPayloadDeneb,
    SignedBeaconBlock,
    BellatrixSignedBeaconBlock,
    CapellaSignedBeaconBlock,
    DenebSignedBeaconBlock,
    ElectraSignedBeaconBlock,
    FuluSignedBeaconBlock,
    BLOCK_TYPES,
    decode_signed_block,
)

__all__ = [
    "uint64", "uint256",
    "Bytes20", "Bytes32", "Bytes48", "Bytes96",
    "Slot", "Epoch", "ValidatorIndex", "Gwei", "Root", "Hash32",
    "BLSPubkey", "BLSSignature", "ExecutionAddress",
    "hex_to_bytes", "parse_bytes", "parse_uint", "to_hex",
    "ValidatorStatus", "ValidatorInfo", "ProposerDuty", "ValidatorRecord",
    "Coordinate",
    "ExecutionPayloadBellatrix", "ExecutionPayloadCapella", "ExecutionPayloadDeneb",
    "SignedBeaconBlock",
    "BellatrixSignedBeaconBlock", "CapellaSignedBeaconBlock", "DenebSignedBeaconBlock",
    "ElectraSignedBeaconBlock", "FuluSignedBeaconBlock",
    "BLOCK_TYPES", "decode_signed_block",
]
