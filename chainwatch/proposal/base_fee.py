"""EIP-1559 base fee of the next block, following geth's CalcBaseFee."""

from ..exceptions import Uint256OverflowError
from ..types import uint256

BASE_FEE_CHANGE_DENOMINATOR = 8
GAS_ELASTICITY_MULTIPLIER = 2

UINT256_MAX = 2**256 - 1


def compute_base_fee(
    parent_gas_target: int,
    parent_gas_used: int,
    parent_base_fee: int,
    denominator: int = BASE_FEE_CHANGE_DENOMINATOR,
) -> uint256:
    """Base fee of the child of a block with the given gas target, usage and base fee.

    Divisions truncate and are applied in order: multiply, divide by the
    target, then by the denominator.

    Raises:
        ValueError: a negative input, a non-positive denominator, or a zero
            target with non-zero usage
        Uint256OverflowError: the result does not fit in 256 bits
    """
    target = int(parent_gas_target)
    used = int(parent_gas_used)
    base = int(parent_base_fee)

    if target < 0 or used < 0 or base < 0:
        raise ValueError("gas target, gas used and base fee must be non-negative")
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")

    if used == target:
        result = base
    elif target == 0:
        raise ValueError("parent gas target is zero")
    elif used > target:
        delta = max(1, (used - target) * base // target // denominator)
        result = base + delta
    else:
        delta = (target - used) * base // target // denominator
        result = max(0, base - delta)

    if result > UINT256_MAX:
        raise Uint256OverflowError(f"base fee {result} does not fit in 256 bits")
    return uint256(result)
