"""Proposal context derived from cached parent data."""

from .base_fee import (
    BASE_FEE_CHANGE_DENOMINATOR,
    GAS_ELASTICITY_MULTIPLIER,
    compute_base_fee,
)
from .context import ProposalContextResolver

__all__ = [
    "BASE_FEE_CHANGE_DENOMINATOR",
    "GAS_ELASTICITY_MULTIPLIER",
    "compute_base_fee",
    "ProposalContextResolver",
]
