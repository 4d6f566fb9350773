"""
Core math modules для mintsale

Целочисленные fixed-point примитивы и формулы ценообразования.
"""

# Fixed point
from mintsale.core.math.fixed_point import (
    MAX_TIMESTAMP,
    ONE,
    checked_sub,
    clamp,
    log2_floor,
    mul_div_down,
    validate_fraction,
    validate_non_negative,
    validate_positive,
)

# Pricing
from mintsale.core.math.pricing import (
    LOG2_ONE,
    clearing_price,
    forfeited_amount,
    loss_penalty,
    penalty_payout,
    unweighted_penalty,
    weighted_penalty,
)

__all__ = [
    # Fixed point: Constants
    "MAX_TIMESTAMP",
    "ONE",
    # Fixed point: Arithmetic
    "checked_sub",
    "clamp",
    "log2_floor",
    "mul_div_down",
    # Fixed point: Validation
    "validate_fraction",
    "validate_non_negative",
    "validate_positive",
    # Pricing: Constants
    "LOG2_ONE",
    # Pricing: Functions
    "clearing_price",
    "forfeited_amount",
    "loss_penalty",
    "penalty_payout",
    "unweighted_penalty",
    "weighted_penalty",
]
