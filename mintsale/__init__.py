"""
mintsale — time-weighted pro-rata price discovery for fixed-supply item sales.

Depositors commit funds during an allocation window, a single clearing price
is derived from total deposits against the fixed supply, and depositors then
mint items at that price or forgo them for a refund net of a loss penalty.
"""

from mintsale.engine import EngineConfig, SaleEngine

__all__ = [
    "EngineConfig",
    "SaleEngine",
]
