"""
Core domain models, mathematical primitives, and invariants.

This module contains the foundational building blocks that are independent
of external systems (asset ledgers, item ledgers, clocks).
"""
