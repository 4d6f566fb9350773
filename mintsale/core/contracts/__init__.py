"""
Contract Validation Module

Валидация JSON контрактов mintsale (параметры и снапшоты сессий).
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    SessionConfigValidator,
    SessionSnapshotValidator,
    validate_session_config,
    validate_session_snapshot,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "SessionConfigValidator",
    "SessionSnapshotValidator",
    # Functions
    "validate_session_config",
    "validate_session_snapshot",
]
