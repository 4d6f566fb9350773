"""
Domain models.

Contains Session, SessionConfig, RolloverOption and UserDeposit.
"""

from mintsale.core.domain.deposit import UserDeposit
from mintsale.core.domain.session import RolloverOption, Session, SessionConfig

__all__ = [
    "RolloverOption",
    "Session",
    "SessionConfig",
    "UserDeposit",
]
