"""Lifecycle — фазы сессии и rollover после окончания окна минтинга."""

from .rollover import (
    RolloverResult,
    RolloverStateMachine,
    SessionPhase,
    session_phase,
)

__all__ = [
    "RolloverResult",
    "RolloverStateMachine",
    "SessionPhase",
    "session_phase",
]
