"""Rollover State Machine — переход сессии после окончания окна минтинга.

Жизненный цикл сессии:
    ALLOCATION → COOLDOWN → MINTING → (rollover)
        RESTART          → новая эпоха ALLOCATION с теми же ширинами окон
        GUARANTEED_MINT  → MINTING без конца по уже найденной цене
        CLOSE            → CLOSED, открыт post-close withdraw

Переход может выполнить только координатор сессии и только при
now >= minting_end.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from mintsale.core.domain.session import RolloverOption, Session
from mintsale.core.errors import InvalidCoordinatorError, MintingNotOverError
from mintsale.core.math.fixed_point import MAX_TIMESTAMP

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    """Фаза сессии в момент now."""

    PENDING = "PENDING"
    ALLOCATION = "ALLOCATION"
    COOLDOWN = "COOLDOWN"
    MINTING = "MINTING"
    ENDED = "ENDED"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class RolloverResult:
    """Результат rollover."""

    session: Session
    previous_session: Session
    option: RolloverOption

    # Диагностика
    transition_occurred: bool
    transition_reason: str

    # Для отладки
    details: str


def session_phase(session: Session, now: int) -> SessionPhase:
    """
    Фаза сессии.

    Границы окон включительные: now == allocation_end ещё ALLOCATION,
    now == minting_end ещё MINTING (и уже допускает rollover).
    """
    if session.closed:
        return SessionPhase.CLOSED
    if now < session.allocation_start:
        return SessionPhase.PENDING
    if now <= session.allocation_end:
        return SessionPhase.ALLOCATION
    if now < session.minting_start:
        return SessionPhase.COOLDOWN
    if now <= session.minting_end:
        return SessionPhase.MINTING
    return SessionPhase.ENDED


class RolloverStateMachine:
    """Rollover сессии по её rollover_option.

    - RESTART: все четыре границы сдвигаются так, что allocation_start = now,
      ширины окон аллокации, cooldown и минтинга сохраняются; result_price
      обнуляется; депозиты и штрафы переходят в новую эпоху.
    - GUARANTEED_MINT: minting_end = MAX_TIMESTAMP.
    - CLOSE: closed = True; повторный вызов ничего не меняет.
    """

    def __init__(self, max_timestamp: int = MAX_TIMESTAMP):
        self.max_timestamp = max_timestamp

    def apply(self, session: Session, caller: str, now: int) -> RolloverResult:
        """
        Args:
            session: текущий снапшот сессии
            caller: идентичность вызывающего
            now: текущее время

        Returns:
            RolloverResult с новым снапшотом (запись — забота вызывающего)

        Raises:
            InvalidCoordinatorError: caller не координатор (независимо от времени)
            MintingNotOverError: now < minting_end
        """
        if caller != session.coordinator:
            raise InvalidCoordinatorError(caller, session.coordinator)
        if not session.is_minting_over(now):
            raise MintingNotOverError(now, session.minting_end)

        option = session.rollover_option
        if option == RolloverOption.RESTART:
            return self._restart(session, now)
        if option == RolloverOption.GUARANTEED_MINT:
            return self._guaranteed_mint(session)
        return self._close(session)

    def _restart(self, session: Session, now: int) -> RolloverResult:
        allocation_period = session.allocation_period
        cooldown = session.cooldown_period
        minting_period = session.minting_period

        allocation_start = now
        allocation_end = allocation_start + allocation_period
        minting_start = allocation_end + cooldown
        minting_end = minting_start + minting_period

        restarted = session.model_copy(
            update={
                "allocation_start": allocation_start,
                "allocation_end": allocation_end,
                "minting_start": minting_start,
                "minting_end": minting_end,
                "result_price": 0,
                "epoch": session.epoch + 1,
            }
        )
        return self._create_result(
            session=restarted,
            previous_session=session,
            transition_occurred=True,
            transition_reason="restart",
            details=(
                f"Epoch {restarted.epoch}: allocation [{allocation_start}, {allocation_end}], "
                f"minting [{minting_start}, {minting_end}]"
            ),
        )

    def _guaranteed_mint(self, session: Session) -> RolloverResult:
        extended = session.model_copy(update={"minting_end": self.max_timestamp})
        return self._create_result(
            session=extended,
            previous_session=session,
            transition_occurred=True,
            transition_reason="guaranteed_mint",
            details=f"Minting window extended to {self.max_timestamp}, price={session.result_price}",
        )

    def _close(self, session: Session) -> RolloverResult:
        if session.closed:
            return self._create_result(
                session=session,
                previous_session=session,
                transition_occurred=False,
                transition_reason="already_closed",
                details="Close rollover already applied",
            )
        closed = session.model_copy(update={"closed": True})
        return self._create_result(
            session=closed,
            previous_session=session,
            transition_occurred=True,
            transition_reason="close",
            details=f"Session closed with total_deposited={session.total_deposited}",
        )

    def _create_result(
        self,
        session: Session,
        previous_session: Session,
        transition_occurred: bool,
        transition_reason: str,
        details: str,
    ) -> RolloverResult:
        """Создание результата перехода."""
        logger.debug("session %d rollover: %s (%s)", session.id, transition_reason, details)
        return RolloverResult(
            session=session,
            previous_session=previous_session,
            option=session.rollover_option,
            transition_occurred=transition_occurred,
            transition_reason=transition_reason,
            details=details,
        )
