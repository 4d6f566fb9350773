"""AllocationLedger — депозиты пользователей в окне аллокации.

Единственный владелец записей UserDeposit (ключ user × session).
Инвариант: Session.total_deposited == Σ UserDeposit.amount по сессии.

Порядок каждой операции:
1. Проверка предусловий (окно, сумма, баланс) — без мутаций
2. Commit нового состояния (депозит + total_deposited)
3. Внешний перевод актива
4. При ошибке перевода — компенсация (undo), ошибка пробрасывается

Re-entrant вызов из перевода видит закоммиченное состояние и может
закоммитить поверх него; undo поэтому снимает операцию по дельтам.
"""

import logging
from dataclasses import dataclass
from threading import Lock

from mintsale.core.domain.deposit import UserDeposit
from mintsale.core.domain.session import Session
from mintsale.core.errors import (
    InsufficientDepositsError,
    InvalidAmountError,
    NonAllocationError,
)
from mintsale.core.interfaces import AssetLedger
from mintsale.core.math.fixed_point import checked_sub
from mintsale.core.math.pricing import (
    forfeited_amount,
    loss_penalty,
    penalty_payout,
    unweighted_penalty,
    weighted_penalty,
)
from mintsale.ledgers.session_store import SessionStore
from mintsale.ledgers.transfers import as_transfer_error

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class WithdrawalReceipt:
    """Результат выхода из депозита (withdraw или forgo)."""

    user: str
    session_id: int
    amount: int  # Списано с депозита
    loss_penalty: int  # Применённый штраф, fixed-point
    forfeited: int  # Удержано штрафом (остаётся в custody)
    payout: int  # Переведено пользователю
    post_close: bool  # Выход после Close rollover


# =============================================================================
# LEDGER
# =============================================================================


class AllocationLedger:
    """Депозиты пользователей и их time-weighted штрафы."""

    def __init__(self, store: SessionStore, assets: AssetLedger) -> None:
        self._store = store
        self._assets = assets
        self._lock = Lock()
        self._deposits: dict[tuple[str, int], UserDeposit] = {}
        self._pending_in: dict[tuple[str, int], int] = {}

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, user: str, session_id: int) -> UserDeposit:
        """Депозит пользователя; пустая запись, если депозитов не было."""
        with self._lock:
            deposit = self._deposits.get((user, session_id))
        return deposit or UserDeposit(user=user, session_id=session_id)

    def find(self, user: str, session_id: int) -> UserDeposit | None:
        """Запись депозита или None (для снапшотов при откате)."""
        return self._snapshot(user, session_id)

    def deposits_for_session(self, session_id: int) -> list[UserDeposit]:
        with self._lock:
            return [d for (_, sid), d in self._deposits.items() if sid == session_id]

    def deposits_sum(self, session_id: int) -> int:
        return sum(d.amount for d in self.deposits_for_session(session_id))

    def available(self, user: str, session_id: int) -> int:
        """Депозит за вычетом сумм, перевод которых ещё не завершён."""
        with self._lock:
            deposit = self._deposits.get((user, session_id))
            pending = self._pending_in.get((user, session_id), 0)
        return (deposit.amount if deposit else 0) - pending

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def deposit(self, user: str, session_id: int, amount: int, now: int) -> UserDeposit:
        """Депозит в окне [allocation_start, allocation_end].

        Пока перевод не завершён, amount не доступен для вывода: re-entrant
        withdraw видит только уже оплаченную часть депозита.

        Raises:
            InvalidAmountError: amount <= 0
            NonAllocationError: вне окна аллокации
            TransferFailedError: перевод актива не выполнен (состояние восстановлено)
        """
        if amount <= 0:
            raise InvalidAmountError(amount)
        session = self._store.get(session_id)
        if not session.is_allocation_open(now):
            raise NonAllocationError(now, session.allocation_start, session.allocation_end)

        current = self.get(user, session_id)
        incremental = loss_penalty(amount, session.allocation_start, session.allocation_end, now)
        updated = current.model_copy(
            update={
                "amount": current.amount + amount,
                "loss_penalty": weighted_penalty(
                    current.loss_penalty, current.amount, incremental, amount
                ),
            }
        )

        prior = self._snapshot(user, session_id)
        committed = session.model_copy(update={"total_deposited": session.total_deposited + amount})
        self._commit(committed, updated)
        self._hold(updated.key, amount)
        try:
            self._assets.transfer_in(session.deposit_asset_ref, user, amount)
        except Exception as exc:
            self.undo(committed, session, updated, prior, amount, incremental)
            raise as_transfer_error(exc, session_id=session_id, user=user, amount=amount)
        finally:
            self._hold(updated.key, -amount)

        logger.debug(
            "deposit user=%s session=%d amount=%d penalty=%d",
            user, session_id, amount, updated.loss_penalty,
        )
        return updated

    def withdraw(self, user: str, session_id: int, amount: int, now: int) -> WithdrawalReceipt:
        """Вывод депозита.

        Разрешён в окне аллокации либо после Close rollover. Если после
        закрытия депозит пользователя меньше clearing price (он не мог
        купить ни одного item), штраф обнуляется.

        Raises:
            InvalidAmountError: amount <= 0
            NonAllocationError: вне окна аллокации и сессия не закрыта
            InsufficientDepositsError: amount больше оплаченного депозита
            TransferFailedError: перевод не выполнен (состояние восстановлено)
        """
        if amount <= 0:
            raise InvalidAmountError(amount)
        session = self._store.get(session_id)
        if session.is_allocation_open(now):
            post_close = False
        elif session.is_wound_down(now):
            post_close = True
        else:
            raise NonAllocationError(now, session.allocation_start, session.allocation_end)

        current = self.get(user, session_id)
        available = self.available(user, session_id)
        if amount > available:
            raise InsufficientDepositsError(amount, available)

        penalty = current.loss_penalty
        settled = session
        if post_close:
            settled = session.with_fixed_price()
            if current.amount < settled.result_price:
                penalty = 0

        return self._exit(session, settled, current, amount, penalty, post_close)

    def release(self, session: Session, user: str, amount: int) -> WithdrawalReceipt:
        """Выход из депозита с выплатой за вычетом штрафа (путь forgo).

        session может нести ещё не записанную clearing price; при откате
        цена снимается, только если её никто не наблюдал. Предусловия
        (окно, цена) проверяет вызывающий.
        """
        current = self.get(user, session.id)
        available = self.available(user, session.id)
        if amount > available:
            raise InsufficientDepositsError(amount, available)
        return self._exit(
            self._store.get(session.id),
            session,
            current,
            amount,
            current.loss_penalty,
            post_close=False,
        )

    def debit(self, session: Session, user: str, amount: int) -> tuple[Session, UserDeposit]:
        """Списание без выплаты (путь mint). Возвращает новые записи."""
        current = self.get(user, session.id)
        updated = current.model_copy(
            update={"amount": checked_sub(current.amount, amount, "deposit")}
        )
        new_session = session.model_copy(
            update={"total_deposited": checked_sub(session.total_deposited, amount, "total_deposited")}
        )
        self._commit(new_session, updated)
        return new_session, updated

    def undo(
        self,
        committed: Session,
        prior: Session,
        deposit: UserDeposit,
        prior_deposit: UserDeposit | None,
        delta: int,
        delta_penalty: int,
        **counters: int,
    ) -> None:
        """Компенсация закоммиченной операции, внешний перевод которой не прошёл.

        Если после commit записи никто не менял, восстанавливаются снапшоты.
        Иначе re-entrant вызов уже закоммитил поверх, и операция снимается
        по дельтам с текущих записей: зафиксированная вложенным вызовом
        цена эпохи сохраняется.

        Args:
            committed: Сессия, записанная операцией
            prior: Сессия до операции
            deposit: Депозит, записанный операцией
            prior_deposit: Депозит до операции (None, если его не было)
            delta: Изменение депозита и total_deposited (+ deposit, - выход/mint)
            delta_penalty: Штраф изменённой суммы
            **counters: Изменения прочих полей сессии (next_item_index, max_supply)
        """
        current = self._store.get(committed.id)
        if current == committed:
            self._store.replace(prior)
        else:
            update = {"total_deposited": checked_sub(current.total_deposited, delta, "total_deposited")}
            for name, change in counters.items():
                update[name] = getattr(current, name) - change
            self._store.replace(current.model_copy(update=update))

        with self._lock:
            record = self._deposits.get(deposit.key)
            if record == deposit:
                if prior_deposit is None:
                    self._deposits.pop(deposit.key, None)
                else:
                    self._deposits[deposit.key] = prior_deposit
                return
            record = record or UserDeposit(user=deposit.user, session_id=deposit.session_id)
            remaining = checked_sub(record.amount, delta, "deposit")
            if delta > 0:
                penalty = unweighted_penalty(record.loss_penalty, record.amount, delta_penalty, delta)
            else:
                penalty = weighted_penalty(record.loss_penalty, record.amount, delta_penalty, -delta)
            self._deposits[deposit.key] = record.model_copy(
                update={"amount": remaining, "loss_penalty": penalty}
            )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _hold(self, key: tuple[str, int], amount: int) -> None:
        with self._lock:
            pending = self._pending_in.get(key, 0) + amount
            if pending:
                self._pending_in[key] = pending
            else:
                self._pending_in.pop(key, None)

    def _exit(
        self,
        prior: Session,
        session: Session,
        current: UserDeposit,
        amount: int,
        penalty: int,
        post_close: bool,
    ) -> WithdrawalReceipt:
        user, session_id = current.user, current.session_id
        updated = current.model_copy(
            update={
                "amount": checked_sub(current.amount, amount, "deposit"),
                "loss_penalty": penalty,
            }
        )
        receipt = WithdrawalReceipt(
            user=user,
            session_id=session_id,
            amount=amount,
            loss_penalty=penalty,
            forfeited=forfeited_amount(amount, penalty),
            payout=penalty_payout(amount, penalty),
            post_close=post_close,
        )

        prior_deposit = self._snapshot(user, session_id)
        committed = session.model_copy(
            update={"total_deposited": checked_sub(session.total_deposited, amount, "total_deposited")}
        )
        self._commit(committed, updated)
        try:
            if receipt.payout > 0:
                self._assets.transfer_out(session.deposit_asset_ref, user, receipt.payout)
        except Exception as exc:
            self.undo(committed, prior, updated, prior_deposit, -amount, current.loss_penalty)
            raise as_transfer_error(exc, session_id=session_id, user=user, amount=receipt.payout)

        if receipt.forfeited:
            # Удержанная сумма никуда не зачисляется и остаётся в custody
            logger.warning(
                "session %d: %d forfeited by %s stays in custody unallocated",
                session_id, receipt.forfeited, user,
            )
        return receipt

    def _snapshot(self, user: str, session_id: int) -> UserDeposit | None:
        with self._lock:
            return self._deposits.get((user, session_id))

    def _commit(self, session: Session, deposit: UserDeposit) -> None:
        self._store.replace(session)
        with self._lock:
            self._deposits[deposit.key] = deposit
