"""
SaleEngine — операционная поверхность mintsale

Связывает SessionStore, AllocationLedger, MintingController,
RolloverStateMachine и RewardsLedger с внешними коллабораторами
(AssetLedger, ItemLedger, Clock).

Модель исполнения:
- Каждая публичная операция — одна сериализуемая транзакция
- Операции одной сессии упорядочены re-entrant lock'ом сессии; сессии независимы
- Часы читаются ровно один раз за операцию
- Состояние фиксируется до внешнего перевода; при сбое перевода восстанавливается
- Каждое отклонённое предусловие логируется (WARNING) и пробрасывается
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock, RLock
from typing import Any

from mintsale.core.contracts import validate_session_config, validate_session_snapshot
from mintsale.core.domain import Session, SessionConfig, UserDeposit
from mintsale.core.errors import (
    InvalidCoordinatorError,
    LedgerInvariantViolation,
    SaleError,
    SessionNotClosedError,
)
from mintsale.core.interfaces import (
    AssetLedger,
    Clock,
    InMemoryAssetLedger,
    InMemoryItemLedger,
    ItemLedger,
    SystemClock,
)
from mintsale.core.log_config import configure_logger
from mintsale.core.math.fixed_point import MAX_TIMESTAMP
from mintsale.ledgers import (
    AllocationLedger,
    MintingController,
    MintReceipt,
    RewardsLedger,
    SessionStore,
    WithdrawalReceipt,
)
from mintsale.lifecycle import RolloverResult, RolloverStateMachine, SessionPhase, session_phase


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class EngineConfig:
    """Конфигурация SaleEngine."""

    log_level: str = "INFO"
    structured_logging: bool = False

    # Проверка сырых параметров и снапшотов по JSON Schema
    validate_contracts: bool = True

    # Конец окна минтинга после GUARANTEED_MINT rollover
    max_timestamp: int = MAX_TIMESTAMP


# =============================================================================
# ENGINE
# =============================================================================


class SaleEngine:
    """Фасад над компонентами продажи."""

    def __init__(
        self,
        assets: AssetLedger | None = None,
        items: ItemLedger | None = None,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        """
        Args:
            assets: ledger deposit asset (default: InMemoryAssetLedger)
            items: ledger items (default: InMemoryItemLedger)
            clock: источник времени (default: SystemClock)
            config: конфигурация (default: EngineConfig())
        """
        self.config = config or EngineConfig()
        self.assets = assets or InMemoryAssetLedger()
        self.items = items or InMemoryItemLedger()
        self.clock = clock or SystemClock()
        self.logger = configure_logger(
            "mintsale.engine",
            level=self.config.log_level,
            structured=self.config.structured_logging,
        )

        self.store = SessionStore()
        self.allocation = AllocationLedger(self.store, self.assets)
        self.rewards = RewardsLedger(self.assets)
        self.minting = MintingController(self.store, self.allocation, self.rewards, self.items)
        self.rollover_machine = RolloverStateMachine(max_timestamp=self.config.max_timestamp)

        self._locks_guard = Lock()
        self._session_locks: dict[int, RLock] = {}
        self._rewards_lock = RLock()

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def create_session(self, config: SessionConfig) -> int:
        """Создание сессии. Raises InvalidBoundsError."""
        with self._operation("create_session", coordinator=config.coordinator):
            session_id = self.store.create(config)
        self.logger.info(
            "session %d created for %s (supply=%d, min_price=%d, rollover=%s)",
            session_id, config.coordinator, config.max_supply, config.min_price,
            config.rollover_option.value,
            extra={"session_id": session_id, "operation": "create_session"},
        )
        return session_id

    def create_session_from_mapping(self, data: Mapping[str, Any]) -> int:
        """Создание сессии из сырых параметров источника конфигурации.

        Raises:
            jsonschema.ValidationError: данные не соответствуют session_config
            pydantic.ValidationError: данные не проходят модель SessionConfig
            InvalidBoundsError: нарушен порядок окон
        """
        if self.config.validate_contracts:
            validate_session_config(dict(data))
        return self.create_session(SessionConfig.model_validate(dict(data)))

    def get_session(self, session_id: int) -> Session:
        """Снапшот сессии. Raises InvalidSessionError."""
        return self.store.get(session_id)

    def snapshot(self, session_id: int) -> dict[str, Any]:
        """JSON-снапшот сессии (проверенный по session_snapshot)."""
        data = self.store.get(session_id).model_dump(mode="json")
        if self.config.validate_contracts:
            validate_session_snapshot(data)
        return data

    def phase(self, session_id: int) -> SessionPhase:
        return session_phase(self.store.get(session_id), self.clock.now())

    def rollover(self, caller: str, session_id: int) -> RolloverResult:
        """Rollover после окончания окна минтинга (только координатор)."""
        with self._operation("rollover", session_id=session_id, caller=caller):
            now = self.clock.now()
            result = self.rollover_machine.apply(self.store.get(session_id), caller, now)
            self.store.replace(result.session)
        self.logger.info(
            "session %d rollover %s: %s",
            session_id, result.transition_reason, result.details,
            extra={"session_id": session_id, "operation": "rollover", "now": now},
        )
        return result

    def clear_session(self, caller: str, session_id: int) -> Session:
        """Удаление закрытой и опустошённой сессии (только координатор).

        Raises:
            InvalidCoordinatorError: caller не координатор
            SessionNotClosedError: сессия не закрыта или держит депозиты
        """
        with self._operation("clear_session", session_id=session_id, caller=caller):
            session = self.store.get(session_id)
            if caller != session.coordinator:
                raise InvalidCoordinatorError(caller, session.coordinator)
            if not session.closed or session.total_deposited != 0:
                raise SessionNotClosedError(session_id, session.closed, session.total_deposited)
            cleared = self.store.clear(session_id)
        with self._locks_guard:
            self._session_locks.pop(session_id, None)
        self.logger.info("session %d cleared", session_id, extra={"session_id": session_id})
        return cleared

    # -------------------------------------------------------------------------
    # Allocation
    # -------------------------------------------------------------------------

    def deposit(self, user: str, session_id: int, amount: int) -> UserDeposit:
        with self._operation("deposit", session_id=session_id, user=user, amount=amount):
            now = self.clock.now()
            deposit = self.allocation.deposit(user, session_id, amount, now)
        self.logger.info(
            "deposit %s -> session %d: %d (balance=%d, penalty=%d)",
            user, session_id, amount, deposit.amount, deposit.loss_penalty,
            extra={"session_id": session_id, "operation": "deposit", "now": now},
        )
        return deposit

    def withdraw(self, user: str, session_id: int, amount: int) -> WithdrawalReceipt:
        with self._operation("withdraw", session_id=session_id, user=user, amount=amount):
            now = self.clock.now()
            receipt = self.allocation.withdraw(user, session_id, amount, now)
        self._log_exit("withdraw", receipt, now)
        return receipt

    def get_deposit(self, user: str, session_id: int) -> UserDeposit:
        self.store.get(session_id)
        return self.allocation.get(user, session_id)

    # -------------------------------------------------------------------------
    # Minting
    # -------------------------------------------------------------------------

    def mint(self, user: str, session_id: int, amount: int) -> MintReceipt:
        with self._operation("mint", session_id=session_id, user=user, amount=amount):
            now = self.clock.now()
            receipt = self.minting.mint(user, session_id, amount, now)
        self.logger.info(
            "mint %s <- session %d: %d items at %d (remaining deposit=%d)",
            user, session_id, receipt.items_minted, receipt.price, receipt.remaining_deposit,
            extra={"session_id": session_id, "operation": "mint", "now": now},
        )
        return receipt

    def forgo(self, user: str, session_id: int, amount: int) -> WithdrawalReceipt:
        with self._operation("forgo", session_id=session_id, user=user, amount=amount):
            now = self.clock.now()
            receipt = self.minting.forgo(user, session_id, amount, now)
        self._log_exit("forgo", receipt, now)
        return receipt

    def quote_clearing_price(self, session_id: int) -> int:
        """Текущая clearing price (кэш эпохи или расчёт по текущим депозитам)."""
        return self.store.get(session_id).quoted_price()

    # -------------------------------------------------------------------------
    # Rewards
    # -------------------------------------------------------------------------

    def rewards_balance(self, coordinator: str, asset_ref: str) -> int:
        return self.rewards.balance_of(coordinator, asset_ref)

    def withdraw_rewards(self, coordinator: str, asset_ref: str) -> int:
        with self._rewards_lock, self._operation("withdraw_rewards", coordinator=coordinator):
            amount = self.rewards.withdraw(coordinator, asset_ref)
        self.logger.info(
            "rewards %s/%s withdrawn: %d", coordinator, asset_ref, amount,
            extra={"operation": "withdraw_rewards"},
        )
        return amount

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    def audit_session(self, session_id: int) -> None:
        """Проверка total_deposited == Σ депозитов.

        Raises:
            LedgerInvariantViolation: инвариант нарушен
        """
        with self._session_lock(session_id):
            session = self.store.get(session_id)
            deposits_sum = self.allocation.deposits_sum(session_id)
        if session.total_deposited != deposits_sum:
            self.logger.error(
                "session %d ledger mismatch: total=%d sum=%d",
                session_id, session.total_deposited, deposits_sum,
                extra={"session_id": session_id, "operation": "audit"},
            )
            raise LedgerInvariantViolation(session_id, session.total_deposited, deposits_sum)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _session_lock(self, session_id: int) -> RLock:
        with self._locks_guard:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = self._session_locks[session_id] = RLock()
            return lock

    @contextmanager
    def _operation(self, name: str, session_id: int | None = None, **fields: Any) -> Iterator[None]:
        """Сериализация по сессии и логирование отклонённых предусловий."""
        lock = self._session_lock(session_id) if session_id is not None else None
        if lock is not None:
            lock.acquire()
        try:
            yield
        except SaleError as exc:
            self.logger.warning(
                "%s rejected: %s",
                name, exc,
                extra={
                    "operation": name,
                    "session_id": session_id,
                    "error_code": exc.code.value,
                    "error_context": exc.context,
                    **fields,
                },
            )
            raise
        finally:
            if lock is not None:
                lock.release()

    def _log_exit(self, name: str, receipt: WithdrawalReceipt, now: int) -> None:
        self.logger.info(
            "%s %s <- session %d: amount=%d payout=%d forfeited=%d",
            name, receipt.user, receipt.session_id, receipt.amount, receipt.payout, receipt.forfeited,
            extra={
                "session_id": receipt.session_id,
                "operation": name,
                "now": now,
                "post_close": receipt.post_close,
            },
        )
