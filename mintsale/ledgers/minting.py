"""MintingController — конверсия депозита в items по clearing price.

Порядок проверок mint/forgo:
1. amount > 0
2. Окно минтинга [minting_start, minting_end]
3. Supply не исчерпан (только mint)
4. Clearing price эпохи (lazy, фиксируется при первом успешном вызове)
5. deposit >= amount >= price

mint:
    items = min(amount // price, max_supply)
    cost  = items * price  → списывается с депозита и total_deposited,
                             зачисляется координатору после выдачи items
    Остаток amount - cost остаётся на депозите пользователя.

forgo:
    Выход из депозита посреди окна минтинга с выплатой за вычетом штрафа.
"""

import logging
from dataclasses import dataclass
from threading import Lock

from mintsale.core.domain.session import Session
from mintsale.core.errors import (
    InsufficientDepositsError,
    InvalidAmountError,
    MintInProgressError,
    NonMintingError,
    SoldOutError,
)
from mintsale.core.interfaces import ItemLedger
from mintsale.ledgers.allocation import AllocationLedger, WithdrawalReceipt
from mintsale.ledgers.rewards import RewardsLedger
from mintsale.ledgers.session_store import SessionStore
from mintsale.ledgers.transfers import as_transfer_error

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class MintReceipt:
    """Результат mint."""

    user: str
    session_id: int
    item_ids: tuple[int, ...]  # Выданные items, по возрастанию
    price: int  # Clearing price эпохи
    cost: int  # items * price
    remaining_deposit: int  # Остаток депозита пользователя

    @property
    def items_minted(self) -> int:
        return len(self.item_ids)


# =============================================================================
# CONTROLLER
# =============================================================================


class MintingController:
    """Mint и forgo в окне минтинга."""

    def __init__(
        self,
        store: SessionStore,
        allocation: AllocationLedger,
        rewards: RewardsLedger,
        items: ItemLedger,
    ) -> None:
        self._store = store
        self._allocation = allocation
        self._rewards = rewards
        self._items = items
        self._lock = Lock()
        self._in_flight: set[int] = set()

    def mint(self, user: str, session_id: int, amount: int, now: int) -> MintReceipt:
        """Покупка items на amount из депозита.

        Списание и сдвиг item id коммитятся до выдачи items; выручка
        зачисляется координатору только после выдачи всех items. Пока items
        выдаются, повторный mint той же сессии отклоняется: item id
        остаются непрерывными при откате.

        Raises:
            InvalidAmountError: amount <= 0
            NonMintingError: вне окна минтинга
            SoldOutError: supply исчерпан
            InsufficientDepositsError: amount > депозита или amount < price
            MintInProgressError: выдача items другого mint сессии не завершена
            TransferFailedError: перевод item не выполнен (состояние восстановлено)
        """
        priced = self._gate(user, session_id, amount, now, require_supply=True)
        price = priced.result_price
        items = min(amount // price, priced.max_supply)
        cost = items * price

        with self._lock:
            if session_id in self._in_flight:
                raise MintInProgressError(session_id)
            self._in_flight.add(session_id)
        try:
            prior_session = self._store.get(session_id)
            prior_deposit = self._allocation.find(user, session_id)

            debited, updated = self._allocation.debit(priced, user, cost)
            first = debited.next_item_index
            item_ids = tuple(range(first, first + items))
            minted = debited.model_copy(
                update={
                    "next_item_index": first + items,
                    "max_supply": debited.max_supply - items,
                }
            )
            self._store.replace(minted)

            transferred: list[int] = []
            try:
                for item_id in item_ids:
                    self._items.transfer_item(
                        minted.item_collection_ref, minted.escrow_account, user, item_id
                    )
                    transferred.append(item_id)
            except Exception as exc:
                self._allocation.undo(
                    minted,
                    prior_session,
                    updated,
                    prior_deposit,
                    -cost,
                    updated.loss_penalty,
                    next_item_index=items,
                    max_supply=-items,
                )
                self._return_items(minted, user, transferred)
                raise as_transfer_error(exc, session_id=session_id, user=user, item_ids=item_ids)
        finally:
            with self._lock:
                self._in_flight.discard(session_id)

        self._rewards.credit(minted.coordinator, minted.deposit_asset_ref, cost)
        logger.debug(
            "mint user=%s session=%d items=%d..%d price=%d",
            user, session_id, first, first + items - 1, price,
        )
        return MintReceipt(
            user=user,
            session_id=session_id,
            item_ids=item_ids,
            price=price,
            cost=cost,
            remaining_deposit=updated.amount,
        )

    def forgo(self, user: str, session_id: int, amount: int, now: int) -> WithdrawalReceipt:
        """Отказ от items: возврат amount за вычетом штрафа.

        Raises:
            те же, что mint
        """
        priced = self._gate(user, session_id, amount, now)
        return self._allocation.release(priced, user, amount)

    def _return_items(self, session: Session, user: str, item_ids: list[int]) -> None:
        """Возврат уже выданных items в escrow при откате mint."""
        for item_id in reversed(item_ids):
            try:
                self._items.transfer_item(
                    session.item_collection_ref, user, session.escrow_account, item_id
                )
            except Exception as exc:
                logger.error(
                    "session %d: item %d stuck with %s after failed mint",
                    session.id, item_id, user,
                )
                raise as_transfer_error(exc, session_id=session.id, user=user, item_id=item_id)

    def _gate(
        self,
        user: str,
        session_id: int,
        amount: int,
        now: int,
        require_supply: bool = False,
    ) -> Session:
        """Общие предусловия mint/forgo. Возвращает сессию с ценой (не записанной).

        forgo не требует supply: после распродажи депозит можно вернуть.
        """
        if amount <= 0:
            raise InvalidAmountError(amount)
        session = self._store.get(session_id)
        if not session.is_minting_open(now):
            raise NonMintingError(now, session.minting_start, session.minting_end)
        if require_supply and session.max_supply == 0:
            raise SoldOutError(session_id)

        priced = session.with_fixed_price()
        available = self._allocation.available(user, session_id)
        if available < amount or amount < priced.result_price:
            raise InsufficientDepositsError(amount, available, priced.result_price)
        return priced
