"""
Интерфейсы внешних участников: время, ledger актива, ledger items.

Движок сам не перемещает активы и items: он вызывает эти интерфейсы после
commit собственного состояния. Перевод, который не состоялся, должен
закончиться исключением (TransferFailedError или любым другим), тогда
движок компенсирует операцию.

In-memory реализации используются в тестах и локальной симуляции.
"""

import time
from abc import ABC, abstractmethod
from collections import defaultdict
from threading import Lock

from mintsale.core.errors import TransferFailedError


# =============================================================================
# INTERFACES
# =============================================================================


class Clock(ABC):
    """Неубывающий источник времени (unix-секунды)."""

    @abstractmethod
    def now(self) -> int:
        ...


class AssetLedger(ABC):
    """Ledger взаимозаменяемого актива депозитов; средства движка лежат в custody."""

    @abstractmethod
    def transfer_in(self, asset_ref: str, account: str, amount: int) -> None:
        """Перевод amount со счёта account в custody движка."""
        ...

    @abstractmethod
    def transfer_out(self, asset_ref: str, account: str, amount: int) -> None:
        """Перевод amount из custody движка на счёт account."""
        ...


class ItemLedger(ABC):
    """Ledger неделимых items."""

    @abstractmethod
    def transfer_item(self, collection_ref: str, sender: str, recipient: str, item_id: int) -> None:
        """Передача item_id коллекции collection_ref от sender к recipient."""
        ...


# =============================================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================================


class SystemClock(Clock):
    """Системные часы, целые секунды."""

    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """Часы, которые двигает вызывающий (тесты); назад не идут."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, value: int) -> None:
        if value < self._now:
            raise ValueError(f"clock cannot go backwards: {value} < {self._now}")
        self._now = value

    def advance(self, seconds: int) -> int:
        self.set(self._now + seconds)
        return self._now


class InMemoryAssetLedger(AssetLedger):
    """Балансы счетов по активам плюс один custody-баланс на актив."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._custody: dict[str, int] = defaultdict(int)

    def fund(self, asset_ref: str, account: str, amount: int) -> None:
        """Начисление на счёт без источника (подготовка тестов)."""
        with self._lock:
            self._balances[(asset_ref, account)] += amount

    def balance_of(self, asset_ref: str, account: str) -> int:
        with self._lock:
            return self._balances[(asset_ref, account)]

    def custody_balance(self, asset_ref: str) -> int:
        with self._lock:
            return self._custody[asset_ref]

    def transfer_in(self, asset_ref: str, account: str, amount: int) -> None:
        with self._lock:
            available = self._balances[(asset_ref, account)]
            if amount < 0 or available < amount:
                raise TransferFailedError(
                    "insufficient balance",
                    asset_ref=asset_ref,
                    account=account,
                    amount=amount,
                    available=available,
                )
            self._balances[(asset_ref, account)] = available - amount
            self._custody[asset_ref] += amount

    def transfer_out(self, asset_ref: str, account: str, amount: int) -> None:
        with self._lock:
            available = self._custody[asset_ref]
            if amount < 0 or available < amount:
                raise TransferFailedError(
                    "insufficient custody balance",
                    asset_ref=asset_ref,
                    account=account,
                    amount=amount,
                    available=available,
                )
            self._custody[asset_ref] = available - amount
            self._balances[(asset_ref, account)] += amount


class InMemoryItemLedger(ItemLedger):
    """
    Карта владельцев items.

    Item, который ещё не перемещался, принадлежит тому, кто передаёт его
    первым (escrow сессии); дальше передать его может только владелец.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._owners: dict[tuple[str, int], str] = {}

    def owner_of(self, collection_ref: str, item_id: int) -> str | None:
        with self._lock:
            return self._owners.get((collection_ref, item_id))

    def items_of(self, collection_ref: str, owner: str) -> list[int]:
        with self._lock:
            return sorted(
                item_id
                for (collection, item_id), holder in self._owners.items()
                if collection == collection_ref and holder == owner
            )

    def transfer_item(self, collection_ref: str, sender: str, recipient: str, item_id: int) -> None:
        with self._lock:
            current = self._owners.get((collection_ref, item_id), sender)
            if current != sender:
                raise TransferFailedError(
                    "sender does not own item",
                    collection_ref=collection_ref,
                    item_id=item_id,
                    sender=sender,
                    owner=current,
                )
            self._owners[(collection_ref, item_id)] = recipient
