"""RewardsLedger — выручка координаторов от успешных mint.

Баланс (coordinator × deposit asset) растёт монотонно до вывода, затем
обнуляется. Обнуление происходит ДО внешнего перевода: re-entrant вызов
во время перевода видит нулевой баланс и не может вывести его повторно.
"""

import logging
from collections import defaultdict
from threading import Lock

from mintsale.core.errors import InvalidAmountError
from mintsale.core.interfaces import AssetLedger
from mintsale.ledgers.transfers import as_transfer_error

logger = logging.getLogger(__name__)


class RewardsLedger:
    """Накопленная выручка координаторов."""

    def __init__(self, assets: AssetLedger) -> None:
        self._assets = assets
        self._lock = Lock()
        self._balances: dict[tuple[str, str], int] = defaultdict(int)

    def balance_of(self, coordinator: str, asset_ref: str) -> int:
        with self._lock:
            return self._balances[(coordinator, asset_ref)]

    def credit(self, coordinator: str, asset_ref: str, amount: int) -> int:
        """Зачисление выручки. Возвращает новый баланс."""
        if amount < 0:
            raise InvalidAmountError(amount)
        with self._lock:
            self._balances[(coordinator, asset_ref)] += amount
            return self._balances[(coordinator, asset_ref)]

    def withdraw(self, coordinator: str, asset_ref: str) -> int:
        """Вывод всей выручки координатора по активу.

        Returns:
            Выведенная сумма (0, если выводить нечего — перевод не вызывается)

        Raises:
            TransferFailedError: перевод не выполнен (баланс восстановлен)
        """
        with self._lock:
            amount = self._balances.pop((coordinator, asset_ref), 0)

        if amount == 0:
            return 0

        try:
            self._assets.transfer_out(asset_ref, coordinator, amount)
        except Exception as exc:
            self.credit(coordinator, asset_ref, amount)
            raise as_transfer_error(exc, coordinator=coordinator, asset_ref=asset_ref, amount=amount)

        logger.info("rewards withdrawn coordinator=%s asset=%s amount=%d", coordinator, asset_ref, amount)
        return amount
