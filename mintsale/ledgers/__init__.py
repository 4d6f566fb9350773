"""Ledgers — хранилище сессий, депозиты, минтинг и выручка координаторов.

- SessionStore: сессии и их идентификаторы
- AllocationLedger: депозиты пользователей и loss penalty
- MintingController: mint/forgo по clearing price
- RewardsLedger: выручка координаторов
"""

from .allocation import AllocationLedger, WithdrawalReceipt
from .minting import MintingController, MintReceipt
from .rewards import RewardsLedger
from .session_store import SessionStore

__all__ = [
    "AllocationLedger",
    "WithdrawalReceipt",
    "MintingController",
    "MintReceipt",
    "RewardsLedger",
    "SessionStore",
]
