"""
Domain errors для mintsale.

Каждое нарушение предусловия — отдельный класс с ErrorCode и context,
содержащим значения для диагностики (текущее время, нарушенная граница,
балансы). Все ошибки fail-atomic: операция прерывается без частичных
изменений состояния и без движения активов.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Коды доменных ошибок."""

    INVALID_SESSION = "INVALID_SESSION"
    INVALID_BOUNDS = "INVALID_BOUNDS"
    NON_ALLOCATION = "NON_ALLOCATION"
    NON_MINTING = "NON_MINTING"
    INSUFFICIENT_DEPOSITS = "INSUFFICIENT_DEPOSITS"
    MINTING_NOT_OVER = "MINTING_NOT_OVER"
    INVALID_COORDINATOR = "INVALID_COORDINATOR"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    SOLD_OUT = "SOLD_OUT"
    MINT_IN_PROGRESS = "MINT_IN_PROGRESS"
    TRANSFER_FAILED = "TRANSFER_FAILED"
    SESSION_NOT_CLOSED = "SESSION_NOT_CLOSED"
    LEDGER_INVARIANT_VIOLATION = "LEDGER_INVARIANT_VIOLATION"


@dataclass(eq=False)
class SaleError(Exception):
    """Базовая доменная ошибка: код, сообщение и диагностический context."""

    code: ErrorCode
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidSessionError(SaleError):
    """Сессия не создана или уже удалена."""

    def __init__(self, session_id: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SESSION,
            message=f"Session {session_id} does not exist",
            context={"session_id": session_id},
        )


class InvalidBoundsError(SaleError):
    """Некорректный порядок временных границ или нулевой supply."""

    def __init__(self, reason: str, **bounds: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_BOUNDS,
            message=f"Invalid session bounds: {reason}",
            context=dict(bounds),
        )


class NonAllocationError(SaleError):
    """Операция вне окна аллокации (и не post-close withdraw)."""

    def __init__(self, now: int, allocation_start: int, allocation_end: int) -> None:
        super().__init__(
            code=ErrorCode.NON_ALLOCATION,
            message=f"now={now} outside allocation window [{allocation_start}, {allocation_end}]",
            context={
                "now": now,
                "allocation_start": allocation_start,
                "allocation_end": allocation_end,
            },
        )


class NonMintingError(SaleError):
    """Операция вне окна минтинга."""

    def __init__(self, now: int, minting_start: int, minting_end: int) -> None:
        super().__init__(
            code=ErrorCode.NON_MINTING,
            message=f"now={now} outside minting window [{minting_start}, {minting_end}]",
            context={"now": now, "minting_start": minting_start, "minting_end": minting_end},
        )


class InsufficientDepositsError(SaleError):
    """Недостаточный депозит или сумма ниже цены одного item."""

    def __init__(self, requested: int, available: int, price: int | None = None) -> None:
        if price is not None and requested < price:
            message = f"amount {requested} below clearing price {price}"
        else:
            message = f"amount {requested} exceeds deposit {available}"
        super().__init__(
            code=ErrorCode.INSUFFICIENT_DEPOSITS,
            message=message,
            context={"requested": requested, "available": available, "price": price},
        )


class MintingNotOverError(SaleError):
    """Rollover до окончания окна минтинга."""

    def __init__(self, now: int, minting_end: int) -> None:
        super().__init__(
            code=ErrorCode.MINTING_NOT_OVER,
            message=f"now={now} before minting end {minting_end}",
            context={"now": now, "minting_end": minting_end},
        )


class InvalidCoordinatorError(SaleError):
    """Вызов, разрешённый только координатору сессии."""

    def __init__(self, caller: str, coordinator: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_COORDINATOR,
            message=f"{caller!r} is not the session coordinator",
            context={"caller": caller, "coordinator": coordinator},
        )


class InvalidAmountError(SaleError):
    """Неположительная сумма операции."""

    def __init__(self, amount: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_AMOUNT,
            message=f"amount must be positive, got {amount}",
            context={"amount": amount},
        )


class SoldOutError(SaleError):
    """Supply сессии исчерпан."""

    def __init__(self, session_id: int) -> None:
        super().__init__(
            code=ErrorCode.SOLD_OUT,
            message=f"Session {session_id} has no remaining supply",
            context={"session_id": session_id},
        )


class MintInProgressError(SaleError):
    """Повторный mint сессии, пока выдача items предыдущего не завершена."""

    def __init__(self, session_id: int) -> None:
        super().__init__(
            code=ErrorCode.MINT_IN_PROGRESS,
            message=f"Session {session_id} is transferring items of another mint",
            context={"session_id": session_id},
        )


class TransferFailedError(SaleError):
    """Внешний перевод актива или item не выполнен."""

    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(
            code=ErrorCode.TRANSFER_FAILED,
            message=f"Transfer failed: {reason}",
            context=dict(details),
        )


class SessionNotClosedError(SaleError):
    """Удаление сессии, которая не закрыта или ещё держит депозиты."""

    def __init__(self, session_id: int, closed: bool, total_deposited: int) -> None:
        super().__init__(
            code=ErrorCode.SESSION_NOT_CLOSED,
            message=f"Session {session_id} cannot be cleared",
            context={
                "session_id": session_id,
                "closed": closed,
                "total_deposited": total_deposited,
            },
        )


class LedgerInvariantViolation(SaleError):
    """total_deposited сессии не совпадает с суммой депозитов пользователей."""

    def __init__(self, session_id: int, total_deposited: int, deposits_sum: int) -> None:
        super().__init__(
            code=ErrorCode.LEDGER_INVARIANT_VIOLATION,
            message=(
                f"Session {session_id}: total_deposited={total_deposited} "
                f"!= sum(deposits)={deposits_sum}"
            ),
            context={
                "session_id": session_id,
                "total_deposited": total_deposited,
                "deposits_sum": deposits_sum,
            },
        )
