"""Нормализация ошибок внешних переводов."""

from mintsale.core.errors import SaleError, TransferFailedError


def as_transfer_error(exc: Exception, **details: object) -> SaleError:
    """Доменные ошибки пропускаются как есть, остальные оборачиваются в TransferFailed."""
    if isinstance(exc, SaleError):
        return exc
    error = TransferFailedError(f"{type(exc).__name__}: {exc}", **details)
    error.__cause__ = exc
    return error
