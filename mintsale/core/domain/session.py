"""
Session — Модель сессии продажи

Immutable Pydantic модели:
- SessionConfig: неизменяемые параметры сессии (identity + форма окон)
- Session: снапшот runtime-состояния сессии

Временные границы: allocation_start < allocation_end <= minting_start < minting_end.
Равенство allocation_end == minting_start допускает cooldown нулевой длины.
Все изменения сессии создают новый экземпляр через model_copy(update=...).
"""

from enum import Enum

from pydantic import BaseModel, Field

from mintsale.core.math.pricing import clearing_price

# =============================================================================
# ENUMS
# =============================================================================


class RolloverOption(str, Enum):
    """Политика после окончания окна минтинга."""

    RESTART = "RESTART"
    GUARANTEED_MINT = "GUARANTEED_MINT"
    CLOSE = "CLOSE"


# =============================================================================
# CONFIG
# =============================================================================


class SessionConfig(BaseModel):
    """
    Параметры создания сессии.

    Порядок границ и max_supply > 0 проверяются при создании сессии
    (SessionStore.create), а не здесь: нарушение — доменная ошибка
    InvalidBounds, а не ошибка формата.
    """

    item_collection_ref: str = Field(..., min_length=1, description="Ссылка на коллекцию items")
    coordinator: str = Field(..., min_length=1, description="Координатор сессии")
    deposit_asset_ref: str = Field(..., min_length=1, description="Ссылка на deposit asset")

    allocation_start: int = Field(..., ge=0, description="Начало окна аллокации (unix s)")
    allocation_end: int = Field(..., ge=0, description="Конец окна аллокации (unix s)")
    minting_start: int = Field(..., ge=0, description="Начало окна минтинга (unix s)")
    minting_end: int = Field(..., ge=0, description="Конец окна минтинга (unix s)")

    min_price: int = Field(..., ge=0, description="Минимальная цена за item")
    max_supply: int = Field(..., ge=0, description="Количество items в продаже")
    rollover_option: RolloverOption = Field(..., description="Политика rollover")

    model_config = {"frozen": True}

    def bounds_violation(self) -> str | None:
        """Описание нарушения порядка границ или None, если всё корректно."""
        if not self.allocation_start < self.allocation_end:
            return "allocation_start must be < allocation_end"
        if not self.allocation_end <= self.minting_start:
            return "allocation_end must be <= minting_start"
        if not self.minting_start < self.minting_end:
            return "minting_start must be < minting_end"
        if self.max_supply <= 0:
            return "max_supply must be > 0"
        if self.min_price <= 0:
            return "min_price must be > 0"
        return None


# =============================================================================
# SESSION MODEL
# =============================================================================


class Session(BaseModel):
    """
    Снапшот сессии.

    Identity-поля (config) неизменны. Временные границы переписывает только
    Restart rollover; result_price обнуляет только Restart rollover.
    """

    id: int = Field(..., ge=1, description="Монотонный идентификатор сессии")
    config: SessionConfig = Field(..., description="Параметры создания")

    allocation_start: int = Field(..., ge=0)
    allocation_end: int = Field(..., ge=0)
    minting_start: int = Field(..., ge=0)
    minting_end: int = Field(..., ge=0)

    max_supply: int = Field(..., ge=0, description="Оставшийся supply")
    total_deposited: int = Field(0, ge=0, description="Сумма живых депозитов")
    result_price: int = Field(0, ge=0, description="Clearing price эпохи (0 = не вычислена)")
    next_item_index: int = Field(0, ge=0, description="Следующий item id")

    epoch: int = Field(0, ge=0, description="Номер эпохи (растёт при Restart)")
    closed: bool = Field(False, description="Close rollover применён")

    model_config = {"frozen": True}

    @classmethod
    def from_config(cls, session_id: int, config: SessionConfig) -> "Session":
        """Новая сессия в начальном состоянии."""
        return cls(
            id=session_id,
            config=config,
            allocation_start=config.allocation_start,
            allocation_end=config.allocation_end,
            minting_start=config.minting_start,
            minting_end=config.minting_end,
            max_supply=config.max_supply,
        )

    # Identity

    @property
    def coordinator(self) -> str:
        return self.config.coordinator

    @property
    def deposit_asset_ref(self) -> str:
        return self.config.deposit_asset_ref

    @property
    def item_collection_ref(self) -> str:
        return self.config.item_collection_ref

    @property
    def min_price(self) -> int:
        return self.config.min_price

    @property
    def rollover_option(self) -> RolloverOption:
        return self.config.rollover_option

    @property
    def escrow_account(self) -> str:
        """Счёт, на котором сессия держит депозиты и непроданные items."""
        return f"mintsale:session:{self.id}"

    # Windows

    @property
    def allocation_period(self) -> int:
        return self.allocation_end - self.allocation_start

    @property
    def cooldown_period(self) -> int:
        return self.minting_start - self.allocation_end

    @property
    def minting_period(self) -> int:
        return self.minting_end - self.minting_start

    def is_allocation_open(self, now: int) -> bool:
        return self.allocation_start <= now <= self.allocation_end

    def is_minting_open(self, now: int) -> bool:
        return self.minting_start <= now <= self.minting_end

    def is_minting_over(self, now: int) -> bool:
        return now >= self.minting_end

    # Pricing

    def quoted_price(self) -> int:
        """
        Clearing price эпохи: кэш, если уже зафиксирована, иначе расчёт
        по текущему total_deposited. Исчерпанный supply → кэш (возможно 0).
        """
        if self.result_price != 0 or self.max_supply == 0:
            return self.result_price
        return clearing_price(self.total_deposited, self.max_supply, self.min_price)

    def with_fixed_price(self) -> "Session":
        """Снапшот с зафиксированной clearing price (no-op, если уже зафиксирована)."""
        if self.result_price != 0:
            return self
        return self.model_copy(update={"result_price": self.quoted_price()})

    def is_wound_down(self, now: int) -> bool:
        """Сессия закрыта через Close rollover и окно минтинга позади."""
        return (
            self.rollover_option == RolloverOption.CLOSE
            and self.closed
            and now >= self.minting_end
        )
