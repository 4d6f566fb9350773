"""
Pricing — clearing price и time-weighted loss penalty

Чистые функции без мутаций состояния.

ФОРМУЛЫ:
    clearing_price = max(floor(total_deposited / max_supply), min_price)

    span     = (allocation_end - 1) - allocation_start
    exponent = log2(ONE) / log2(span)
    penalty  = clamp((now - allocation_start) ^ exponent, 0, ONE)

    weighted = (new_penalty * new_amount + old_penalty * old_amount)
               / (old_amount + new_amount)

    payout   = amount - floor(penalty * amount / ONE)

Штраф выпуклый и монотонно растёт во времени: депозит в начале окна
аллокации почти ничего не теряет при выходе, депозит у самого конца
окна теряет почти всё.
"""

import math
from typing import Final

from mintsale.core.math.fixed_point import (
    ONE,
    clamp,
    log2_floor,
    mul_div_down,
    validate_fraction,
    validate_non_negative,
    validate_positive,
)

# log2(ONE): числитель показателя степени штрафа
LOG2_ONE: Final[int] = log2_floor(ONE)


# =============================================================================
# CLEARING PRICE
# =============================================================================


def clearing_price(total_deposited: int, max_supply: int, min_price: int) -> int:
    """
    Единая цена за item по итогам аллокации.

    Args:
        total_deposited: Сумма всех живых депозитов сессии
        max_supply: Оставшийся supply (> 0)
        min_price: Минимальная цена за item

    Returns:
        max(total_deposited // max_supply, min_price)

    Raises:
        ValueError: Если max_supply <= 0 или суммы отрицательные

    Examples:
        >>> clearing_price(20_000, 10_000, 1)
        2
        >>> clearing_price(5, 10, 3)
        3
    """
    validate_positive(max_supply, "max_supply")
    validate_non_negative(total_deposited, "total_deposited")
    validate_non_negative(min_price, "min_price")
    return max(total_deposited // max_supply, min_price)


# =============================================================================
# LOSS PENALTY
# =============================================================================


def loss_penalty(amount: int, allocation_start: int, allocation_end: int, now: int) -> int:
    """
    Штраф за депозит, сделанный в момент now.

    Граничные случаи:
    - amount == 0 или now <= allocation_start → 0
    - now >= allocation_end → ONE (формула не вычисляется)
    - log2(span) == 0 (окно 1-2 секунды) → ONE для любого elapsed > 0

    Args:
        amount: Размер депозита
        allocation_start: Начало окна аллокации
        allocation_end: Конец окна аллокации
        now: Текущее время

    Returns:
        Штраф в fixed-point [0, ONE]
    """
    validate_non_negative(amount, "amount")
    if amount == 0 or now <= allocation_start:
        return 0
    if now >= allocation_end:
        return ONE

    span = (allocation_end - 1) - allocation_start
    elapsed = now - allocation_start
    span_log = log2_floor(span)
    if span_log == 0:
        return ONE

    exponent = LOG2_ONE / span_log

    # Сравнение в log-пространстве, чтобы не переполнить float
    if math.log2(elapsed) * exponent >= math.log2(ONE):
        return ONE

    return clamp(int(math.pow(elapsed, exponent)), 0, ONE)


def weighted_penalty(
    old_penalty: int,
    old_amount: int,
    new_penalty: int,
    new_amount: int,
) -> int:
    """
    Средневзвешенный по сумме штраф после нового депозита.

    Raises:
        ValueError: Если суммарный депозит равен нулю или доли вне [0, ONE]
    """
    validate_fraction(old_penalty, "old_penalty")
    validate_fraction(new_penalty, "new_penalty")
    total = old_amount + new_amount
    validate_positive(total, "old_amount + new_amount")
    return (new_penalty * new_amount + old_penalty * old_amount) // total


def unweighted_penalty(
    total_penalty: int,
    total_amount: int,
    removed_penalty: int,
    removed_amount: int,
) -> int:
    """
    Обратная операция к weighted_penalty: штраф после изъятия части депозита
    с его собственным штрафом (откат депозита).

    Floor-деление в weighted_penalty необратимо точно, поэтому результат
    ограничивается [0, ONE]. Пустой остаток → 0.

    Examples:
        >>> unweighted_penalty(ONE // 2, 2_000, ONE, 1_000)
        0
    """
    validate_fraction(total_penalty, "total_penalty")
    validate_fraction(removed_penalty, "removed_penalty")
    remaining = total_amount - removed_amount
    validate_non_negative(remaining, "total_amount - removed_amount")
    if remaining == 0:
        return 0
    return clamp(
        (total_penalty * total_amount - removed_penalty * removed_amount) // remaining, 0, ONE
    )


def forfeited_amount(amount: int, penalty: int) -> int:
    """Часть суммы, удерживаемая штрафом: floor(penalty * amount / ONE)."""
    validate_fraction(penalty, "penalty")
    return mul_div_down(penalty, amount, ONE)


def penalty_payout(amount: int, penalty: int) -> int:
    """
    Выплата пользователю после штрафа.

    Examples:
        >>> penalty_payout(1000, ONE // 4)
        750
        >>> penalty_payout(1000, ONE)
        0
    """
    validate_non_negative(amount, "amount")
    return amount - forfeited_amount(amount, penalty)
