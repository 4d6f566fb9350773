"""
Fixed Point — целочисленные примитивы для денежной арифметики

Все суммы депозитов, цены и штрафы — целые числа (минимальные единицы
deposit asset). Доли представлены в fixed-point с масштабом ONE = 10**18
(ONE соответствует 100%).

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление всегда усекает вниз (floor), никаких float в денежных суммах
2. Underflow никогда не "заворачивается": отрицательный результат → ValueError
3. log2 удовлетворяет 2^log2(x) ≤ x < 2^(log2(x)+1) для x ≥ 1
4. Все операции детерминированы и воспроизводимы
"""

from typing import Final

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Масштаб fixed-point долей (1e18 == 100%)
ONE: Final[int] = 10**18

# Максимальное представимое время (unix seconds, uint64)
MAX_TIMESTAMP: Final[int] = 2**64 - 1


# =============================================================================
# ЛОГАРИФМ
# =============================================================================


def log2_floor(value: int) -> int:
    """
    Целочисленный двоичный логарифм (floor).

    Args:
        value: Целое число ≥ 1

    Returns:
        n такое, что 2^n ≤ value < 2^(n+1)

    Raises:
        ValueError: Если value < 1

    Examples:
        >>> log2_floor(1)
        0
        >>> log2_floor(1023)
        9
        >>> log2_floor(10**18)
        59
    """
    if value < 1:
        raise ValueError(f"log2 undefined for value < 1, got {value}")
    return value.bit_length() - 1


# =============================================================================
# БЕЗОПАСНЫЕ ОПЕРАЦИИ
# =============================================================================


def mul_div_down(x: int, y: int, denominator: int) -> int:
    """
    floor(x * y / denominator) без промежуточного округления.

    Raises:
        ValueError: Если denominator == 0
    """
    if denominator == 0:
        raise ValueError("mul_div_down: denominator is zero")
    return (x * y) // denominator


def checked_sub(minuend: int, subtrahend: int, what: str = "value") -> int:
    """
    Вычитание с защитой от underflow.

    Args:
        minuend: Уменьшаемое
        subtrahend: Вычитаемое
        what: Имя величины для сообщения об ошибке

    Returns:
        minuend - subtrahend

    Raises:
        ValueError: Если результат отрицательный
    """
    if subtrahend > minuend:
        raise ValueError(f"{what} underflow: {minuend} - {subtrahend} < 0")
    return minuend - subtrahend


def clamp(value: int, min_value: int, max_value: int) -> int:
    """
    Ограничение значения диапазоном [min_value, max_value].

    Raises:
        ValueError: Если min_value > max_value
    """
    if min_value > max_value:
        raise ValueError(f"min_value ({min_value}) must be <= max_value ({max_value})")
    return max(min_value, min(value, max_value))


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_fraction(value: int, name: str = "fraction") -> None:
    """
    Проверка, что fixed-point доля лежит в [0, ONE].

    Raises:
        ValueError: Если value вне диапазона
    """
    if value < 0 or value > ONE:
        raise ValueError(f"{name} must be in [0, {ONE}], got {value}")


def validate_non_negative(value: int, name: str = "value") -> None:
    """
    Проверка, что значение неотрицательное.

    Raises:
        ValueError: Если value < 0
    """
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_positive(value: int, name: str = "value") -> None:
    """
    Проверка, что значение строго положительное.

    Raises:
        ValueError: Если value <= 0
    """
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
