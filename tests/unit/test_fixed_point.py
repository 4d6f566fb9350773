"""
Тесты для модуля Fixed Point

Проверяет:
1. Целочисленный log2 и его контракт 2^n ≤ x < 2^(n+1)
2. mul_div_down (floor-деление без промежуточного округления)
3. Защиту от underflow
4. clamp и валидацию параметров
"""

import pytest

from mintsale.core.math.fixed_point import (
    MAX_TIMESTAMP,
    ONE,
    checked_sub,
    clamp,
    log2_floor,
    mul_div_down,
    validate_fraction,
    validate_non_negative,
    validate_positive,
)

# =============================================================================
# ТЕСТЫ LOG2
# =============================================================================


class TestLog2Floor:
    """Тесты для log2_floor"""

    def test_powers_of_two(self) -> None:
        """Степени двойки дают точный показатель"""
        for n in range(0, 80):
            assert log2_floor(2**n) == n

    def test_between_powers_rounds_down(self) -> None:
        """Значения между степенями округляются вниз"""
        assert log2_floor(3) == 1
        assert log2_floor(1023) == 9
        assert log2_floor(1025) == 10

    def test_one_is_fixed_point_scale(self) -> None:
        """log2(1e18) == 59"""
        assert log2_floor(ONE) == 59

    def test_contract_holds(self) -> None:
        """2^log2(x) ≤ x < 2^(log2(x)+1) для произвольных x"""
        for x in (1, 2, 7, 999, 86_399, 10**12 + 17, ONE, MAX_TIMESTAMP):
            n = log2_floor(x)
            assert 2**n <= x < 2 ** (n + 1)

    def test_zero_rejected(self) -> None:
        """log2(0) не определён"""
        with pytest.raises(ValueError, match="log2 undefined"):
            log2_floor(0)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            log2_floor(-8)


# =============================================================================
# ТЕСТЫ АРИФМЕТИКИ
# =============================================================================


class TestMulDivDown:
    """Тесты для mul_div_down"""

    def test_exact_division(self) -> None:
        assert mul_div_down(6, 4, 3) == 8

    def test_truncates_toward_zero(self) -> None:
        """7 * 3 / 2 = 10.5 → 10"""
        assert mul_div_down(7, 3, 2) == 10

    def test_no_intermediate_precision_loss(self) -> None:
        """Большие промежуточные произведения не теряют точность"""
        assert mul_div_down(ONE, 10**30 + 1, ONE) == 10**30 + 1

    def test_zero_denominator_rejected(self) -> None:
        with pytest.raises(ValueError, match="denominator is zero"):
            mul_div_down(1, 1, 0)


class TestCheckedSub:
    """Тесты для checked_sub"""

    def test_regular_subtraction(self) -> None:
        assert checked_sub(10, 3) == 7
        assert checked_sub(10, 10) == 0

    def test_underflow_rejected(self) -> None:
        """Underflow никогда не заворачивается"""
        with pytest.raises(ValueError, match="deposit underflow"):
            checked_sub(5, 6, "deposit")


class TestClamp:
    """Тесты для clamp"""

    def test_inside_range(self) -> None:
        assert clamp(5, 0, 10) == 5

    def test_below_and_above(self) -> None:
        assert clamp(-3, 0, 10) == 0
        assert clamp(42, 0, 10) == 10

    def test_inverted_bounds_rejected(self) -> None:
        with pytest.raises(ValueError):
            clamp(1, 10, 0)


# =============================================================================
# ТЕСТЫ ВАЛИДАЦИИ
# =============================================================================


class TestValidation:
    """Тесты функций валидации"""

    def test_fraction_bounds(self) -> None:
        validate_fraction(0)
        validate_fraction(ONE)
        with pytest.raises(ValueError):
            validate_fraction(ONE + 1)
        with pytest.raises(ValueError):
            validate_fraction(-1)

    def test_non_negative(self) -> None:
        validate_non_negative(0)
        with pytest.raises(ValueError, match="amount must be non-negative"):
            validate_non_negative(-1, "amount")

    def test_positive(self) -> None:
        validate_positive(1)
        with pytest.raises(ValueError, match="max_supply must be positive"):
            validate_positive(0, "max_supply")
