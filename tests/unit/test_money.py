"""
Unit tests for Money and the fixed-point primitives.

Verifies:
- Scale 2, ROUND_HALF_UP on construction and after every operation
- Precision bound enforcement
- Float / bool constructor prohibition
- Day-count and monthly interest primitives round exactly once
"""

from decimal import Decimal

import pytest

from card_kernel.domain.values import (
    Money,
    add,
    max_magnitude,
    monthly_interest,
    multiply,
    multiply_by_rate_over_period,
    scale_and_round,
    subtract,
)
from card_kernel.exceptions import MoneyRangeError, ZeroDivisorError


class TestScaleAndRound:
    """Construction always lands on scale 2."""

    def test_integer_gets_two_decimals(self):
        assert Money.of(5).amount == Decimal("5.00")
        assert str(Money.of(5)) == "5.00"

    def test_half_up_away_from_zero(self):
        assert Money.of("1.005").amount == Decimal("1.01")
        assert Money.of("-1.005").amount == Decimal("-1.01")
        assert Money.of("2.004").amount == Decimal("2.00")

    def test_negative_zero_normalised(self):
        result = Money.of("-0.001")
        assert result.amount == Decimal("0.00")
        assert not result.amount.is_signed()
        assert result.is_zero

    def test_idempotent(self):
        once = Money.of("1234.567")
        assert Money.of(once) == once
        assert scale_and_round(once) == once

    def test_exponent_is_minus_two(self):
        assert Money.of("7").amount.as_tuple().exponent == -2
        assert Money.of("7.1").amount.as_tuple().exponent == -2

    def test_string_is_stripped(self):
        assert Money.of("  12.50 ") == Money.of("12.50")


class TestRejectedInput:
    """Binary floats and junk never become Money."""

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            Money.of(1.5)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            Money.of(True)

    def test_non_numeric_string(self):
        with pytest.raises(ValueError):
            Money.of("twelve")

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite(self, raw):
        with pytest.raises(ValueError):
            Money.of(raw)


class TestPrecisionBound:
    """|amount| <= 10^(P-2) - 0.01."""

    def test_default_bound(self):
        assert max_magnitude() == Decimal("9999999999.99")

    def test_largest_value_accepted(self):
        assert Money.of("9999999999.99").amount == Decimal("9999999999.99")
        assert Money.of("-9999999999.99").amount == Decimal("-9999999999.99")

    def test_just_over_bound_rejected(self):
        with pytest.raises(MoneyRangeError) as exc_info:
            Money.of("10000000000.00")
        assert exc_info.value.code == "MONEY_OUT_OF_RANGE"

    def test_rounding_up_past_bound_rejected(self):
        with pytest.raises(MoneyRangeError):
            Money.of("9999999999.995")

    def test_custom_precision(self):
        assert Money.of("999.99", precision=5).amount == Decimal("999.99")
        with pytest.raises(MoneyRangeError):
            Money.of("1000.00", precision=5)

    def test_precision_must_exceed_scale(self):
        with pytest.raises(ValueError):
            max_magnitude(2)

    def test_addition_overflow_detected(self):
        big = Money.of("9999999999.99")
        with pytest.raises(MoneyRangeError):
            big + Money.of("0.01")


class TestArithmetic:
    """Every operation returns a freshly rounded Money."""

    def test_add_and_subtract(self):
        assert add(Money.of("0.10"), Money.of("0.20")) == Money.of("0.30")
        assert subtract(Money.of("1.00"), Money.of("2.50")) == Money.of("-1.50")

    def test_multiply_rounds_once(self):
        assert multiply(Money.of("10.00"), Decimal("0.333")) == Money.of("3.33")
        assert Money.of("10.00") * 3 == Money.of("30.00")
        assert 3 * Money.of("10.00") == Money.of("30.00")

    def test_multiply_by_float_rejected(self):
        with pytest.raises(TypeError):
            Money.of("10.00") * 1.5

    def test_add_non_money_rejected(self):
        with pytest.raises(TypeError):
            Money.of("10.00") + Decimal("1")

    def test_divide(self):
        assert Money.of("10.00").divide(3) == Money.of("3.33")
        assert Money.of("20.00").divide(Decimal("3")) == Money.of("6.67")

    def test_divide_by_zero(self):
        with pytest.raises(ZeroDivisorError) as exc_info:
            Money.of("10.00").divide(0)
        assert isinstance(exc_info.value, ZeroDivisionError)
        assert exc_info.value.code == "ZERO_DIVISOR"

    def test_percentage(self):
        assert Money.of("1250.00").percentage(2) == Money.of("25.00")
        assert Money.of("1250.005").percentage(2) == Money.of("25.00")

    def test_negate_and_abs(self):
        assert Money.of("5.00").negate() == Money.of("-5.00")
        assert -Money.of("-5.00") == Money.of("5.00")
        assert abs(Money.of("-5.25")) == Money.of("5.25")

    def test_sign_predicates(self):
        assert Money.of("0.01").is_positive
        assert Money.of("-0.01").is_negative
        assert Money.zero().is_zero


class TestEqualityAndOrdering:
    """Money compares by amount only."""

    def test_precision_does_not_affect_equality(self):
        assert Money.of("1.00", precision=12) == Money.of("1.00", precision=18)

    def test_hashable(self):
        assert len({Money.of("1"), Money.of("1.00"), Money.of("1.001")}) == 1

    def test_ordering(self):
        values = [Money.of("3"), Money.of("-1"), Money.of("2")]
        assert sorted(values) == [Money.of("-1"), Money.of("2"), Money.of("3")]
        assert min(Money.of("25.00"), Money.of("10.00")) == Money.of("10.00")


class TestInterestPrimitives:
    """Interest is computed at working precision and rounded once."""

    def test_day_count_interest(self):
        # 1000.00 x 18.99% / 365 x 31 = 16.1285...
        result = multiply_by_rate_over_period(Money.of("1000.00"), "18.99", 31)
        assert result == Money.of("16.13")

    def test_zero_days(self):
        assert multiply_by_rate_over_period(Money.of("1000.00"), "18.99", 0).is_zero

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            multiply_by_rate_over_period(Money.of("1000.00"), "18.99", -1)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            multiply_by_rate_over_period(Money.of("1000.00"), "-1", 30)

    def test_monthly_interest(self):
        # 1000.00 x 18.99 / 1200 = 15.825
        assert monthly_interest(Money.of("1000.00"), "18.99") == Money.of("15.83")

    def test_monthly_interest_zero_rate(self):
        assert monthly_interest(Money.of("1000.00"), 0).is_zero
