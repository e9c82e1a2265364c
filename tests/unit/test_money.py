"""
Unit tests for Money and tax rate handling.

Verifies:
- Integer minor-unit arithmetic
- Half-up rounding of percentages
- Rejection of floats, negatives, NaN and over-precise input
- Tax rate normalization and storage form
"""

from decimal import Decimal

import pytest

from billing_kernel.domain.values import (
    MAX_AMOUNT,
    Money,
    parse_tax_rate,
    tax_rate_from_basis_points,
    tax_rate_to_basis_points,
)
from billing_kernel.exceptions import InvalidAmountError, InvalidTaxRateError


class TestMoneyConstruction:
    """Money holds a plain int and nothing else."""

    def test_integer_amount(self):
        assert Money(10050).amount == 10050

    def test_float_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money(100.0)

    def test_bool_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money(True)

    def test_decimal_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money(Decimal("100"))

    def test_of_rejects_negative(self):
        with pytest.raises(InvalidAmountError):
            Money.of(-1)

    def test_of_accepts_zero(self):
        assert Money.of(0).is_zero

    def test_zero(self):
        assert Money.zero() == Money(0)

    def test_sum_of_empty_is_zero(self):
        assert Money.sum([]) == Money.zero()

    def test_sum(self):
        assert Money.sum([Money(1), Money(2), Money(3)]) == Money(6)


class TestMoneyParse:
    """Parsing user-entered major-unit strings."""

    def test_two_places(self):
        assert Money.parse("100.50") == Money(10050)

    def test_whole_number(self):
        assert Money.parse("250") == Money(25000)

    def test_surrounding_whitespace(self):
        assert Money.parse(" 7.25 ") == Money(725)

    def test_custom_divisor(self):
        assert Money.parse("1.234", major_unit_divisor=1000) == Money(1234)

    @pytest.mark.parametrize("text", ["abc", "", "1,000.00"])
    def test_malformed(self, text):
        with pytest.raises(InvalidAmountError):
            Money.parse(text)

    @pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite(self, text):
        with pytest.raises(InvalidAmountError):
            Money.parse(text)

    def test_negative(self):
        with pytest.raises(InvalidAmountError):
            Money.parse("-1.00")

    def test_over_precise(self):
        with pytest.raises(InvalidAmountError):
            Money.parse("1.005")

    def test_float_input_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money.parse(1.5)


class TestMoneyArithmetic:

    def test_add_and_subtract(self):
        assert Money(300) + Money(200) == Money(500)
        assert Money(300) - Money(200) == Money(100)

    def test_multiply_by_quantity(self):
        assert Money(10000).multiply_by_quantity(2) == Money(20000)

    def test_multiply_by_zero(self):
        assert Money(10000).multiply_by_quantity(0).is_zero

    def test_multiply_rejects_negative_quantity(self):
        with pytest.raises(InvalidAmountError):
            Money(10000).multiply_by_quantity(-1)

    def test_multiply_rejects_fractional_quantity(self):
        with pytest.raises(InvalidAmountError):
            Money(10000).multiply_by_quantity(1.5)

    def test_ordering(self):
        assert Money(1) < Money(2)
        assert Money(2) <= Money(2)

    def test_int_conversion(self):
        assert int(Money(42)) == 42


class TestPercentOf:
    """Percentages round half up, exactly once."""

    def test_exact(self):
        assert Money(20000).percent_of("18") == Money(3600)

    def test_half_rounds_up(self):
        # 5% of 10 = 0.5 minor units
        assert Money(10).percent_of("5") == Money(1)

    def test_below_half_rounds_down(self):
        # 18% of 1 = 0.18
        assert Money(1).percent_of("18") == Money(0)

    def test_fractional_rate(self):
        # 12.5% of 999 = 124.875
        assert Money(999).percent_of("12.5") == Money(125)

    def test_zero_rate(self):
        assert Money(123456).percent_of(0) == Money.zero()

    def test_hundred_percent(self):
        assert Money(123456).percent_of(100) == Money(123456)


class TestFormat:

    def test_rupees(self):
        assert Money(10050).format(symbol="₹") == "₹100.50"

    def test_no_symbol(self):
        assert Money(5).format() == "0.05"

    def test_negative(self):
        assert Money(-250).format(symbol="₹") == "-₹2.50"


class TestTaxRate:

    def test_none_is_zero(self):
        assert parse_tax_rate(None) == Decimal("0.00")

    def test_integer(self):
        assert parse_tax_rate(18) == Decimal("18.00")

    def test_float_goes_through_str(self):
        assert parse_tax_rate(18.5) == Decimal("18.50")

    def test_explicit_zero_is_kept(self):
        assert parse_tax_rate("0") == Decimal("0.00")

    @pytest.mark.parametrize("value", ["-1", "100.01", "abc", "NaN", True])
    def test_invalid(self, value):
        with pytest.raises(InvalidTaxRateError):
            parse_tax_rate(value)

    def test_three_places_rejected(self):
        with pytest.raises(InvalidTaxRateError):
            parse_tax_rate("18.125")

    def test_basis_points(self):
        assert tax_rate_to_basis_points(Decimal("18.50")) == 1850
        assert tax_rate_from_basis_points(1850) == Decimal("18.50")
        assert tax_rate_from_basis_points(0) == Decimal("0.00")


class TestMoneyRange:
    """Amounts must fit a signed 64-bit column."""

    def test_largest_amount(self):
        assert Money(MAX_AMOUNT).amount == 2**63 - 1

    def test_beyond_range_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money(MAX_AMOUNT + 1)

    def test_multiplication_overflow_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money(10000).multiply_by_quantity(10**17)

    def test_sum_overflow_rejected(self):
        with pytest.raises(InvalidAmountError):
            Money.sum([Money(MAX_AMOUNT), Money(1)])
