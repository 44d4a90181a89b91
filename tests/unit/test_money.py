"""
Unit tests for money helpers.

Tests cover:
- Conversion to Decimal without float artefacts
- Half-up rounding to the cent
- Percentage shares used by the commission cascade
"""

from decimal import Decimal

import pytest

from wallet_ledger.utils.exceptions import InvalidAmount
from wallet_ledger.utils.money import (
    percentage_of,
    quantize_money,
    require_positive,
    to_decimal,
)


class TestToDecimal:
    """Test conversion of raw amounts."""

    def test_float_uses_shortest_repr(self):
        """Floats convert through str, not their binary expansion."""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string_is_stripped(self):
        """Whitespace around numeric strings is ignored."""
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_garbage_rejected(self):
        """Non-numeric input raises InvalidAmount."""
        with pytest.raises(InvalidAmount):
            to_decimal("ten")

    def test_infinity_rejected(self):
        """Infinite values are not amounts."""
        with pytest.raises(InvalidAmount):
            to_decimal(Decimal("Infinity"))


class TestQuantizeMoney:
    """Test rounding to the cent."""

    def test_half_up(self):
        """Exact halves round away from zero."""
        assert quantize_money(Decimal("0.125")) == Decimal("0.13")
        assert quantize_money(Decimal("2.675")) == Decimal("2.68")

    def test_below_half_rounds_down(self):
        """Values below the half cent round down."""
        assert quantize_money(Decimal("100.12345")) == Decimal("100.12")

    def test_negative_half_up(self):
        """Negative halves round away from zero too."""
        assert quantize_money(Decimal("-0.125")) == Decimal("-0.13")

    def test_integer_gets_two_places(self):
        """Integers are expressed with cents."""
        assert str(quantize_money(1000)) == "1000.00"


class TestPercentageOf:
    """Test percentage shares."""

    def test_level_one_share(self):
        """5 % of 1000 is 50."""
        assert percentage_of(Decimal("1000"), Decimal("5")) == Decimal("50.00")

    def test_fractional_percentage(self):
        """0.5 % of 1000 is 5."""
        assert percentage_of(Decimal("1000"), Decimal("0.5")) == Decimal("5.00")

    def test_rounding_applied(self):
        """Shares are rounded half-up to the cent."""
        # 0.5 % of 1.01 = 0.00505
        assert percentage_of(Decimal("1.01"), Decimal("0.5")) == Decimal("0.01")

    def test_tiny_share_rounds_to_zero(self):
        """Shares below half a cent become zero."""
        assert percentage_of(Decimal("0.10"), Decimal("1")) == Decimal("0.00")


class TestRequirePositive:
    """Test positive amount validation."""

    def test_positive_amount_quantized(self):
        """A positive amount comes back rounded."""
        assert require_positive("10.005") == Decimal("10.01")

    @pytest.mark.parametrize("amount", ["0", "-1", "0.004"])
    def test_non_positive_rejected(self, amount):
        """Zero, negatives and amounts rounding to zero are rejected."""
        with pytest.raises(InvalidAmount):
            require_positive(amount, "Deposit amount")
