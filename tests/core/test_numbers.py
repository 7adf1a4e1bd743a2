"""Tests for querybench.core.numbers module."""

from decimal import Decimal

import pytest

from querybench.core.errors import DivisionByZero
from querybench.core.numbers import divide, quantize, to_decimal, to_percentage


class TestToDecimal:
    def test_int(self):
        assert to_decimal(5) == Decimal(5)

    def test_float_avoids_binary_noise(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_decimal_passthrough(self):
        value = Decimal("1.23")
        assert to_decimal(value) is value

    @pytest.mark.parametrize("value", [True, "1", None])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(TypeError):
            to_decimal(value)


class TestQuantize:
    def test_half_up(self):
        assert quantize(Decimal("0.00005")) == Decimal("0.0001")
        assert quantize(Decimal("0.00004")) == Decimal("0.0000")

    def test_custom_scale(self):
        assert quantize(Decimal("1.25"), 1) == Decimal("1.3")


class TestDivide:
    def test_divide(self):
        assert divide(Decimal(1), Decimal(3)) == Decimal("0.3333")

    def test_zero_denominator(self):
        with pytest.raises(DivisionByZero):
            divide(Decimal(1), Decimal(0))


class TestToPercentage:
    def test_basic(self):
        assert to_percentage(1, 4) == Decimal("25.0000")

    def test_rounds_half_up(self):
        assert to_percentage(2, 3) == Decimal("66.6667")

    def test_scale(self):
        assert to_percentage(2, 3, scale=1) == Decimal("66.7")

    def test_zero_denominator_checked_before_dividing(self):
        with pytest.raises(DivisionByZero):
            to_percentage(Decimal(5), Decimal(0))

    @pytest.mark.parametrize("numerator,denominator", [(None, 1), (1, None)])
    def test_none_rejected(self, numerator, denominator):
        with pytest.raises(ValueError):
            to_percentage(numerator, denominator)
