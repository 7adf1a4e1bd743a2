"""Tests for querybench.core.units module."""

from decimal import Decimal

import pytest

from querybench.core.units import TimeUnit


class TestTimeUnit:
    def test_values(self):
        assert [unit.value for unit in TimeUnit] == ["ns", "ms", "s"]
        assert str(TimeUnit.MILLISECONDS) == "ms"

    def test_sizes_in_nanoseconds(self):
        assert TimeUnit.NANOSECONDS.nanos == Decimal(1)
        assert TimeUnit.MILLISECONDS.nanos == Decimal(1_000_000)
        assert TimeUnit.SECONDS.nanos == Decimal(1_000_000_000)

    def test_ordering(self):
        assert TimeUnit.MILLISECONDS.is_coarser_than(TimeUnit.NANOSECONDS)
        assert TimeUnit.SECONDS.is_coarser_than(TimeUnit.MILLISECONDS)
        assert not TimeUnit.NANOSECONDS.is_coarser_than(TimeUnit.SECONDS)
        assert not TimeUnit.SECONDS.is_coarser_than(TimeUnit.SECONDS)

    @pytest.mark.parametrize(
        "source,target,factor",
        [
            (TimeUnit.NANOSECONDS, TimeUnit.MILLISECONDS, 1_000_000),
            (TimeUnit.MILLISECONDS, TimeUnit.SECONDS, 1_000),
            (TimeUnit.NANOSECONDS, TimeUnit.SECONDS, 1_000_000_000),
        ],
    )
    def test_factor_to(self, source, target, factor):
        assert source.factor_to(target) == Decimal(factor)

    def test_lookup_by_value(self):
        assert TimeUnit("s") is TimeUnit.SECONDS
