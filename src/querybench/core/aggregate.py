"""
Latency aggregation engine.

A ``LatencyAggregate`` accumulates timing samples in one ``TimeUnit`` and
keeps min, max, total and average current after every mutation. Samples are
``Decimal`` so unit conversion and averaging round exactly (half-up, four
decimal places) instead of accumulating float error.

Examples:
    >>> agg = LatencyAggregate([100, 200, 300])
    >>> agg.min, agg.max, agg.total, agg.average
    (Decimal('100'), Decimal('300'), Decimal('600'), Decimal('200.0000'))
    >>> agg.to_unit(TimeUnit.MILLISECONDS).average
    Decimal('0.0002')

    Folding per-loop aggregates into one:

    >>> overall = LatencyAggregate.reduce([loop_1, loop_2, loop_3])

Guardrails:
    ❌ DON'T: Convert from a coarser to a finer unit
    ✅ DO: Keep the nanosecond aggregate and convert copies of it

    ❌ DON'T: Mutate an aggregate after it has been emitted as a loop result
    ✅ DO: ``reduce`` into a new aggregate
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from querybench.core.errors import (
    AggregateFrozen,
    DivisionByZero,
    InvalidUnitMismatch,
    UnsupportedUnitConversion,
)
from querybench.core.numbers import quantize, to_decimal, to_percentage
from querybench.core.units import TimeUnit

Sample = int | float | Decimal


class LatencyAggregate:
    """Min/max/total/average over latency samples in a single unit."""

    def __init__(
        self,
        samples: Iterable[Sample | None] | None = None,
        unit: TimeUnit = TimeUnit.NANOSECONDS,
    ):
        self._unit = unit
        self._samples: list[Decimal] = []
        self._min: Decimal | None = None
        self._max: Decimal | None = None
        self._total = Decimal(0)
        self._average = Decimal(0)
        self._frozen = False

        if samples is not None:
            self.add_results(samples)

    # -- accessors ---------------------------------------------------------

    @property
    def unit(self) -> TimeUnit:
        return self._unit

    @property
    def samples(self) -> list[Decimal]:
        return list(self._samples)

    @property
    def count(self) -> int:
        return len(self._samples)

    @property
    def min(self) -> Decimal | None:
        return self._min

    @property
    def max(self) -> Decimal | None:
        return self._max

    @property
    def total(self) -> Decimal:
        return self._total

    @property
    def average(self) -> Decimal:
        """Total over count, rounded half-up; zero when empty."""
        return self._average

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._samples)

    # -- mutation ----------------------------------------------------------

    def add_result(self, sample: Sample | None) -> None:
        """Record one sample. ``None`` is ignored."""
        self._check_mutable()
        if sample is None:
            return

        value = to_decimal(sample)
        self._samples.append(value)

        if self._min is None or value < self._min:
            self._min = value
        if self._max is None or value > self._max:
            self._max = value

        self._total += value
        self._recalculate_average()

    def add_results(self, samples: Iterable[Sample | None]) -> None:
        for sample in samples:
            self.add_result(sample)

    def add_aggregate(self, other: LatencyAggregate) -> LatencyAggregate:
        """Merge another aggregate's samples into this one."""
        if other.unit is not self._unit:
            raise InvalidUnitMismatch(
                f"Cannot merge a {other.unit} aggregate into a {self._unit} aggregate"
            )
        self.add_results(other._samples)
        return self

    def freeze(self) -> LatencyAggregate:
        """Make this aggregate read-only and return it."""
        self._frozen = True
        return self

    def _check_mutable(self) -> None:
        if self._frozen:
            raise AggregateFrozen("Aggregate has been emitted and can no longer change")

    def _recalculate_average(self) -> None:
        average = quantize(self._total / len(self._samples))
        # Rounding must not push the average outside the observed range
        if average < self._min:
            average = self._min
        elif average > self._max:
            average = self._max
        self._average = average

    # -- derivation --------------------------------------------------------

    def copy(self) -> LatencyAggregate:
        return LatencyAggregate(self._samples, unit=self._unit)

    def to_unit(self, target: TimeUnit) -> LatencyAggregate:
        """Re-express every sample in a coarser unit.

        Converting to the current unit returns ``self``.

        Raises:
            UnsupportedUnitConversion: if ``target`` is finer than the current unit.
        """
        if target is self._unit:
            return self

        if not target.is_coarser_than(self._unit):
            raise UnsupportedUnitConversion(self._unit, target)

        factor = self._unit.factor_to(target)
        return LatencyAggregate(
            (quantize(sample / factor) for sample in self._samples),
            unit=target,
        )

    @classmethod
    def reduce(cls, aggregates: Iterable[LatencyAggregate]) -> LatencyAggregate:
        """Fold aggregates sharing one unit into a new aggregate.

        Raises:
            InvalidUnitMismatch: if ``aggregates`` is empty or mixes units.
        """
        aggregates = list(aggregates)
        if not aggregates:
            raise InvalidUnitMismatch("Cannot infer a unit from an empty collection of aggregates")

        units = {aggregate.unit for aggregate in aggregates}
        if len(units) > 1:
            names = ", ".join(sorted(str(unit) for unit in units))
            raise InvalidUnitMismatch(f"Cannot reduce aggregates with mixed units: {names}")

        result = cls(unit=aggregates[0].unit)
        for aggregate in aggregates:
            result.add_aggregate(aggregate)
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit": self._unit.value,
            "count": self.count,
            "min": str(self._min) if self._min is not None else None,
            "max": str(self._max) if self._max is not None else None,
            "average": str(self._average),
            "total": str(self._total),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LatencyAggregate):
            return NotImplemented
        return self._unit is other._unit and self._samples == other._samples

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"LatencyAggregate(min={self._min}, max={self._max}, average={self._average}, "
            f"total={self._total}, count={self.count}, unit={self._unit})"
        )


@dataclass(frozen=True)
class PercentageComparison:
    """One aggregate's statistics as percentages of another's."""

    min: Decimal
    max: Decimal
    average: Decimal


def compare_aggregates(numerator: LatencyAggregate, denominator: LatencyAggregate) -> PercentageComparison:
    """Compare ``numerator`` to ``denominator`` statistic by statistic.

    Raises:
        InvalidUnitMismatch: if the units differ.
        DivisionByZero: if the denominator is empty or any of its statistics is zero.
        ValueError: if the numerator is empty.
    """
    if numerator.unit is not denominator.unit:
        raise InvalidUnitMismatch(
            f"Cannot compare a {numerator.unit} aggregate with a {denominator.unit} aggregate"
        )
    if not denominator.count:
        raise DivisionByZero("Cannot compare against an empty aggregate")
    if not numerator.count:
        raise ValueError("Cannot compare an empty aggregate")

    return PercentageComparison(
        min=to_percentage(numerator.min, denominator.min),
        max=to_percentage(numerator.max, denominator.max),
        average=to_percentage(numerator.average, denominator.average),
    )
