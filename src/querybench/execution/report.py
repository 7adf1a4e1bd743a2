"""
Comparison reports: each strategy's latency in ns, ms and s, and the
connection-reuse figures as a percentage of the template figures.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from querybench.core.aggregate import LatencyAggregate, compare_aggregates
from querybench.core.errors import DivisionByZero
from querybench.core.logging import get_logger
from querybench.core.protocols import StrategyIdentity
from querybench.core.units import TimeUnit
from querybench.execution.scheduler import BenchmarkResult

logger = get_logger(__name__)

STATISTICS = ("min", "max", "average")


def _str(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class StrategyTimes:
    """One strategy's aggregate expressed in every unit."""

    strategy: StrategyIdentity
    nanos: LatencyAggregate
    millis: LatencyAggregate
    seconds: LatencyAggregate

    @classmethod
    def of(cls, strategy: StrategyIdentity, aggregate: LatencyAggregate) -> StrategyTimes:
        nanos = aggregate.to_unit(TimeUnit.NANOSECONDS)
        millis = nanos.to_unit(TimeUnit.MILLISECONDS)
        return cls(strategy=strategy, nanos=nanos, millis=millis, seconds=millis.to_unit(TimeUnit.SECONDS))

    def statistic(self, name: str) -> tuple[Decimal | None, Decimal | None, Decimal | None]:
        return tuple(getattr(aggregate, name) for aggregate in (self.nanos, self.millis, self.seconds))  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "count": self.nanos.count,
            **{
                name: dict(zip(("ns", "ms", "s"), map(_str, self.statistic(name)), strict=True))
                for name in STATISTICS
            },
        }


@dataclass(frozen=True)
class Comparison:
    """Connection re-use compared with the template.

    The percentages are ``None`` when either side is empty or any template
    figure is zero.
    """

    reuse: StrategyTimes
    template: StrategyTimes
    min_percentage: Decimal | None
    max_percentage: Decimal | None
    average_percentage: Decimal | None

    def percentages(self) -> dict[str, Decimal | None]:
        return {
            "min": self.min_percentage,
            "max": self.max_percentage,
            "average": self.average_percentage,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategies": [self.reuse.to_dict(), self.template.to_dict()],
            "reuse_as_percentage_of_template": {name: _str(value) for name, value in self.percentages().items()},
        }


def build_comparison(results: Mapping[StrategyIdentity, LatencyAggregate]) -> Comparison:
    """Build a ``Comparison`` from one aggregate per strategy."""
    reuse = StrategyTimes.of(StrategyIdentity.CONNECTION_REUSE, results[StrategyIdentity.CONNECTION_REUSE])
    template = StrategyTimes.of(StrategyIdentity.POOLED_TEMPLATE, results[StrategyIdentity.POOLED_TEMPLATE])
    if not reuse.nanos.count:
        return Comparison(reuse, template, None, None, None)

    try:
        percentages = compare_aggregates(reuse.nanos, template.nanos)
    except DivisionByZero:
        return Comparison(reuse, template, None, None, None)

    return Comparison(
        reuse=reuse,
        template=template,
        min_percentage=percentages.min,
        max_percentage=percentages.max,
        average_percentage=percentages.average,
    )


def describe_loop(times: int, delay_ms: int) -> str:
    if times > 1 and delay_ms > 0:
        return (
            f"Finished a main loop, which ran the query sequence {times} times, "
            f"with a {delay_ms} millisecond sleep delay between runs"
        )
    if times > 1:
        return f"Finished a main loop, which ran the query sequence {times} times"
    return "Finished a main loop, which ran the query sequence once"


def describe_benchmark(loops: int, times: int, delay_ms: int) -> str | None:
    if loops > 1 and times > 1 and delay_ms > 0:
        return (
            f"Ran {loops} main loops, within which we executed the query sequence {times} times, "
            f"with a {delay_ms} millisecond sleep delay between runs"
        )
    if loops > 1 and times > 1:
        return f"Ran {loops} main loops, within which we executed the query sequence {times} times"
    if loops > 1:
        return f"Ran {loops} main loops executing the query sequence"
    return None


def log_comparison(comparison: Comparison) -> None:
    for times in (comparison.reuse, comparison.template):
        for name in STATISTICS:
            ns, ms, s = times.statistic(name)
            logger.info(
                "strategy_time",
                strategy=times.strategy.label,
                statistic=name,
                ns=_str(ns),
                ms=_str(ms),
                s=_str(s),
            )

    logger.info(
        "reuse_as_percentage_of_template",
        **{name: _str(value) for name, value in comparison.percentages().items()},
    )


def log_loop_comparison(
    results: Mapping[StrategyIdentity, LatencyAggregate],
    *,
    times: int,
    delay_ms: int,
) -> Comparison:
    """Log one loop's figures and return them."""
    logger.info("loop_summary", summary=describe_loop(times, delay_ms))
    comparison = build_comparison(results)
    log_comparison(comparison)
    return comparison


def log_overall_results(
    result: BenchmarkResult,
    *,
    loops: int,
    times: int,
    delay_ms: int,
) -> Comparison:
    """Log the figures reduced across every loop and return them."""
    summary = describe_benchmark(loops, times, delay_ms)
    if summary is not None:
        logger.info("benchmark_summary", summary=summary)
    comparison = build_comparison(result.overall())
    log_comparison(comparison)
    return comparison
