"""Tests for querybench.execution.report module."""

from decimal import Decimal
from unittest.mock import patch

from querybench.core.aggregate import LatencyAggregate, compare_aggregates
from querybench.core.protocols import StrategyIdentity
from querybench.execution.report import (
    Comparison,
    StrategyTimes,
    build_comparison,
    describe_benchmark,
    describe_loop,
    log_loop_comparison,
    log_overall_results,
)
from querybench.execution.scheduler import BenchmarkResult, LoopResult

REUSE = StrategyIdentity.CONNECTION_REUSE
TEMPLATE = StrategyIdentity.POOLED_TEMPLATE


def results(reuse, template):
    return {REUSE: LatencyAggregate(reuse), TEMPLATE: LatencyAggregate(template)}


class TestStrategyTimes:
    def test_every_unit(self):
        times = StrategyTimes.of(REUSE, LatencyAggregate([1_000_000, 3_000_000]))
        assert times.statistic("min") == (Decimal(1_000_000), Decimal("1.0000"), Decimal("0.0010"))
        assert times.statistic("max") == (Decimal(3_000_000), Decimal("3.0000"), Decimal("0.0030"))
        assert times.statistic("average")[1] == Decimal("2.0000")

    def test_to_dict(self):
        d = StrategyTimes.of(TEMPLATE, LatencyAggregate([2_000_000])).to_dict()
        assert d["strategy"] == "pooled_template"
        assert d["count"] == 1
        assert d["min"] == {"ns": "2000000", "ms": "2.0000", "s": "0.0020"}


class TestBuildComparison:
    def test_percentages(self):
        comparison = build_comparison(results([50, 150], [100, 200]))
        assert isinstance(comparison, Comparison)
        assert comparison.min_percentage == Decimal("50.0000")
        assert comparison.max_percentage == Decimal("75.0000")
        assert comparison.average_percentage == Decimal("66.6667")

    def test_zero_denominator_is_none(self):
        comparison = build_comparison(results([10], [0]))
        assert comparison.min_percentage is None
        assert comparison.max_percentage is None
        assert comparison.average_percentage is None

    def test_empty_side_is_none(self):
        comparison = build_comparison(results([], [100]))
        assert comparison.min_percentage is None
        assert comparison.reuse.statistic("min") == (None, None, None)

    def test_empty_template_is_none(self):
        comparison = build_comparison(results([100], []))
        assert comparison.percentages() == {"min": None, "max": None, "average": None}

    def test_zero_template_minimum_is_none(self):
        comparison = build_comparison(results([10, 20], [0, 40]))
        assert comparison.percentages() == {"min": None, "max": None, "average": None}

    def test_uses_aggregate_comparison(self):
        with patch("querybench.execution.report.compare_aggregates", wraps=compare_aggregates) as compare:
            comparison = build_comparison(results([50, 150], [100, 200]))

        (reuse, template), _ = compare.call_args
        assert reuse.samples == [Decimal(50), Decimal(150)]
        assert template.samples == [Decimal(100), Decimal(200)]
        assert comparison.average_percentage == Decimal("66.6667")

    def test_to_dict(self):
        d = build_comparison(results([50], [100])).to_dict()
        assert [s["strategy"] for s in d["strategies"]] == ["connection_reuse", "pooled_template"]
        assert d["reuse_as_percentage_of_template"] == {
            "min": "50.0000",
            "max": "50.0000",
            "average": "50.0000",
        }


class TestDescriptions:
    def test_loop(self):
        assert describe_loop(5, 5000) == (
            "Finished a main loop, which ran the query sequence 5 times, "
            "with a 5000 millisecond sleep delay between runs"
        )
        assert describe_loop(5, 0) == "Finished a main loop, which ran the query sequence 5 times"
        assert describe_loop(1, 5000) == "Finished a main loop, which ran the query sequence once"

    def test_benchmark(self):
        assert describe_benchmark(20, 5, 5000).startswith("Ran 20 main loops, within which")
        assert describe_benchmark(20, 5, 0) == (
            "Ran 20 main loops, within which we executed the query sequence 5 times"
        )
        assert describe_benchmark(20, 1, 0) == "Ran 20 main loops executing the query sequence"
        assert describe_benchmark(1, 5, 0) is None


class TestLogging:
    def test_log_loop_comparison(self):
        with patch("querybench.execution.report.logger") as logger:
            comparison = log_loop_comparison(results([100], [200]), times=1, delay_ms=0)

        assert comparison.average_percentage == Decimal("50.0000")
        events = [call.args[0] for call in logger.info.call_args_list]
        assert events[0] == "loop_summary"
        assert events.count("strategy_time") == 6
        assert events[-1] == "reuse_as_percentage_of_template"

    def test_log_overall_results(self):
        loops = [
            LoopResult(index=i, aggregates={REUSE: LatencyAggregate([100]), TEMPLATE: LatencyAggregate([400])})
            for i in range(2)
        ]
        with patch("querybench.execution.report.logger") as logger:
            comparison = log_overall_results(BenchmarkResult(loops), loops=2, times=1, delay_ms=0)

        assert comparison.reuse.nanos.count == 2
        assert comparison.average_percentage == Decimal("25.0000")
        summary = logger.info.call_args_list[0]
        assert summary.args[0] == "benchmark_summary"
        assert summary.kwargs["summary"] == "Ran 2 main loops executing the query sequence"
