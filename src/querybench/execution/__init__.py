"""
querybench.execution — probing, scheduling and reporting.

    probe      QueryProbe (one run = one latency sample)
    scheduler  BenchmarkScheduler, next_strategy, LoopResult, BenchmarkResult
    report     Comparison, log_loop_comparison, log_overall_results
    driver     build_strategies, run_benchmark
"""

from querybench.execution.driver import build_strategies, run_benchmark
from querybench.execution.probe import QueryProbe
from querybench.execution.report import Comparison, build_comparison, log_loop_comparison, log_overall_results
from querybench.execution.scheduler import (
    BenchmarkResult,
    BenchmarkScheduler,
    LoopResult,
    RunFailure,
    next_strategy,
)

__all__ = [
    "QueryProbe",
    "BenchmarkScheduler",
    "BenchmarkResult",
    "LoopResult",
    "RunFailure",
    "next_strategy",
    "Comparison",
    "build_comparison",
    "log_loop_comparison",
    "log_overall_results",
    "build_strategies",
    "run_benchmark",
]
