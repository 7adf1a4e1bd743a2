"""
Benchmark driver: builds both strategies from settings, wires them into a
scheduler and logs a comparison after every loop and once overall.

Usage:
    settings = get_settings()
    result = run_benchmark(settings)
    comparison = build_comparison(result.overall())
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable, Mapping

from querybench.core.logging import get_logger
from querybench.core.protocols import QueryStrategy, StrategyIdentity
from querybench.core.settings import BenchSettings
from querybench.data.connection_reuse import ConnectionReuseStrategy
from querybench.data.statements import close_quietly
from querybench.data.template import PooledTemplateStrategy
from querybench.execution.probe import QueryProbe
from querybench.execution.report import log_loop_comparison, log_overall_results
from querybench.execution.scheduler import BenchmarkResult, BenchmarkScheduler, LoopResult

logger = get_logger(__name__)


def build_strategies(settings: BenchSettings) -> dict[StrategyIdentity, QueryStrategy]:
    """Create one strategy of each kind against the configured database."""
    reuse = ConnectionReuseStrategy.from_settings(settings)
    try:
        template = PooledTemplateStrategy.from_settings(settings)
    except Exception:
        close_quietly(reuse, reuse.identity.value)
        raise

    logger.info("strategies_built", backend=settings.backend, schema=settings.schema_name)
    return {reuse.identity: reuse, template.identity: template}


def close_strategies(strategies: Mapping[StrategyIdentity, QueryStrategy]) -> None:
    for identity, strategy in strategies.items():
        close_quietly(strategy, identity.value)


def build_scheduler(
    settings: BenchSettings,
    strategies: Mapping[StrategyIdentity, QueryStrategy],
    *,
    rng: random.Random | None = None,
    sleep: Callable[[float], None] = time.sleep,
    log_loops: bool = True,
) -> BenchmarkScheduler:
    probes = {
        identity: QueryProbe(strategy, batch_size=settings.batch_size) for identity, strategy in strategies.items()
    }

    def _log_loop(loop: LoopResult) -> None:
        log_loop_comparison(loop.aggregates, times=settings.times, delay_ms=settings.delay_ms)

    return BenchmarkScheduler(
        probes,
        times=settings.times,
        delay_seconds=settings.delay_seconds,
        max_failures=settings.max_failures,
        mode=settings.mode,
        rng=rng,
        sleep=sleep,
        on_loop=_log_loop if log_loops else None,
    )


def run_benchmark(
    settings: BenchSettings,
    *,
    strategies: Mapping[StrategyIdentity, QueryStrategy] | None = None,
    rng: random.Random | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BenchmarkResult:
    """Run ``settings.loops`` loops and log the overall comparison.

    Strategies passed in are left open; strategies built here are closed
    before returning, also when the benchmark aborts.
    """
    owned = strategies is None
    if strategies is None:
        strategies = build_strategies(settings)

    try:
        scheduler = build_scheduler(settings, strategies, rng=rng, sleep=sleep)
        result = scheduler.run(settings.loops)
        log_overall_results(result, loops=settings.loops, times=settings.times, delay_ms=settings.delay_ms)
        return result
    finally:
        if owned:
            close_strategies(strategies)
