"""
Fair interleaving of the two strategies.

Within a loop each strategy must complete exactly ``times`` probe runs.
While both are unfinished the next one is picked at random (or, in
sequential mode, in declaration order); once one is done the other runs
until it catches up. The sequence of steps is therefore not deterministic,
but the final counts always are.

Architecture:
    ::

        run(loops=L)
          └─ run_loop(i)  × L
               ┌──────────────────────────────────────────────────────┐
               │ next_strategy(counts, times) ──► None? ── stop        │
               │        │                                              │
               │        ▼                                              │
               │ probe.run() ── sample ──► aggregate[s] += sample      │
               │        │                  counts[s] += 1              │
               │        └─ BenchError ──► RunFailure (count unchanged) │
               │                          max_failures → abort         │
               │ unfinished and delay > 0 ──► sleep(delay)             │
               └──────────────────────────────────────────────────────┘
          └─ BenchmarkResult.overall() = reduce per strategy

Failure policy:
    A failed run is recorded and does not advance the strategy's counter,
    so the strategy is scheduled again. ``max_failures`` failures of one
    strategy within a loop raise ``BenchmarkAborted``.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from querybench.core.aggregate import LatencyAggregate
from querybench.core.errors import BenchError, BenchmarkAborted, ValidationError
from querybench.core.logging import LogContext, get_logger
from querybench.core.protocols import StrategyIdentity
from querybench.core.settings import ScheduleMode
from querybench.execution.probe import QueryProbe

logger = get_logger(__name__)

DEFAULT_MAX_FAILURES = 3


def next_strategy(
    counts: Mapping[StrategyIdentity, int],
    times: int,
    rng: random.Random,
    mode: ScheduleMode = ScheduleMode.INTERLEAVED,
) -> StrategyIdentity | None:
    """Pick the strategy that runs next, or ``None`` when both reached ``times``."""
    unfinished = [strategy for strategy in StrategyIdentity if counts.get(strategy, 0) < times]

    if not unfinished:
        return None
    if len(unfinished) == 1 or mode is ScheduleMode.SEQUENTIAL:
        return unfinished[0]
    return rng.choice(unfinished)


@dataclass(frozen=True)
class RunFailure:
    """A probe run that produced no sample."""

    strategy: StrategyIdentity
    loop: int
    run: int
    error: BenchError

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "loop": self.loop,
            "run": self.run,
            "error": self.error.to_dict(),
        }


@dataclass
class LoopResult:
    """Outcome of one main loop."""

    index: int
    aggregates: dict[StrategyIdentity, LatencyAggregate]
    steps: list[StrategyIdentity] = field(default_factory=list)
    failures: list[RunFailure] = field(default_factory=list)

    @property
    def counts(self) -> dict[StrategyIdentity, int]:
        return {strategy: aggregate.count for strategy, aggregate in self.aggregates.items()}

    def failures_for(self, strategy: StrategyIdentity) -> list[RunFailure]:
        return [failure for failure in self.failures if failure.strategy is strategy]


@dataclass
class BenchmarkResult:
    """Every loop of a benchmark, plus the reduction across loops."""

    loops: list[LoopResult] = field(default_factory=list)

    def results_for(self, strategy: StrategyIdentity) -> list[LatencyAggregate]:
        return [loop.aggregates[strategy] for loop in self.loops]

    def overall(self) -> dict[StrategyIdentity, LatencyAggregate]:
        """Reduce each strategy's per-loop aggregates into one."""
        return {strategy: LatencyAggregate.reduce(self.results_for(strategy)) for strategy in StrategyIdentity}

    @property
    def failures(self) -> list[RunFailure]:
        return [failure for loop in self.loops for failure in loop.failures]


class BenchmarkScheduler:
    """Drives the probes of both strategies through balanced loops."""

    def __init__(
        self,
        probes: Mapping[StrategyIdentity, QueryProbe] | Iterable[QueryProbe],
        *,
        times: int,
        delay_seconds: float = 0.0,
        max_failures: int = DEFAULT_MAX_FAILURES,
        mode: ScheduleMode = ScheduleMode.INTERLEAVED,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_loop: Callable[[LoopResult], None] | None = None,
    ):
        if not isinstance(probes, Mapping):
            probes = {probe.identity: probe for probe in probes}
        if set(probes) != set(StrategyIdentity):
            raise ValidationError(
                "Exactly one probe per strategy is required, got: "
                + ", ".join(sorted(str(strategy) for strategy in probes))
            )
        if times < 1:
            raise ValidationError("times must be at least 1")
        if delay_seconds < 0:
            raise ValidationError("delay_seconds must not be negative")
        if max_failures < 1:
            raise ValidationError("max_failures must be at least 1")

        self._probes = dict(probes)
        self.times = times
        self.delay_seconds = delay_seconds
        self.max_failures = max_failures
        self.mode = mode
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._on_loop = on_loop

    def run_loop(self, index: int = 0) -> LoopResult:
        """Run both strategies until each completed ``times`` probes.

        Raises:
            BenchmarkAborted: if one strategy fails ``max_failures`` times.
        """
        aggregates = {strategy: LatencyAggregate() for strategy in StrategyIdentity}
        counts = {strategy: 0 for strategy in StrategyIdentity}
        failed = {strategy: 0 for strategy in StrategyIdentity}
        result = LoopResult(index=index, aggregates=aggregates)

        logger.info("loop_started", loop=index, times=self.times, mode=self.mode.value)
        with LogContext(loop=index):
            while (strategy := next_strategy(counts, self.times, self._rng, self.mode)) is not None:
                run = counts[strategy] + 1
                try:
                    with LogContext(strategy=strategy.value):
                        logger.info("run_started", run=run)
                        sample = self._probes[strategy].run()
                except BenchError as e:
                    failure = RunFailure(strategy=strategy, loop=index, run=run, error=e)
                    result.failures.append(failure)
                    failed[strategy] += 1
                    logger.error("run_failed", **failure.to_dict())

                    if failed[strategy] >= self.max_failures:
                        raise BenchmarkAborted(
                            f"{strategy.label} failed {failed[strategy]} time(s) in loop {index}",
                            loop_result=result,
                            cause=e,
                        ).with_context(strategy=strategy.value, loop=index)
                else:
                    aggregates[strategy].add_result(sample)
                    counts[strategy] += 1
                    result.steps.append(strategy)

                if self.delay_seconds > 0 and any(count < self.times for count in counts.values()):
                    logger.info("sleeping_between_runs", seconds=self.delay_seconds)
                    self._sleep(self.delay_seconds)

        for aggregate in aggregates.values():
            aggregate.freeze()

        logger.info("loop_finished", loop=index, steps=len(result.steps), failures=len(result.failures))
        return result

    def run(self, loops: int = 1) -> BenchmarkResult:
        """Run ``loops`` main loops.

        Raises:
            BenchmarkAborted: with ``completed`` set to the loops that finished.
        """
        if loops < 1:
            raise ValidationError("loops must be at least 1")

        result = BenchmarkResult()
        logger.info("benchmark_started", loops=loops, times=self.times, delay_seconds=self.delay_seconds)
        for index in range(loops):
            try:
                loop = self.run_loop(index)
            except BenchmarkAborted as e:
                e.completed = result
                raise
            result.loops.append(loop)
            if self._on_loop is not None:
                self._on_loop(loop)

        logger.info("benchmark_finished", loops=loops, failures=len(result.failures))
        return result
