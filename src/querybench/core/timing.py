"""Wall-clock helpers for per-operation runtime logging."""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Any

from querybench.core.numbers import divide
from querybench.core.units import TimeUnit

_MILLI_THRESHOLD_NS = 1_000_000


def now_ns() -> int:
    """Monotonic timestamp in nanoseconds."""
    return time.perf_counter_ns()


def elapsed_ns(start: int, end: int | None = None) -> int:
    return (now_ns() if end is None else end) - start


def log_runtime(logger: Any, start: int, operation: str, **fields: Any) -> int:
    """Log how long ``operation`` took since ``start`` and return the nanoseconds.

    Runtimes of a millisecond or more are logged in whole milliseconds;
    shorter ones in nanoseconds together with their fraction of a millisecond.
    """
    diff = elapsed_ns(start)
    if diff >= _MILLI_THRESHOLD_NS:
        logger.debug("operation_runtime", operation=operation, ms=diff // _MILLI_THRESHOLD_NS, **fields)
    else:
        logger.debug(
            "operation_runtime",
            operation=operation,
            ns=diff,
            fraction_of_ms=str(divide(Decimal(diff), TimeUnit.MILLISECONDS.nanos)),
            **fields,
        )
    return diff
