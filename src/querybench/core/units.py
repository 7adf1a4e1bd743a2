"""Time units for latency samples, ordered finer to coarser."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


class TimeUnit(str, Enum):
    """Unit tag carried by every latency aggregate."""

    NANOSECONDS = "ns"
    MILLISECONDS = "ms"
    SECONDS = "s"

    @property
    def nanos(self) -> Decimal:
        """Size of one unit expressed in nanoseconds."""
        return _NANOS_PER_UNIT[self]

    def is_coarser_than(self, other: TimeUnit) -> bool:
        return self.nanos > other.nanos

    def factor_to(self, target: TimeUnit) -> Decimal:
        """Divisor turning a value in this unit into ``target``."""
        return target.nanos / self.nanos

    def __str__(self) -> str:
        return self.value


_NANOS_PER_UNIT = {
    TimeUnit.NANOSECONDS: Decimal(1),
    TimeUnit.MILLISECONDS: Decimal(1_000_000),
    TimeUnit.SECONDS: Decimal(1_000_000_000),
}
