"""
querybench.core — aggregation engine and ambient infrastructure.

Modules:
    aggregate   LatencyAggregate, compare_aggregates
    units       TimeUnit
    numbers     Decimal rounding and percentage helpers
    errors      BenchError hierarchy
    settings    BenchSettings (pydantic-settings)
    logging     structlog configuration
    protocols   StrategyIdentity and structural contracts
    connection  SQLAlchemy engines and the raw connection provider
    timing      runtime logging helpers
"""

from querybench.core.aggregate import LatencyAggregate, PercentageComparison, compare_aggregates
from querybench.core.numbers import to_percentage
from querybench.core.protocols import StrategyIdentity
from querybench.core.units import TimeUnit

__all__ = [
    "LatencyAggregate",
    "PercentageComparison",
    "compare_aggregates",
    "to_percentage",
    "StrategyIdentity",
    "TimeUnit",
]
