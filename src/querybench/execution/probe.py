"""
One probe = one latency sample.

``QueryProbe.run()`` times a fixed, representative mix of point lookups,
batch lookups and a predicate scan against whichever ``QueryStrategy`` it
was built with, and returns the elapsed wall time in nanoseconds.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

from querybench.core.errors import EmptyDataset
from querybench.core.logging import get_logger
from querybench.core.protocols import QueryStrategy, StrategyIdentity
from querybench.core.timing import now_ns

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000


class QueryProbe:
    """Runs the query sequence for one strategy."""

    def __init__(
        self,
        strategy: QueryStrategy,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], int] = now_ns,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.strategy = strategy
        self.batch_size = batch_size
        self._clock = clock

    @property
    def identity(self) -> StrategyIdentity:
        return self.strategy.identity

    def run(self) -> Decimal:
        """Execute the sequence once and return its duration in nanoseconds.

        Raises:
            EmptyDataset: if the id table is empty.
            BenchError: whatever the strategy raises (acquisition, query or
                extraction failures); no sample is produced in that case.
        """
        strategy = self.strategy
        start = self._clock()

        ids = strategy.get_ids()
        if not ids:
            raise EmptyDataset("No ids to probe").with_context(strategy=self.identity.value, operation="get_ids")
        first = ids[0]

        record = strategy.get_record_by_id(first)
        if record is None:
            logger.info("record_not_found", record_id=first)
        else:
            logger.debug("record", record=record.as_strings())

        meta = strategy.get_record_meta_by_id(first)
        if meta is None:
            logger.info("record_meta_not_found", record_id=first)
        else:
            logger.debug("record_meta", record_id=meta.id, canonical_name=meta.canonical_name)

        batch = ids[: self.batch_size]
        records_by_id = strategy.get_records_by_ids(batch)
        logger.debug("records_by_id", retrieved=len(records_by_id))

        metas_by_id = strategy.get_record_metas_by_ids(batch)
        logger.debug("record_metas_by_id", retrieved=len(metas_by_id))

        not_generated = strategy.get_records_with_generated(False)
        logger.debug("records_with_generated", generated=False, retrieved=len(not_generated))

        elapsed = Decimal(self._clock() - start)
        logger.info("probe_finished", strategy=self.identity.value, elapsed_ns=int(elapsed))
        return elapsed
