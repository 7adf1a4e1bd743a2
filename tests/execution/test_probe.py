"""Tests for querybench.execution.probe module."""

from decimal import Decimal
from itertools import count
from unittest.mock import MagicMock

import pytest

from querybench.core.errors import EmptyDataset, QueryError
from querybench.core.protocols import StrategyIdentity
from querybench.execution.probe import QueryProbe


def make_strategy(ids=(1, 2, 3)) -> MagicMock:
    strategy = MagicMock()
    strategy.identity = StrategyIdentity.POOLED_TEMPLATE
    strategy.get_ids.return_value = list(ids)
    strategy.get_record_by_id.return_value = None
    strategy.get_record_meta_by_id.return_value = None
    strategy.get_records_by_ids.return_value = {}
    strategy.get_record_metas_by_ids.return_value = {}
    strategy.get_records_with_generated.return_value = []
    return strategy


def ticking_clock(step: int = 1000):
    ticks = count(0, step)
    return lambda: next(ticks)


class TestQueryProbe:
    def test_runs_the_sequence_in_order(self):
        strategy = make_strategy()
        QueryProbe(strategy, clock=ticking_clock()).run()

        names = [call[0] for call in strategy.method_calls]
        assert names == [
            "get_ids",
            "get_record_by_id",
            "get_record_meta_by_id",
            "get_records_by_ids",
            "get_record_metas_by_ids",
            "get_records_with_generated",
        ]
        strategy.get_record_by_id.assert_called_once_with(1)
        strategy.get_record_meta_by_id.assert_called_once_with(1)
        strategy.get_records_with_generated.assert_called_once_with(False)

    def test_returns_elapsed_nanoseconds(self):
        sample = QueryProbe(make_strategy(), clock=ticking_clock(1000)).run()
        assert sample == Decimal(1000)
        assert isinstance(sample, Decimal)

    def test_batch_is_bounded(self):
        strategy = make_strategy(ids=range(1, 11))
        QueryProbe(strategy, batch_size=4, clock=ticking_clock()).run()

        strategy.get_records_by_ids.assert_called_once_with([1, 2, 3, 4])
        strategy.get_record_metas_by_ids.assert_called_once_with([1, 2, 3, 4])

    def test_empty_dataset(self):
        strategy = make_strategy(ids=())
        with pytest.raises(EmptyDataset) as exc_info:
            QueryProbe(strategy).run()
        assert exc_info.value.context.strategy == "pooled_template"
        strategy.get_record_by_id.assert_not_called()

    def test_strategy_errors_propagate(self):
        strategy = make_strategy()
        strategy.get_records_by_ids.side_effect = QueryError("boom")
        with pytest.raises(QueryError):
            QueryProbe(strategy).run()

    def test_identity(self):
        assert QueryProbe(make_strategy()).identity is StrategyIdentity.POOLED_TEMPLATE

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            QueryProbe(make_strategy(), batch_size=0)


class TestQueryProbeAgainstSqlite:
    @pytest.mark.parametrize("name", ["connection_reuse", "pooled_template"])
    def test_real_strategy(self, name, settings):
        from querybench.data.connection_reuse import ConnectionReuseStrategy
        from querybench.data.template import PooledTemplateStrategy

        cls = {"connection_reuse": ConnectionReuseStrategy, "pooled_template": PooledTemplateStrategy}[name]
        strategy = cls.from_settings(settings)
        try:
            sample = QueryProbe(strategy).run()
        finally:
            strategy.close()
        assert sample > 0

    def test_empty_table(self, make_db_settings, empty_sqlite_db):
        from querybench.data.template import PooledTemplateStrategy

        strategy = PooledTemplateStrategy.from_settings(make_db_settings(empty_sqlite_db))
        try:
            with pytest.raises(EmptyDataset):
                QueryProbe(strategy).run()
        finally:
            strategy.close()
