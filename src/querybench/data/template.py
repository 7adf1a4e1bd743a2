"""
Pooled template strategy: every query borrows a connection from a
SQLAlchemy ``QueuePool`` and returns it afterwards.

This is the abstraction being compared against the hand-managed
connection: binding, pooling, validation on borrow and result buffering
are all left to SQLAlchemy.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from querybench.core.connection import create_pooled_engine
from querybench.core.errors import QueryError
from querybench.core.logging import get_logger
from querybench.core.protocols import StrategyIdentity
from querybench.core.settings import BenchSettings
from querybench.core.timing import log_runtime, now_ns
from querybench.data import records as extract
from querybench.data.records import Record, RecordMeta
from querybench.data.sql import Tables, TemplateQueries

logger = get_logger(__name__)


class PooledTemplateStrategy:
    """``QueryStrategy`` over a pooled SQLAlchemy engine."""

    identity = StrategyIdentity.POOLED_TEMPLATE

    def __init__(self, engine: Engine, queries: TemplateQueries):
        self._engine = engine
        self._queries = queries

    @classmethod
    def from_settings(cls, settings: BenchSettings) -> PooledTemplateStrategy:
        return cls(create_pooled_engine(settings), TemplateQueries(Tables(settings.schema_name)))

    @property
    def engine(self) -> Engine:
        return self._engine

    def _rows(self, operation: str, statement: TextClause, params: dict[str, Any] | None = None) -> Sequence[Any]:
        start = now_ns()
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(statement, params or {}).all()
        except SQLAlchemyError as e:
            logger.error("query_failed", operation=operation, error=str(e))
            raise QueryError(f"Failed to execute {operation}", cause=e).with_context(
                strategy=self.identity.value, operation=operation, sql=str(statement)
            ) from e
        log_runtime(logger, start, operation, rows=len(rows))
        return rows

    # -- QueryStrategy -----------------------------------------------------

    def get_ids(self) -> list[int]:
        return [extract.map_id(row) for row in self._rows("get_ids", self._queries.select_ids)]

    def get_record_by_id(self, record_id: int) -> Record | None:
        rows = self._rows("get_record_by_id", self._queries.select_record_by_id, {"id": record_id})
        row = extract.single(rows, "record")
        return None if row is None else extract.map_record(row)

    def get_record_meta_by_id(self, record_id: int) -> RecordMeta | None:
        rows = self._rows("get_record_meta_by_id", self._queries.select_meta_by_id, {"id": record_id})
        row = extract.single(rows, "record meta")
        if row is None:
            logger.debug("record_meta_not_found", record_id=record_id)
            return None
        return extract.map_record_meta(row)

    def get_records_by_ids(self, ids: Collection[int]) -> dict[int, Record]:
        if not ids:
            return {}
        rows = self._rows("get_records_by_ids", self._queries.select_records_by_ids, {"ids": list(ids)})
        return extract.records_by_id(rows)

    def get_record_metas_by_ids(self, ids: Collection[int]) -> dict[int, RecordMeta]:
        if not ids:
            return {}
        rows = self._rows("get_record_metas_by_ids", self._queries.select_metas_by_ids, {"ids": list(ids)})
        return extract.metas_by_id(rows)

    def get_records_with_generated(self, generated: bool) -> list[Record]:
        rows = self._rows(
            "get_records_with_generated", self._queries.select_records_with_generated, {"generated": generated}
        )
        return [extract.map_record(row) for row in rows]

    def get_records_with_created(self, created: datetime | str) -> list[Record]:
        rows = self._rows("get_records_with_created", self._queries.select_records_with_created, {"created": created})
        return [extract.map_record(row) for row in rows]

    def get_records_grouped_by_created(self) -> dict[str, list[Record]]:
        return extract.records_by_created(self._rows("get_records_grouped_by_created", self._queries.select_records))

    def get_records_grouped_by_generated(self) -> dict[bool, list[Record]]:
        return extract.records_by_generated(
            self._rows("get_records_grouped_by_generated", self._queries.select_records)
        )

    def close(self) -> None:
        self._engine.dispose()
