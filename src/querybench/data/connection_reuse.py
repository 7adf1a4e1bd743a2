"""
Connection-reuse strategy: every query runs on one long-lived raw connection.

Statements come from a ``ResilientStatementSource`` so a connection that
went stale between runs is replaced transparently. Rows are pulled with
``fetchmany`` in chunks of the configured fetch size.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Any

from querybench.core.connection import EngineConnectionProvider
from querybench.core.errors import QueryError
from querybench.core.logging import get_logger
from querybench.core.protocols import Cursor, StrategyIdentity
from querybench.core.settings import BenchSettings
from querybench.core.timing import log_runtime, now_ns
from querybench.data import records as extract
from querybench.data.records import Record, RecordMeta
from querybench.data.sql import RawQueries, Tables
from querybench.data.statements import ResilientStatementSource

logger = get_logger(__name__)


def fetch_all(cursor: Cursor) -> list[Any]:
    """Drain a cursor ``arraysize`` rows at a time."""
    rows: list[Any] = []
    while True:
        chunk = cursor.fetchmany(cursor.arraysize)
        if not chunk:
            return rows
        rows.extend(chunk)


class ConnectionReuseStrategy:
    """``QueryStrategy`` over a single hand-managed DB-API connection."""

    identity = StrategyIdentity.CONNECTION_REUSE

    def __init__(
        self,
        statements: ResilientStatementSource,
        queries: RawQueries,
        *,
        driver_error: type[Exception] | tuple[type[Exception], ...] = Exception,
    ):
        self._statements = statements
        self._queries = queries
        self._driver_error = driver_error

    @classmethod
    def from_settings(
        cls,
        settings: BenchSettings,
        provider: EngineConnectionProvider | None = None,
    ) -> ConnectionReuseStrategy:
        provider = provider or EngineConnectionProvider.from_settings(settings)
        statements = ResilientStatementSource(
            provider,
            fetch_size=settings.fetch_size,
            max_retries=settings.max_retries,
        )
        queries = RawQueries(Tables(settings.schema_name), provider.paramstyle)
        return cls(statements, queries, driver_error=provider.engine.dialect.loaded_dbapi.Error)

    @property
    def statements(self) -> ResilientStatementSource:
        return self._statements

    def _rows(self, operation: str, sql: str, values: Sequence[Any] = ()) -> list[Any]:
        start = now_ns()
        with self._statements.statement() as cursor:
            try:
                cursor.execute(sql, self._queries.params(values))
                rows = fetch_all(cursor)
            except self._driver_error as e:
                logger.error("query_failed", operation=operation, error=str(e))
                raise QueryError(f"Failed to execute {operation}", cause=e).with_context(
                    strategy=self.identity.value, operation=operation, sql=sql
                ) from e
        log_runtime(logger, start, operation, rows=len(rows))
        return rows

    # -- QueryStrategy -----------------------------------------------------

    def get_ids(self) -> list[int]:
        return [extract.map_id(row) for row in self._rows("get_ids", self._queries.select_ids())]

    def get_record_by_id(self, record_id: int) -> Record | None:
        rows = self._rows("get_record_by_id", self._queries.select_record_by_id(), [record_id])
        row = extract.single(rows, "record")
        return None if row is None else extract.map_record(row)

    def get_record_meta_by_id(self, record_id: int) -> RecordMeta | None:
        rows = self._rows("get_record_meta_by_id", self._queries.select_meta_by_id(), [record_id])
        row = extract.single(rows, "record meta")
        if row is None:
            logger.debug("record_meta_not_found", record_id=record_id)
            return None
        return extract.map_record_meta(row)

    def get_records_by_ids(self, ids: Collection[int]) -> dict[int, Record]:
        if not ids:
            return {}
        sql = self._queries.select_records_by_ids(len(ids))
        return extract.records_by_id(self._rows("get_records_by_ids", sql, list(ids)))

    def get_record_metas_by_ids(self, ids: Collection[int]) -> dict[int, RecordMeta]:
        if not ids:
            return {}
        sql = self._queries.select_metas_by_ids(len(ids))
        return extract.metas_by_id(self._rows("get_record_metas_by_ids", sql, list(ids)))

    def get_records_with_generated(self, generated: bool) -> list[Record]:
        rows = self._rows("get_records_with_generated", self._queries.select_records_with_generated(), [generated])
        return [extract.map_record(row) for row in rows]

    def get_records_with_created(self, created: datetime | str) -> list[Record]:
        rows = self._rows("get_records_with_created", self._queries.select_records_with_created(), [created])
        return [extract.map_record(row) for row in rows]

    def get_records_grouped_by_created(self) -> dict[str, list[Record]]:
        return extract.records_by_created(self._rows("get_records_grouped_by_created", self._queries.select_records()))

    def get_records_grouped_by_generated(self) -> dict[bool, list[Record]]:
        return extract.records_by_generated(
            self._rows("get_records_grouped_by_generated", self._queries.select_records())
        )

    def close(self) -> None:
        self._statements.close()
        dispose = getattr(self._statements.provider, "dispose", None)
        if dispose is not None:
            dispose()
