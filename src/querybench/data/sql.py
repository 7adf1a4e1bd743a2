"""
SQL text for the benchmark queries.

``RawQueries`` renders positional placeholders in the DB-API ``paramstyle``
of the driver in use; ``TemplateQueries`` builds SQLAlchemy ``text()``
constructs with named (and, for ``IN`` lists, expanding) bind parameters.
Both select the same columns in the same order, so ``querybench.data.records``
maps either result.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.sql.elements import TextClause

RECORD_COLUMNS = "id, created, value, generated"
META_COLUMNS = "other_id AS id, canonical_name, description, access_restricted, last_accessed"


@dataclass(frozen=True)
class Tables:
    """Names of the two benchmark tables, optionally schema-qualified."""

    schema: str | None = "sufficient_data"

    def _qualify(self, table: str) -> str:
        return f"{self.schema}.{table}" if self.schema else table

    @property
    def ids(self) -> str:
        return self._qualify("sufficient_ids")

    @property
    def meta(self) -> str:
        return self._qualify("sufficient_meta")


# ── Raw DB-API ───────────────────────────────────────────────────────────


_POSITIONAL_STYLES = {"qmark", "numeric", "format", "pyformat"}


class RawQueries:
    """SQL strings and parameters for a DB-API driver."""

    def __init__(self, tables: Tables, paramstyle: str):
        if paramstyle not in _POSITIONAL_STYLES | {"named"}:
            raise ValueError(f"Unsupported DB-API paramstyle: {paramstyle!r}")
        self.tables = tables
        self.paramstyle = paramstyle

    def placeholder(self, index: int) -> str:
        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "numeric":
            return f":{index + 1}"
        if self.paramstyle == "named":
            return f":p{index}"
        return "%s"

    def params(self, values: Sequence[Any]) -> tuple[Any, ...] | dict[str, Any]:
        if self.paramstyle == "named":
            return {f"p{i}": value for i, value in enumerate(values)}
        return tuple(values)

    def _in_list(self, count: int) -> str:
        return ", ".join(self.placeholder(i) for i in range(count))

    def select_ids(self) -> str:
        return f"SELECT id FROM {self.tables.ids}"

    def select_records(self) -> str:
        return f"SELECT {RECORD_COLUMNS} FROM {self.tables.ids}"

    def select_record_by_id(self) -> str:
        return f"{self.select_records()} WHERE id = {self.placeholder(0)}"

    def select_records_by_ids(self, count: int) -> str:
        return f"{self.select_records()} WHERE id IN ({self._in_list(count)})"

    def select_records_with_generated(self) -> str:
        return f"{self.select_records()} WHERE generated = {self.placeholder(0)}"

    def select_records_with_created(self) -> str:
        return f"{self.select_records()} WHERE created = {self.placeholder(0)}"

    def select_meta_by_id(self) -> str:
        return f"SELECT {META_COLUMNS} FROM {self.tables.meta} WHERE other_id = {self.placeholder(0)}"

    def select_metas_by_ids(self, count: int) -> str:
        return f"SELECT {META_COLUMNS} FROM {self.tables.meta} WHERE other_id IN ({self._in_list(count)})"


# ── SQLAlchemy text() ────────────────────────────────────────────────────


class TemplateQueries:
    """Prebuilt ``text()`` statements for the pooled engine."""

    def __init__(self, tables: Tables):
        self.tables = tables
        records = f"SELECT {RECORD_COLUMNS} FROM {tables.ids}"
        metas = f"SELECT {META_COLUMNS} FROM {tables.meta}"

        self.select_ids: TextClause = text(f"SELECT id FROM {tables.ids}")
        self.select_records: TextClause = text(records)
        self.select_record_by_id: TextClause = text(f"{records} WHERE id = :id")
        self.select_records_by_ids: TextClause = text(f"{records} WHERE id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        self.select_records_with_generated: TextClause = text(f"{records} WHERE generated = :generated")
        self.select_records_with_created: TextClause = text(f"{records} WHERE created = :created")
        self.select_meta_by_id: TextClause = text(f"{metas} WHERE other_id = :id")
        self.select_metas_by_ids: TextClause = text(f"{metas} WHERE other_id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
