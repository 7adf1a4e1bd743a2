"""
Structural contracts between the benchmark's layers.

Architecture:
    ::

        protocols.py
        ├── StrategyIdentity   — closed enum naming the two strategies
        ├── Cursor             — the DB-API cursor surface we rely on
        ├── ConnectionHandle   — one raw connection (cursor/close/is_closed)
        ├── ConnectionProvider — hands out fresh ConnectionHandles
        └── QueryStrategy      — the query capability a probe drives

    Implementations:
        ConnectionHandle   → core.connection.DbapiConnectionHandle
        ConnectionProvider → core.connection.EngineConnectionProvider
        QueryStrategy      → data.connection_reuse.ConnectionReuseStrategy
                             data.template.PooledTemplateStrategy

Guardrails:
    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep implementations in core.connection and data
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from querybench.data.records import Record, RecordMeta


class StrategyIdentity(str, Enum):
    """The two ways of executing the query sequence."""

    CONNECTION_REUSE = "connection_reuse"
    POOLED_TEMPLATE = "pooled_template"

    @property
    def label(self) -> str:
        return _LABELS[self]

    def __str__(self) -> str:
        return self.value


_LABELS = {
    StrategyIdentity.CONNECTION_REUSE: "Connection re-use",
    StrategyIdentity.POOLED_TEMPLATE: "Template",
}


@runtime_checkable
class Cursor(Protocol):
    """Subset of a DB-API 2.0 cursor used by the raw strategy."""

    arraysize: int

    def execute(self, sql: str, params: Any = ...) -> Any: ...

    def fetchmany(self, size: int = ...) -> Sequence[Any]: ...

    def close(self) -> None: ...


@runtime_checkable
class ConnectionHandle(Protocol):
    """A single raw database connection.

    Every method may raise; callers decide what a failure means.
    """

    def cursor(self) -> Cursor: ...

    def close(self) -> None: ...

    def is_closed(self) -> bool: ...


@runtime_checkable
class ConnectionProvider(Protocol):
    """Source of brand-new connection handles."""

    @property
    def paramstyle(self) -> str: ...

    def new_connection(self) -> ConnectionHandle: ...


@runtime_checkable
class QueryStrategy(Protocol):
    """
    Query capability shared by both strategies.

    Point lookups return ``None`` when no row matches; that is a result,
    not a failure.
    """

    identity: StrategyIdentity

    def get_ids(self) -> list[int]: ...

    def get_record_by_id(self, record_id: int) -> Record | None: ...

    def get_record_meta_by_id(self, record_id: int) -> RecordMeta | None: ...

    def get_records_by_ids(self, ids: Collection[int]) -> dict[int, Record]: ...

    def get_record_metas_by_ids(self, ids: Collection[int]) -> dict[int, RecordMeta]: ...

    def get_records_with_generated(self, generated: bool) -> list[Record]: ...

    def get_records_with_created(self, created: datetime | str) -> list[Record]: ...

    def get_records_grouped_by_created(self) -> dict[str, list[Record]]: ...

    def get_records_grouped_by_generated(self) -> dict[bool, list[Record]]: ...

    def close(self) -> None: ...


__all__ = [
    "StrategyIdentity",
    "Cursor",
    "ConnectionHandle",
    "ConnectionProvider",
    "QueryStrategy",
]
