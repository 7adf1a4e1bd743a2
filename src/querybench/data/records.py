"""
Row mapping for the benchmark tables.

Rows arrive positionally (DB-API tuples or SQLAlchemy ``Row`` objects) in
the column order the queries in ``querybench.data.sql`` select. Any row
that cannot be mapped raises ``RowExtractionFailed``; the probe run it
belongs to is then reported as failed instead of producing a sample.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from querybench.core.errors import RowExtractionFailed

_MAPPING_ERRORS = (TypeError, ValueError, IndexError, KeyError, ArithmeticError)


@dataclass(frozen=True)
class Record:
    """One row of ``sufficient_ids``."""

    id: int
    created: str
    value: Decimal
    generated: bool

    def as_strings(self) -> tuple[str, str, str, str]:
        return (str(self.id), self.created, str(self.value), str(self.generated).lower())


@dataclass(frozen=True)
class RecordMeta:
    """One row of ``sufficient_meta``, keyed by the record it describes."""

    id: int
    canonical_name: str | None
    description: str | None
    access_restricted: bool
    last_accessed: str | None


def _required(row: Sequence[Any], index: int, column: str) -> Any:
    value = row[index]
    if value is None:
        raise ValueError(f"column {column!r} is NULL")
    return value


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def map_id(row: Sequence[Any]) -> int:
    try:
        return int(_required(row, 0, "id"))
    except _MAPPING_ERRORS as e:
        raise RowExtractionFailed(f"Cannot map id from row: {e}", row=row, cause=e) from e


def map_record(row: Sequence[Any]) -> Record:
    try:
        return Record(
            id=int(_required(row, 0, "id")),
            created=str(_required(row, 1, "created")),
            value=Decimal(str(_required(row, 2, "value"))),
            generated=bool(row[3]),
        )
    except _MAPPING_ERRORS as e:
        raise RowExtractionFailed(f"Cannot map record from row: {e}", row=row, cause=e) from e


def map_record_meta(row: Sequence[Any]) -> RecordMeta:
    try:
        return RecordMeta(
            id=int(_required(row, 0, "id")),
            canonical_name=_optional_str(row[1]),
            description=_optional_str(row[2]),
            access_restricted=bool(row[3]),
            last_accessed=_optional_str(row[4]),
        )
    except _MAPPING_ERRORS as e:
        raise RowExtractionFailed(f"Cannot map record meta from row: {e}", row=row, cause=e) from e


def single(rows: Sequence[Any], what: str) -> Any | None:
    """The only row of a point lookup, or ``None`` when nothing matched."""
    if len(rows) > 1:
        raise RowExtractionFailed(f"Expected at most one {what}, got {len(rows)}")
    return rows[0] if rows else None


# ── Extractors ───────────────────────────────────────────────────────────


def records_by_id(rows: Iterable[Sequence[Any]]) -> dict[int, Record]:
    results = {}
    for row in rows:
        record = map_record(row)
        results[record.id] = record
    return results


def metas_by_id(rows: Iterable[Sequence[Any]]) -> dict[int, RecordMeta]:
    results = {}
    for row in rows:
        meta = map_record_meta(row)
        results[meta.id] = meta
    return results


def records_by_created(rows: Iterable[Sequence[Any]]) -> dict[str, list[Record]]:
    results: dict[str, list[Record]] = defaultdict(list)
    for row in rows:
        record = map_record(row)
        results[record.created].append(record)
    return dict(results)


def records_by_generated(rows: Iterable[Sequence[Any]]) -> dict[bool, list[Record]]:
    results: dict[bool, list[Record]] = defaultdict(list)
    for row in rows:
        record = map_record(row)
        results[record.generated].append(record)
    return dict(results)
