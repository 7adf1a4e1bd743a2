"""
Shared pytest fixtures and configuration for querybench tests.

This module provides:
- A seeded, file-backed SQLite database with both benchmark tables
- ``BenchSettings`` pointing at that database (no schema, no delay)
- Fake connection handles and providers for the statement source
- Settings-cache and logging-context cleanup for test isolation
"""

import sqlite3
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

# Ensure querybench package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from querybench.core.logging import clear_context
from querybench.core.settings import BenchSettings, get_settings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests that use the SQLite database as integration tests."""
    for item in items:
        if "sqlite_db" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_state():
    """Forget cached settings and bound log context around every test."""
    get_settings.cache_clear()
    clear_context()
    yield
    get_settings.cache_clear()
    clear_context()


@pytest.fixture(autouse=True)
def no_querybench_env(monkeypatch):
    """Keep the developer's QUERYBENCH_* variables out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("QUERYBENCH_"):
            monkeypatch.delenv(key)


# =============================================================================
# SQLite database
# =============================================================================

RECORDS = [
    (1, "2021-01-01 00:00:00", "1.5000", 0),
    (2, "2021-01-01 00:00:00", "2.2500", 1),
    (3, "2021-01-02 00:00:00", "3.0000", 0),
    (4, "2021-01-03 00:00:00", "4.7500", 1),
    (5, "2021-01-03 00:00:00", "5.1250", 0),
]

METAS = [
    (1, "record-one", "first record", 0, "2021-02-01 00:00:00"),
    (2, "record-two", None, 1, None),
    (4, "record-four", "fourth record", 0, "2021-02-04 00:00:00"),
]


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Path:
    """A SQLite file holding ``sufficient_ids`` and ``sufficient_meta``."""
    path = tmp_path / "bench.db"
    conn = sqlite3.connect(path)
    try:
        conn.executescript(
            """
            CREATE TABLE sufficient_ids (
                id INTEGER PRIMARY KEY,
                created TEXT NOT NULL,
                value TEXT NOT NULL,
                generated INTEGER NOT NULL
            );
            CREATE TABLE sufficient_meta (
                other_id INTEGER PRIMARY KEY,
                canonical_name TEXT,
                description TEXT,
                access_restricted INTEGER NOT NULL,
                last_accessed TEXT
            );
            """
        )
        conn.executemany("INSERT INTO sufficient_ids VALUES (?, ?, ?, ?)", RECORDS)
        conn.executemany("INSERT INTO sufficient_meta VALUES (?, ?, ?, ?, ?)", METAS)
        conn.commit()
    finally:
        conn.close()
    return path


@pytest.fixture
def empty_sqlite_db(sqlite_db: Path) -> Path:
    conn = sqlite3.connect(sqlite_db)
    try:
        conn.execute("DELETE FROM sufficient_ids")
        conn.commit()
    finally:
        conn.close()
    return sqlite_db


def make_settings(db: Path, **overrides: Any) -> BenchSettings:
    values: dict[str, Any] = {
        "database_url": f"sqlite:///{db}",
        "schema_name": None,
        "fetch_size": 2,
        "loops": 2,
        "times": 3,
        "delay_ms": 0,
    }
    values.update(overrides)
    return BenchSettings(_env_file=None, **values)


@pytest.fixture
def settings(sqlite_db: Path) -> BenchSettings:
    return make_settings(sqlite_db)


# =============================================================================
# Fakes for the statement source
# =============================================================================


class FakeCursor:
    def __init__(self, rows: list[Any] | None = None, *, reject_arraysize: bool = False):
        self._rows = list(rows or [])
        self._reject_arraysize = reject_arraysize
        self._arraysize = 1
        self.executed: list[tuple[str, Any]] = []
        self.closed = False

    @property
    def arraysize(self) -> int:
        return self._arraysize

    @arraysize.setter
    def arraysize(self, value: int) -> None:
        if self._reject_arraysize:
            raise RuntimeError("arraysize not supported")
        self._arraysize = value

    def execute(self, sql: str, params: Any = ()) -> None:
        self.executed.append((sql, params))

    def fetchmany(self, size: int = 1) -> list[Any]:
        chunk, self._rows = self._rows[:size], self._rows[size:]
        return chunk

    def close(self) -> None:
        self.closed = True


class FakeHandle:
    """Connection handle whose cursor() fails a configurable number of times."""

    def __init__(
        self,
        *,
        failures: int = 0,
        closed: bool = False,
        diagnosis_error: Exception | None = None,
        close_error: Exception | None = None,
        cursor_factory: Any = None,
    ):
        self.failures = failures
        self.closed = closed
        self.diagnosis_error = diagnosis_error
        self.close_error = close_error
        self.cursor_factory = cursor_factory or FakeCursor
        self.cursor_calls = 0
        self.close_calls = 0
        self.cursors: list[Any] = []

    def cursor(self) -> Any:
        self.cursor_calls += 1
        if self.failures:
            self.failures -= 1
            raise RuntimeError("connection is stale")
        cursor = self.cursor_factory()
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error

    def is_closed(self) -> bool:
        if self.diagnosis_error is not None:
            raise self.diagnosis_error
        return self.closed


class FakeProvider:
    """Hands out the queued handles in order, then healthy ones."""

    paramstyle = "qmark"

    def __init__(self, *handles: Any, error: Exception | None = None):
        self.handles = list(handles)
        self.error = error
        self.calls = 0
        self.issued: list[Any] = []

    def new_connection(self) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        handle = self.handles.pop(0) if self.handles else FakeHandle()
        self.issued.append(handle)
        return handle


@pytest.fixture
def fakes() -> SimpleNamespace:
    """The fake cursor, handle and provider classes."""
    return SimpleNamespace(Cursor=FakeCursor, Handle=FakeHandle, Provider=FakeProvider)


@pytest.fixture
def make_db_settings():
    return make_settings
