"""Tests for querybench.core.connection — engines and raw handles.

SQLite tests run against a real database file; the non-SQLite pool options
are checked with ``create_engine`` patched out so no driver is needed.
"""

from __future__ import annotations

import sqlite3
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import event

from querybench.core.connection import (
    ConnectionInfo,
    DbapiConnectionHandle,
    EngineConnectionProvider,
    create_direct_engine,
    create_pooled_engine,
    describe,
)
from querybench.core.errors import DatabaseConnectionError


class TestConnectionInfo:
    def test_sqlite(self):
        info = ConnectionInfo(backend="sqlite", driver="pysqlite", paramstyle="qmark", url="sqlite:///x.db")
        assert info.is_sqlite

    def test_postgresql(self):
        info = ConnectionInfo(backend="postgresql", driver="psycopg", paramstyle="pyformat", url="postgresql://h/db")
        assert not info.is_sqlite

    def test_describe_sqlite_engine(self, settings):
        engine = create_direct_engine(settings)
        try:
            info = describe(engine)
        finally:
            engine.dispose()
        assert info.backend == "sqlite"
        assert info.driver == "pysqlite"
        assert info.paramstyle == "qmark"


class TestCreatePooledEngine:
    def test_fetch_size_applied_to_cursors(self, settings):
        engine = create_pooled_engine(settings)
        seen = []

        @event.listens_for(engine, "before_cursor_execute")
        def _capture(conn, cursor, statement, parameters, context, executemany):
            seen.append(cursor.arraysize)

        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT id FROM sufficient_ids").all()
        finally:
            engine.dispose()
        assert seen
        assert all(size == settings.fetch_size for size in seen)

    def test_pool_options_for_server_backends(self, make_db_settings, sqlite_db):
        settings = make_db_settings(
            sqlite_db,
            database_url="postgresql+psycopg://u:p@localhost/bench",
            pool_size=2,
            max_overflow=3,
        )
        with patch("querybench.core.connection.create_engine") as create, patch(
            "querybench.core.connection.event"
        ):
            create_pooled_engine(settings)

        kwargs = create.call_args.kwargs
        assert kwargs["pool_pre_ping"] is True
        assert kwargs["pool_size"] == 2
        assert kwargs["max_overflow"] == 3
        assert kwargs["pool_timeout"] == settings.pool_timeout
        assert kwargs["pool_recycle"] == settings.pool_recycle

    def test_no_pool_sizing_for_sqlite(self, settings):
        with patch("querybench.core.connection.create_engine") as create, patch(
            "querybench.core.connection.event"
        ):
            create_pooled_engine(settings)

        kwargs = create.call_args.kwargs
        assert "pool_size" not in kwargs
        assert kwargs["connect_args"] == {"check_same_thread": False}


class TestDbapiConnectionHandle:
    def test_invalid_connection_is_closed(self):
        raw = MagicMock(is_valid=False)
        assert DbapiConnectionHandle(raw).is_closed()

    def test_closed_flag(self):
        raw = SimpleNamespace(is_valid=True, dbapi_connection=SimpleNamespace(closed=1))
        assert DbapiConnectionHandle(raw).is_closed()

    def test_open_flag(self):
        raw = SimpleNamespace(is_valid=True, dbapi_connection=SimpleNamespace(open=True))
        assert not DbapiConnectionHandle(raw).is_closed()

    def test_closed_sqlite_connection_raises(self):
        dbapi = sqlite3.connect(":memory:")
        dbapi.close()
        raw = SimpleNamespace(is_valid=True, dbapi_connection=dbapi)
        with pytest.raises(sqlite3.ProgrammingError):
            DbapiConnectionHandle(raw).is_closed()

    def test_open_sqlite_connection(self):
        dbapi = sqlite3.connect(":memory:")
        try:
            raw = SimpleNamespace(is_valid=True, dbapi_connection=dbapi)
            assert not DbapiConnectionHandle(raw).is_closed()
        finally:
            dbapi.close()


class TestEngineConnectionProvider:
    def test_new_connection_is_dedicated(self, settings):
        provider = EngineConnectionProvider.from_settings(settings)
        try:
            first = provider.new_connection()
            second = provider.new_connection()
            assert first.raw.dbapi_connection is not second.raw.dbapi_connection
            first.close()
            second.close()
        finally:
            provider.dispose()

    def test_handle_round_trip(self, settings):
        provider = EngineConnectionProvider.from_settings(settings)
        try:
            handle = provider.new_connection()
            cursor = handle.cursor()
            cursor.execute("SELECT count(*) FROM sufficient_ids")
            assert cursor.fetchmany(1) == [(5,)]
            cursor.close()
            assert not handle.is_closed()
            handle.close()
            assert handle.is_closed()
        finally:
            provider.dispose()

    def test_paramstyle(self, settings):
        provider = EngineConnectionProvider.from_settings(settings)
        try:
            assert provider.paramstyle == "qmark"
        finally:
            provider.dispose()

    def test_failure_is_wrapped(self, make_db_settings, tmp_path):
        settings = make_db_settings(tmp_path / "missing" / "dir" / "bench.db")
        provider = EngineConnectionProvider.from_settings(settings)
        try:
            with pytest.raises(DatabaseConnectionError) as exc_info:
                provider.new_connection()
        finally:
            provider.dispose()
        assert exc_info.value.retryable
        assert exc_info.value.cause is not None
