"""
Connection factory — SQLAlchemy engines and raw connection handles.

Both strategies talk to the same database through SQLAlchemy, configured
from ``BenchSettings``:

==========================  ===========  =====================================
Engine                      Pool         Used by
==========================  ===========  =====================================
``create_pooled_engine()``  QueuePool    ``PooledTemplateStrategy``
``create_direct_engine()``  NullPool     ``EngineConnectionProvider`` (raw)
==========================  ===========  =====================================

With ``NullPool`` every ``raw_connection()`` opens a dedicated DB-API
connection and ``close()`` really closes it, so the connection-reuse
strategy owns exactly one live connection at a time.

Usage
-----
::

    from querybench.core.connection import EngineConnectionProvider

    provider = EngineConnectionProvider.from_settings(settings)
    handle = provider.new_connection()
    cursor = handle.cursor()

Supported backends are the ones ``BenchSettings`` accepts (PostgreSQL,
MySQL, SQLite). Validation on borrow is ``pool_pre_ping``, which emits the
dialect's own ping query.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from querybench.core.errors import DatabaseConnectionError
from querybench.core.logging import get_logger
from querybench.core.protocols import Cursor
from querybench.core.settings import BenchSettings
from querybench.core.timing import log_runtime, now_ns

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about the configured database."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"postgresql"``, ``"mysql"``."""

    driver: str
    """DB-API driver SQLAlchemy picked for the backend."""

    paramstyle: str
    """DB-API placeholder style of that driver."""

    url: str
    """URL with the password masked."""

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


def describe(engine: Engine) -> ConnectionInfo:
    return ConnectionInfo(
        backend=engine.dialect.name,
        driver=engine.dialect.driver,
        paramstyle=engine.dialect.paramstyle,
        url=engine.url.render_as_string(hide_password=True),
    )


# ── Engines ──────────────────────────────────────────────────────────────


def _engine_kwargs(settings: BenchSettings) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if settings.backend == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs


def create_pooled_engine(settings: BenchSettings, **kwargs: Any) -> Engine:
    """Engine behind the pooled template strategy.

    Pool sizing is ignored for SQLite, whose default pools are per-file or
    per-thread. Every cursor the engine opens gets the configured fetch size.
    """
    options = _engine_kwargs(settings)
    if settings.backend != "sqlite":
        options.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            pool_recycle=settings.pool_recycle,
        )
    options.update(kwargs)

    engine = create_engine(settings.sqlalchemy_url(), **options)
    fetch_size = settings.fetch_size

    @event.listens_for(engine, "before_cursor_execute")
    def _apply_fetch_size(
        conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool
    ) -> None:
        cursor.arraysize = fetch_size

    logger.info("engine_created", kind="pooled", **_loggable(describe(engine)))
    return engine


def create_direct_engine(settings: BenchSettings, **kwargs: Any) -> Engine:
    """Unpooled engine used only to open raw DB-API connections."""
    options = _engine_kwargs(settings)
    options["poolclass"] = NullPool
    options.update(kwargs)

    engine = create_engine(settings.sqlalchemy_url(), **options)
    logger.info("engine_created", kind="direct", **_loggable(describe(engine)))
    return engine


def _loggable(info: ConnectionInfo) -> dict[str, str]:
    return {"backend": info.backend, "driver": info.driver, "url": info.url}


# ── Raw handles ──────────────────────────────────────────────────────────


class DbapiConnectionHandle:
    """Adapter: SQLAlchemy raw connection → ``ConnectionHandle`` protocol."""

    def __init__(self, raw: Any) -> None:
        self._raw = raw

    def cursor(self) -> Cursor:
        return self._raw.cursor()

    def close(self) -> None:
        self._raw.close()

    def is_closed(self) -> bool:
        """Whether the underlying DB-API connection reports itself closed.

        Raises whatever the driver raises when it cannot tell.
        """
        if not self._raw.is_valid:
            return True

        dbapi = self._raw.dbapi_connection
        if hasattr(dbapi, "closed"):  # psycopg, psycopg2
            return bool(dbapi.closed)
        if hasattr(dbapi, "open"):  # PyMySQL, mysqlclient
            return not dbapi.open
        # sqlite3 has no flag; reading its state off a closed connection raises
        _ = dbapi.in_transaction
        return False

    @property
    def raw(self) -> Any:
        return self._raw

    def __repr__(self) -> str:
        return f"DbapiConnectionHandle({self._raw!r})"


class EngineConnectionProvider:
    """Hands out brand-new raw connections from an unpooled engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: BenchSettings) -> EngineConnectionProvider:
        return cls(create_direct_engine(settings))

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def paramstyle(self) -> str:
        return self._engine.dialect.paramstyle

    def new_connection(self) -> DbapiConnectionHandle:
        """Open a new connection.

        Raises:
            DatabaseConnectionError: if the driver refuses the connection.
        """
        logger.info("connection_requested")
        start = now_ns()
        try:
            raw = self._engine.raw_connection()
        except (SQLAlchemyError, self._engine.dialect.loaded_dbapi.Error) as e:
            # the pool re-raises the driver's own errors unwrapped
            logger.error("connection_failed", error=str(e))
            raise DatabaseConnectionError("Could not open a new database connection", cause=e) from e

        log_runtime(logger, start, "new_connection")
        return DbapiConnectionHandle(raw)

    def dispose(self) -> None:
        self._engine.dispose()
