"""
Resilient statement acquisition over one reused connection.

``ResilientStatementSource`` owns a single raw connection handle and hands
out DB-API cursors ("statements") from it. When a cursor cannot be obtained
it runs a bounded loop of attempts instead of failing the caller outright:

Architecture:
    ::

        prepare(max_retries=2)
        ┌──────────────────────────────────────────────────────────────┐
        │ attempt 1 (lenient) ── ok ──────────────────────────► cursor │
        │     │ fails                                                   │
        │     ▼                                                         │
        │  STALE → diagnose handle                                      │
        │     ├─ reports open   → keep it (OPEN), retry                 │
        │     └─ closed / unknown → close (CLOSED) → new handle (OPEN)  │
        │ attempt 2 (lenient) ── same as above                          │
        │ attempt 3 (strict)  ── fails ──► StatementAcquisitionFailed   │
        └──────────────────────────────────────────────────────────────┘

    Handle state machine: OPEN → STALE → CLOSED → OPEN

Every attempt produces a typed ``Attempt`` (SUCCESS, RETRY or FATAL), and
the full list travels with the final ``StatementAcquisitionFailed``.

Guardrails:
    ❌ DON'T: Tear down a handle that reports itself open after a soft failure
    ✅ DO: Refresh only when the handle is closed or cannot be diagnosed

    ❌ DON'T: Let a failing ``close()`` mask the result of the operation
    ✅ DO: Use ``close_quietly`` for every cursor, result and connection

Usage:
    source = ResilientStatementSource(provider, fetch_size=10)
    with source.statement() as cursor:
        cursor.execute("SELECT id FROM sufficient_ids")
        rows = cursor.fetchall()
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

from querybench.core.errors import (
    DatabaseConnectionError,
    ResourceCloseFailed,
    StatementAcquisitionFailed,
)
from querybench.core.logging import get_logger
from querybench.core.protocols import ConnectionHandle, ConnectionProvider, Cursor
from querybench.core.timing import log_runtime, now_ns

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 2


class HandleState(str, Enum):
    """Lifecycle of the owned connection handle."""

    OPEN = "open"
    STALE = "stale"
    CLOSED = "closed"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RETRY = "retry"
    FATAL = "fatal"


@dataclass(frozen=True)
class Attempt:
    """Outcome of one try at obtaining a statement."""

    number: int
    strict: bool
    outcome: AttemptOutcome
    error: Exception | None = None
    refreshed: bool = False
    refresh_error: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "number": self.number,
            "strict": self.strict,
            "outcome": self.outcome.value,
            "refreshed": self.refreshed,
        }
        if self.error is not None:
            result["error"] = str(self.error)
        if self.refresh_error is not None:
            result["refresh_error"] = str(self.refresh_error)
        return result


def close_quietly(resource: Any, name: str) -> bool:
    """Close ``resource`` and log, rather than raise, any failure.

    Returns:
        True if the resource closed cleanly (or was ``None``).
    """
    if resource is None:
        return True

    try:
        resource.close()
    except Exception as e:
        failure = ResourceCloseFailed(name, cause=e)
        logger.warning("resource_close_failed", **failure.to_dict())
        return False
    return True


class ResilientStatementSource:
    """Hands out statements from one connection, refreshing it when broken.

    The handle is never shared: one source belongs to one strategy and is
    driven from a single thread.
    """

    def __init__(
        self,
        provider: ConnectionProvider,
        *,
        fetch_size: int,
        max_retries: int = DEFAULT_MAX_RETRIES,
        open_now: bool = True,
    ):
        if fetch_size < 1:
            raise ValueError("fetch_size must be positive")
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")

        self._provider = provider
        self._fetch_size = fetch_size
        self._max_retries = max_retries
        self._handle: ConnectionHandle | None = None
        self._state = HandleState.CLOSED
        self.refresh_count = 0
        self.last_attempts: list[Attempt] = []

        if open_now:
            self.open()

    # -- state -------------------------------------------------------------

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def handle(self) -> ConnectionHandle | None:
        return self._handle

    @property
    def provider(self) -> ConnectionProvider:
        return self._provider

    @property
    def fetch_size(self) -> int:
        return self._fetch_size

    @property
    def max_retries(self) -> int:
        return self._max_retries

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> None:
        """Install a brand-new handle from the provider.

        Raises:
            DatabaseConnectionError: (or whatever the provider raises) if no
                connection can be obtained.
        """
        if self._handle is not None:
            return

        logger.info("connection_opening")
        handle = self._provider.new_connection()
        self._handle = handle
        self._state = HandleState.OPEN

    def refresh(self) -> None:
        """Replace the current handle with a new one.

        The old handle is fully closed before the provider is asked for a
        replacement; the replacement is installed before ``refresh`` returns.
        """
        start = now_ns()
        old, self._handle = self._handle, None
        close_quietly(old, "connection")
        self._state = HandleState.CLOSED

        self.open()
        self.refresh_count += 1
        log_runtime(logger, start, "refresh_connection", refreshes=self.refresh_count)

    def close(self) -> None:
        """Close the owned handle, best effort."""
        old, self._handle = self._handle, None
        close_quietly(old, "connection")
        self._state = HandleState.CLOSED

    # -- acquisition -------------------------------------------------------

    def prepare(self, max_retries: int | None = None) -> Cursor:
        """Obtain a statement with the configured fetch size applied.

        Args:
            max_retries: Lenient attempts before the final strict one;
                defaults to the source's ``max_retries``.

        Raises:
            StatementAcquisitionFailed: if the strict attempt fails, or the
                fetch size cannot be applied.
        """
        retries = self._max_retries if max_retries is None else max_retries
        if retries < 0:
            raise ValueError("max_retries must not be negative")

        start = now_ns()
        attempts: list[Attempt] = []

        for remaining in range(retries, -1, -1):
            attempt, cursor = self._attempt(number=len(attempts) + 1, strict=remaining == 0)
            attempts.append(attempt)

            if attempt.outcome is AttemptOutcome.SUCCESS:
                self.last_attempts = attempts
                log_runtime(logger, start, "prepare_statement", attempts=len(attempts))
                return cursor

            if attempt.outcome is AttemptOutcome.FATAL:
                break

        self.last_attempts = attempts
        last = attempts[-1]
        error = StatementAcquisitionFailed(
            f"Could not prepare a statement after {len(attempts)} attempt(s)",
            attempts=attempts,
            cause=last.error,
        )
        logger.error(
            "statement_acquisition_failed",
            attempts=[a.to_dict() for a in attempts],
            state=self._state.value,
        )
        raise error

    @contextmanager
    def statement(self, max_retries: int | None = None) -> Iterator[Cursor]:
        """Prepare a statement and close it, best effort, when done."""
        cursor = self.prepare(max_retries)
        try:
            yield cursor
        finally:
            close_quietly(cursor, "statement")

    def _attempt(self, *, number: int, strict: bool) -> tuple[Attempt, Cursor | None]:
        try:
            cursor = self._new_cursor()
        except Exception as e:
            if strict:
                return Attempt(number, strict, AttemptOutcome.FATAL, error=e), None

            logger.warning("statement_attempt_failed", attempt=number, error=str(e))
            refreshed, refresh_error = self._recover()
            return (
                Attempt(
                    number,
                    strict,
                    AttemptOutcome.RETRY,
                    error=e,
                    refreshed=refreshed,
                    refresh_error=refresh_error,
                ),
                None,
            )

        try:
            cursor.arraysize = self._fetch_size
        except Exception as e:
            logger.error("fetch_size_rejected", fetch_size=self._fetch_size, error=str(e))
            close_quietly(cursor, "statement")
            return Attempt(number, strict, AttemptOutcome.FATAL, error=e), None

        return Attempt(number, strict, AttemptOutcome.SUCCESS), cursor

    def _new_cursor(self) -> Cursor:
        if self._handle is None:
            raise DatabaseConnectionError("No connection is installed")
        return self._handle.cursor()

    def _recover(self) -> tuple[bool, Exception | None]:
        """Refresh the handle if diagnosis says so. Returns (refreshed, refresh_error)."""
        self._state = HandleState.STALE

        if not self._should_refresh():
            logger.info("connection_refresh_skipped", reason="connection reports open")
            self._state = HandleState.OPEN
            return False, None

        try:
            self.refresh()
        except Exception as e:
            # The next attempt runs without a handle and fails on its own
            logger.error("connection_refresh_failed", error=str(e))
            return False, e
        return True, None

    def _should_refresh(self) -> bool:
        if self._handle is None:
            return True

        try:
            return self._handle.is_closed()
        except Exception as e:
            logger.error("connection_diagnosis_failed", error=str(e), assumption="refresh")
            return True

    def __repr__(self) -> str:
        return f"ResilientStatementSource(state={self._state.value}, refreshes={self.refresh_count})"
