"""
Process-wide benchmark settings.

Settings are read once at startup from ``QUERYBENCH_*`` environment
variables (and an optional ``.env`` file) and treated as read-only
afterwards. The driver passes them explicitly into every component it
builds; nothing below the driver reads the environment.

Examples:
    >>> from querybench.core.settings import BenchSettings
    >>> settings = BenchSettings(database_url="sqlite:///bench.db", schema_name=None)
    >>> settings.delay_seconds
    5.0

Requires ``pydantic-settings``.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from querybench.core.errors import InvalidConfigError, MissingConfigError

SUPPORTED_BACKENDS = frozenset({"postgresql", "mysql", "sqlite"})
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ScheduleMode(str, Enum):
    """How the scheduler picks the next strategy while both are unfinished."""

    INTERLEAVED = "interleaved"
    SEQUENTIAL = "sequential"


class BenchSettings(BaseSettings):
    """Settings for one benchmark process.

    Fields
    ──────
    database_url  : SQLAlchemy URL of the benchmarked database
    username      : Overrides the URL's user when set
    password      : Overrides the URL's password when set
    schema_name   : Schema holding the benchmark tables (empty for none)
    fetch_size    : Rows fetched per round trip, applied to every statement
    pool_*        : Sizing of the pooled engine
    loops, times  : Main loops, and probe runs per strategy per loop
    delay_ms      : Sleep between runs while a loop is unfinished
    max_retries   : Lenient statement attempts before the strict one
    max_failures  : Failed runs tolerated per strategy per loop
    batch_size    : Ids fetched by the batch lookups
    mode          : interleaved or sequential scheduling
    log_level     : structlog level
    json_logs     : JSON logs (None = auto-detect from TTY)
    """

    model_config = SettingsConfigDict(
        env_prefix="QUERYBENCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str | None = None
    username: str | None = None
    password: SecretStr | None = None
    schema_name: str | None = "sufficient_data"

    # ── Statements and pooling ───────────────────────────────────
    fetch_size: int = Field(default=10, ge=1)
    pool_size: int = Field(default=1, ge=1)
    max_overflow: int = Field(default=4, ge=0)
    pool_timeout: float = Field(default=10.0, gt=0)
    pool_recycle: int = Field(default=30, description="Seconds before a pooled connection is replaced")

    # ── Benchmark shape ──────────────────────────────────────────
    loops: int = Field(default=20, ge=1)
    times: int = Field(default=5, ge=1)
    delay_ms: int = Field(default=5000, ge=0)
    max_retries: int = Field(default=2, ge=0)
    max_failures: int = Field(default=3, ge=1)
    batch_size: int = Field(default=1000, ge=1)
    mode: ScheduleMode = ScheduleMode.INTERLEAVED

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("schema_name")
    @classmethod
    def _blank_schema_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000

    def sqlalchemy_url(self) -> URL:
        """Database URL with credential overrides applied.

        Raises:
            MissingConfigError: if no database URL is configured.
            InvalidConfigError: if the URL cannot be parsed or names an
                unsupported backend.
        """
        if not self.database_url:
            raise MissingConfigError("QUERYBENCH_DATABASE_URL")

        try:
            url = make_url(self.database_url)
        except ArgumentError as e:
            raise InvalidConfigError("database_url", self.database_url, str(e)) from e

        backend = url.get_backend_name()
        if backend not in SUPPORTED_BACKENDS:
            raise InvalidConfigError(
                "database_url",
                self.database_url,
                f"Unsupported database backend {backend!r}; expected one of {sorted(SUPPORTED_BACKENDS)}",
            )

        if self.username:
            url = url.set(username=self.username)
        if self.password is not None:
            url = url.set(password=self.password.get_secret_value())
        return url

    @property
    def backend(self) -> str:
        return self.sqlalchemy_url().get_backend_name()


@lru_cache(maxsize=1)
def get_settings() -> BenchSettings:
    """Return the process-wide settings, loading them on first use."""
    return BenchSettings()
