from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .db import PoolConfiguration

ENVIRONMENTS = ("development", "staging", "production")


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PORT: API server port (default 4000)
    - ENV: 'development' (default), 'staging' or 'production'
    - GREENLIGHT_DB_DSN: PostgreSQL connection string; empty selects the in-memory store
    - DB_MAX_OPEN_CONNS: PostgreSQL max open connections (default 25)
    - DB_MAX_IDLE_CONNS: PostgreSQL max idle connections (default 25)
    - DB_MAX_IDLE_TIME: PostgreSQL max connection idle time (default '15m')
    - LOG_LEVEL: logging level name (default 'INFO')
    """

    port: int = 4000
    env: str = "development"
    db_dsn: str = ""
    db_max_open_conns: int = 25
    db_max_idle_conns: int = 25
    db_max_idle_time: str = "15m"
    log_level: str = "INFO"

    @property
    def persistence_backend(self) -> str:
        return "postgres" if self.db_dsn else "memory"

    # PUBLIC_INTERFACE
    def pool_config(self) -> PoolConfiguration:
        """Return the connection pool settings for open_db."""
        return PoolConfiguration(
            dsn=self.db_dsn,
            max_open_conns=self.db_max_open_conns,
            max_idle_conns=self.db_max_idle_conns,
            max_idle_time=self.db_max_idle_time,
        )


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


# PUBLIC_INTERFACE
def get_settings(overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """
    Return application settings loaded from environment variables.

    Non-None entries in overrides (keyed by Settings field name, e.g. from
    command-line flags) take the place of the matching environment variable,
    so an invalid variable that is overridden is never read.
    """
    given = {k: v for k, v in (overrides or {}).items() if v is not None}

    def pick(field: str, read: Callable[[], Any]) -> Any:
        return given[field] if field in given else read()

    env = str(pick("env", lambda: _get_env("ENV", "development"))).strip().lower()
    if env not in ENVIRONMENTS:
        raise ValueError(f"ENV must be one of {', '.join(ENVIRONMENTS)}, got {env!r}")

    return Settings(
        port=pick("port", lambda: _parse_int("PORT", 4000)),
        env=env,
        db_dsn=pick("db_dsn", lambda: _get_env("GREENLIGHT_DB_DSN", "")).strip(),
        db_max_open_conns=pick("db_max_open_conns", lambda: _parse_int("DB_MAX_OPEN_CONNS", 25)),
        db_max_idle_conns=pick("db_max_idle_conns", lambda: _parse_int("DB_MAX_IDLE_CONNS", 25)),
        db_max_idle_time=pick("db_max_idle_time", lambda: _get_env("DB_MAX_IDLE_TIME", "15m")).strip(),
        log_level=pick("log_level", lambda: _get_env("LOG_LEVEL", "INFO")).strip().upper(),
    )
