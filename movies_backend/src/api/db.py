from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Generator, Optional

import psycopg
from psycopg.conninfo import conninfo_to_dict
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from .errors import (
    ConnectionStringInvalid,
    DatabaseUnreachable,
    EditConflict,
    InvalidIdleDuration,
    InvalidPoolLimits,
)
from .models import MovieEntity
from .repositories import Repository
from .schemas import MovieCreate, MovieUpdate

logger = logging.getLogger(__name__)

# Upper bound on the startup liveness check, in seconds.
PING_TIMEOUT = 5.0

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"([0-9]+\.?[0-9]*|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_RE = re.compile(r"[-+]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:ns|us|µs|μs|ms|s|m|h))+")


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class PoolConfiguration:
    """
    Connection pool settings, built once at startup and consumed by open_db.

    max_idle_time is duration text such as '15m' or '1h30m'; it is parsed by
    open_db so that a bad value fails startup before any connection is made.
    """

    dsn: str
    max_open_conns: int = 25
    max_idle_conns: int = 25
    max_idle_time: str = "15m"

    def __post_init__(self) -> None:
        if self.max_open_conns < 0 or self.max_idle_conns < 0:
            raise InvalidPoolLimits(
                f"pool limits must be non-negative (max open {self.max_open_conns}, "
                f"max idle {self.max_idle_conns})"
            )


# PUBLIC_INTERFACE
def parse_duration(text: str) -> timedelta:
    """
    Parse duration text made of decimal numbers with unit suffixes.

    Examples: '15m', '1h30m', '2.5s', '300ms', '-1m'. Valid units are ns, us
    (or µs), ms, s, m and h. A bare '0' is accepted. Anything else raises
    InvalidIdleDuration.
    """
    s = text.strip() if isinstance(text, str) else ""
    if s in {"0", "+0", "-0"}:
        return timedelta(0)
    if not _DURATION_RE.fullmatch(s):
        raise InvalidIdleDuration(f"invalid duration {text!r}")

    sign = -1 if s.startswith("-") else 1
    seconds = sum(float(num) * _UNIT_SECONDS[unit] for num, unit in _DURATION_PART.findall(s))
    return timedelta(seconds=sign * seconds)


# PUBLIC_INTERFACE
def pool_sizing(config: PoolConfiguration, max_idle: timedelta) -> Dict[str, Any]:
    """
    Translate pool limits into ConnectionPool keyword arguments.

    psycopg_pool has no cap on idle connections, only a floor (min_size)
    below which it never closes them. With a positive idle lifetime the floor
    is 0, so every idle connection expires after max_idle. A zero or negative
    lifetime means idle connections never expire: the floor becomes the idle
    limit and connections above it fall back to psycopg_pool's own idle
    timeout.
    """
    # 0 max open connections means "no explicit limit": size the pool by the idle limit.
    max_size = config.max_open_conns or max(config.max_idle_conns, 1)
    if max_idle > timedelta(0):
        return {"min_size": 0, "max_size": max_size, "max_idle": max_idle.total_seconds()}
    return {"min_size": min(config.max_idle_conns, max_size), "max_size": max_size}


# PUBLIC_INTERFACE
def open_db(config: PoolConfiguration) -> ConnectionPool:
    """
    Build a connection pool from config and check that the database answers.

    Steps, each fatal on failure and never retried:
    1. validate the connection string (ConnectionStringInvalid)
    2. parse the idle time and size the pool (InvalidIdleDuration, only for
       text that does not parse; see pool_sizing for limits); nothing
       touches the network before this step succeeds
    3. run a liveness query bounded by PING_TIMEOUT (DatabaseUnreachable)

    The returned pool is open; the caller is responsible for closing it.
    """
    if not config.dsn:
        raise ConnectionStringInvalid("database connection string is empty")
    try:
        conninfo_to_dict(config.dsn)
    except psycopg.Error as e:
        raise ConnectionStringInvalid(f"invalid database connection string: {e}") from e

    max_idle = parse_duration(config.max_idle_time)
    sizing = pool_sizing(config, max_idle)
    pool = ConnectionPool(config.dsn, open=False, name="greenlight", **sizing)
    logger.debug("connection pool configured: %s", sizing)

    try:
        pool.open(wait=False)
        with pool.connection(timeout=PING_TIMEOUT) as conn:
            conn.execute("SELECT 1")
    except (PoolTimeout, psycopg.Error) as e:
        pool.close()
        raise DatabaseUnreachable(f"database did not answer within {PING_TIMEOUT:g}s: {e}") from e

    return pool


_COLUMNS = "id, created_at, title, year, runtime, genres, version"


class PostgresRepository(Repository):
    """
    PostgreSQL repository implementing the Repository interface on top of
    the pool returned by open_db.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[psycopg.Connection, None, None]:
        # Commits on normal exit, rolls back on error.
        with self._pool.connection() as conn:
            yield conn

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS movies (
                    id bigserial PRIMARY KEY,
                    created_at timestamp(0) with time zone NOT NULL DEFAULT NOW(),
                    title text NOT NULL,
                    year integer NOT NULL,
                    runtime integer NOT NULL,
                    genres text[] NOT NULL,
                    version integer NOT NULL DEFAULT 1
                )
                """
            )

    def _row_to_entity(self, row: Dict[str, Any]) -> MovieEntity:
        return {
            "id": int(row["id"]),
            "created_at": row["created_at"],
            "title": str(row["title"]),
            "year": int(row["year"]),
            "runtime": int(row["runtime"]),
            "genres": list(row["genres"] or []),
            "version": int(row["version"]),
        }

    def create(self, data: MovieCreate) -> MovieEntity:
        with self._conn() as conn:
            row = conn.cursor(row_factory=dict_row).execute(
                f"""
                INSERT INTO movies (title, year, runtime, genres)
                VALUES (%s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (data.title, data.year, int(data.runtime), list(data.genres)),
            ).fetchone()
            assert row is not None
            return self._row_to_entity(row)

    def get(self, movie_id: int) -> Optional[MovieEntity]:
        with self._conn() as conn:
            row = conn.cursor(row_factory=dict_row).execute(
                f"SELECT {_COLUMNS} FROM movies WHERE id = %s", (movie_id,)
            ).fetchone()
            return self._row_to_entity(row) if row else None

    def update(
        self, movie_id: int, data: MovieUpdate, expected_version: Optional[int] = None
    ) -> Optional[MovieEntity]:
        with self._conn() as conn:
            cur = conn.cursor(row_factory=dict_row)
            row = cur.execute(f"SELECT {_COLUMNS} FROM movies WHERE id = %s", (movie_id,)).fetchone()
            if not row:
                return None
            current = self._row_to_entity(row)
            if expected_version is not None and expected_version != current["version"]:
                raise EditConflict()

            merged = self._merge(current, data)
            row2 = cur.execute(
                f"""
                UPDATE movies
                SET title = %s, year = %s, runtime = %s, genres = %s, version = version + 1
                WHERE id = %s AND version = %s
                RETURNING {_COLUMNS}
                """,
                (
                    merged["title"],
                    merged["year"],
                    merged["runtime"],
                    merged["genres"],
                    movie_id,
                    current["version"],
                ),
            ).fetchone()
            if row2 is None:
                # Another request bumped the version between our read and write.
                raise EditConflict()
            return self._row_to_entity(row2)

    def delete(self, movie_id: int) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM movies WHERE id = %s", (movie_id,))
            return cur.rowcount > 0
