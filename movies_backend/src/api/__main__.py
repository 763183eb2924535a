"""
Command-line entry point for the movies API.

Usage:
    python -m src.api
    python -m src.api --port 4000 --env production --db-dsn postgres://...

Settings come from the environment (and config.env when present); flags
override them. When a database DSN is configured the connection pool is
opened and checked before the HTTP listener starts; any failure there is
logged and the process exits with status 1.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import psycopg
import uvicorn
from dotenv import load_dotenv

from .db import open_db
from .errors import StartupError
from .logging_config import configure_logging
from .main import create_app
from .settings import ENVIRONMENTS, Settings, get_settings

logger = logging.getLogger("src.api")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m src.api", description="Movies JSON API server")
    parser.add_argument("--port", type=int, default=None, help="API server port")
    parser.add_argument("--env", choices=ENVIRONMENTS, default=None, help="Environment")
    parser.add_argument("--db-dsn", dest="db_dsn", default=None, help="PostgreSQL DSN")
    parser.add_argument(
        "--db-max-open-conns", dest="db_max_open_conns", type=int, default=None,
        help="PostgreSQL max open connections",
    )
    parser.add_argument(
        "--db-max-idle-conns", dest="db_max_idle_conns", type=int, default=None,
        help="PostgreSQL max idle connections",
    )
    parser.add_argument(
        "--db-max-idle-time", dest="db_max_idle_time", default=None,
        help="PostgreSQL max connection idle time (e.g. 15m)",
    )
    parser.add_argument(
        "--log-level", dest="log_level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None,
        help="Logging level",
    )
    return parser


# PUBLIC_INTERFACE
def load_settings(argv: Optional[List[str]] = None, env_file: str = "config.env") -> Settings:
    """Read config.env (if present), the environment, then command-line flags."""
    load_dotenv(env_file)
    args = _build_parser().parse_args(argv)
    return get_settings(vars(args))


# PUBLIC_INTERFACE
def main(argv: Optional[List[str]] = None) -> int:
    """Run the server. Returns the process exit status."""
    try:
        settings = load_settings(argv)
    except ValueError as e:
        configure_logging()
        logger.error("invalid configuration: %s", e)
        return 1
    configure_logging(settings.log_level)

    pool = None
    try:
        if settings.db_dsn:
            pool = open_db(settings.pool_config())
            logger.info("database connection pool established")
        else:
            logger.info("no database DSN configured, using in-memory store")
        app = create_app(settings, pool=pool)
    except (StartupError, psycopg.Error) as e:
        logger.error("startup failed: %s", e)
        if pool is not None:
            pool.close()
        return 1

    try:
        logger.info("starting %s server on :%d", settings.env, settings.port)
        uvicorn.run(
            app,
            host="0.0.0.0",
            port=settings.port,
            timeout_keep_alive=60,
            log_config=None,
        )
    finally:
        if pool is not None:
            pool.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
