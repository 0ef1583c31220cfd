"""
Async database access helpers (raw SQL) using asyncpg.

The pool is created once per process by the FastAPI lifespan (see
`api/main.py`) and handed to the store that owns it; nothing here keeps
module-level connection state.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Driver failures are re-raised as `errors.StorageError` so callers never have
to know about asyncpg exception types.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import config, errors

logger = logging.getLogger(__name__)

# Anything that can run a query: the pool itself or a connection acquired
# from it (inside a transaction).
Executor = Union[asyncpg.Pool, asyncpg.Connection]

DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = config.database_url()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def create_pool() -> asyncpg.Pool:
    try:
        pool = await asyncpg.create_pool(
            dsn=database_url(),
            min_size=config.db_pool_min_size(),
            max_size=config.db_pool_max_size(),
            command_timeout=config.db_command_timeout_s(),
        )
    except DRIVER_ERRORS as exc:
        raise errors.StorageError(f"Could not connect to database: {exc}") from exc
    logger.info(
        "db_pool_created min_size=%s max_size=%s",
        config.db_pool_min_size(),
        config.db_pool_max_size(),
    )
    return pool


async def close_pool(pool: asyncpg.Pool | None) -> None:
    if pool is None:
        return None
    await pool.close()
    logger.info("db_pool_closed")


async def check_connection(pool: asyncpg.Pool) -> None:
    """
    Fail fast on startup when the database is unreachable.
    """
    row = await fetch_one(pool, "SELECT 1 AS ok")
    if row is None or row.get("ok") != 1:
        raise errors.StorageError("Database connectivity check failed.")


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(executor: Executor, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    try:
        row = await executor.fetchrow(sql, *args)
    except DRIVER_ERRORS as exc:
        raise errors.StorageError(str(exc) or exc.__class__.__name__) from exc
    return _record_to_dict(row) if row is not None else None


async def fetch_all(executor: Executor, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    try:
        rows = await executor.fetch(sql, *args)
    except DRIVER_ERRORS as exc:
        raise errors.StorageError(str(exc) or exc.__class__.__name__) from exc
    return [_record_to_dict(r) for r in rows]

