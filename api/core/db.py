"""
Async database access helpers (raw SQL) using asyncpg.

The pool is created once in the FastAPI lifespan (see `api/main.py`), kept on
`app.state.pool`, and handed to routes through the `get_pool` dependency.
Repository functions take it as their first argument.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import asyncpg
from fastapi import Request

from . import codecs
from .config import ConnectionParams

logger = logging.getLogger(__name__)


class StorageUnavailableError(RuntimeError):
    pass


async def create_pool(
    params: ConnectionParams,
    *,
    min_size: int = 1,
    max_size: int = 5,
    command_timeout: float = 30.0,
) -> asyncpg.Pool:
    """
    Open the pool. Connections are made eagerly, so an unreachable server
    fails here rather than on the first request.
    """
    try:
        pool = await asyncpg.create_pool(
            min_size=min_size,
            max_size=max(min_size, max_size),
            command_timeout=command_timeout,
            init=codecs.register_bytea_codec,
            **params.connect_kwargs(),
        )
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
        raise StorageUnavailableError(
            f"Error in connecting to the PostgreSQL database ({params.describe()}): {exc}"
        ) from exc

    logger.info("db_pool_ready %s min_size=%s max_size=%s", params.describe(), min_size, max_size)
    return pool


async def close_pool(pool: asyncpg.Pool | None) -> None:
    if pool is None:
        return None
    await pool.close()
    logger.info("db_pool_closed")


def get_pool(request: Request) -> asyncpg.Pool:
    pool = getattr(request.app.state, "pool", None)
    if pool is None:
        raise RuntimeError("DB pool is not initialized. It is created in the app lifespan.")
    return pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(pool: asyncpg.Pool, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await pool.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(pool: asyncpg.Pool, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await pool.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]
