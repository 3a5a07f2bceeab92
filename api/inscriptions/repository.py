"""
Inscription persistence (raw SQL, read-only).

Rows are written by the indexer; nothing here mutates the table.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core import db


async def list_page(pool: asyncpg.Pool, *, limit: int, offset: int) -> list[dict[str, Any]]:
    """
    Newest first. Rows sharing an `updated_on` come back in whatever order
    Postgres picks.
    """
    return await db.fetch_all(
        pool,
        """
        SELECT slot, signature, account, metadata_account, authority,
               data, write_version, updated_on
        FROM inscriptions
        ORDER BY updated_on DESC
        LIMIT $1
        OFFSET $2
        """,
        limit,
        offset,
    )
