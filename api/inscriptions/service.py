"""
Inscription paging.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg
from fastapi import HTTPException

from . import repository

DEFAULT_PAGE_INDEX = 0
DEFAULT_PAGE_SIZE = 20

logger = logging.getLogger(__name__)


async def get_inscriptions_by_page(
    pool: asyncpg.Pool,
    page_index: int = DEFAULT_PAGE_INDEX,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> list[dict[str, Any]]:
    """
    Return page `page_index` (zero-based) of `page_size` rows, newest first.

    There is no upper bound on `page_size`. Store errors propagate as-is.
    """
    if page_index < 0:
        raise HTTPException(status_code=400, detail="pageIndex must be >= 0.")
    if page_size < 1:
        raise HTTPException(status_code=400, detail="pageSize must be >= 1.")

    rows = await repository.list_page(pool, limit=page_size, offset=page_index * page_size)
    logger.debug("inscriptions_page page_index=%s page_size=%s rows=%s", page_index, page_size, len(rows))
    return rows
