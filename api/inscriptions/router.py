"""
Inscription API endpoints.
"""

from __future__ import annotations

import asyncpg
from fastapi import APIRouter, Depends, Query

from core import db

from . import schemas, service

router = APIRouter(prefix="/inscriptions")


@router.get("/", response_model=list[schemas.Inscription])
async def list_inscriptions(
    page_index: int = Query(default=service.DEFAULT_PAGE_INDEX, alias="pageIndex", ge=0),
    page_size: int = Query(default=service.DEFAULT_PAGE_SIZE, alias="pageSize", ge=1),
    pool: asyncpg.Pool = Depends(db.get_pool),
) -> list[dict]:
    return await service.get_inscriptions_by_page(pool, page_index, page_size)
