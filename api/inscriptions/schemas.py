"""
Pydantic schemas for inscription endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class Inscription(BaseModel):
    slot: int
    signature: str
    account: str
    metadata_account: str
    authority: str
    # bytea column, already decoded to text by the pool codec
    data: str | None = None
    write_version: int | None = None
    updated_on: datetime
