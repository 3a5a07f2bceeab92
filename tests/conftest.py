"""Pytest fixtures for the inscriptions RPC tests."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

import main
from core import config, db


class FakePool:
    """
    Stands in for an asyncpg pool: applies `ORDER BY updated_on DESC LIMIT $1
    OFFSET $2` to an in-memory table and records every query it sees.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows = list(rows or [])
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        self.calls.append((sql, args))
        limit, offset = args
        ordered = sorted(self.rows, key=lambda r: r["updated_on"], reverse=True)
        return ordered[offset : offset + limit]

    async def fetchrow(self, sql: str, *args: Any) -> dict[str, Any] | None:
        self.calls.append((sql, args))
        return {"ok": 1}

    async def close(self) -> None:
        self.closed = True


def make_rows(count: int, *, start: datetime | None = None) -> list[dict[str, Any]]:
    """`count` rows with strictly decreasing `updated_on` (row 0 is newest)."""
    start = start or datetime(2024, 5, 1, 12, 0, 0)
    return [
        {
            "slot": 250_000_000 - i,
            "signature": f"sig{i}",
            "account": f"acct{i}",
            "metadata_account": f"meta{i}",
            "authority": f"auth{i}",
            "data": f"payload-{i}" if i % 3 else None,
            "write_version": i if i % 2 else None,
            "updated_on": start - timedelta(seconds=i),
        }
        for i in range(count)
    ]


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool(make_rows(45))


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> config.Settings:
    for name in ("POSTGRES_DB", "POSTGRES_USER", "POSTGRES_PASSWORD", "INSCRIPTIONS_CONFIG_FILE", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    return config.Settings(_env_file=None)


@pytest.fixture
def client(settings: config.Settings, fake_pool: FakePool) -> TestClient:
    # No `with`: the lifespan (real pool) is skipped, the fake is injected.
    app = main.create_app(settings)
    app.dependency_overrides[db.get_pool] = lambda: fake_pool
    return TestClient(app)
