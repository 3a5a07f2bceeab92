from __future__ import annotations

import pytest
from fastapi import HTTPException

from inscriptions import repository, service

from .conftest import FakePool, make_rows


@pytest.mark.asyncio
async def test_defaults_are_first_page_of_twenty(fake_pool):
    rows = await service.get_inscriptions_by_page(fake_pool)

    assert len(rows) == 20
    assert fake_pool.calls[-1][1] == (20, 0)
    assert rows == await service.get_inscriptions_by_page(fake_pool, 0, 20)


@pytest.mark.asyncio
async def test_offset_is_page_index_times_page_size(fake_pool):
    await service.get_inscriptions_by_page(fake_pool, 3, 7)
    assert fake_pool.calls[-1][1] == (7, 21)


@pytest.mark.asyncio
async def test_last_partial_page_returns_oldest_rows(fake_pool):
    rows = await service.get_inscriptions_by_page(fake_pool, 2, 20)

    assert [r["signature"] for r in rows] == [f"sig{i}" for i in range(40, 45)]


@pytest.mark.asyncio
@pytest.mark.parametrize("page_index, page_size", [(0, 1), (0, 20), (1, 20), (2, 20), (3, 20), (4, 10), (0, 100), (44, 1), (45, 1)])
async def test_page_length_is_bounded_by_remaining_rows(fake_pool, page_index, page_size):
    rows = await service.get_inscriptions_by_page(fake_pool, page_index, page_size)

    remaining = max(0, len(fake_pool.rows) - page_index * page_size)
    assert len(rows) == min(page_size, remaining)


@pytest.mark.asyncio
@pytest.mark.parametrize("page_size", [1, 7, 20])
async def test_ordering_is_descending_across_pages(fake_pool, page_size):
    seen = []
    page_index = 0
    while True:
        page = await service.get_inscriptions_by_page(fake_pool, page_index, page_size)
        if not page:
            break
        seen.extend(r["updated_on"] for r in page)
        page_index += 1

    assert len(seen) == len(fake_pool.rows)
    assert seen == sorted(seen, reverse=True)


@pytest.mark.asyncio
async def test_empty_table_returns_empty_list():
    pool = FakePool([])
    assert await service.get_inscriptions_by_page(pool) == []
    assert await service.get_inscriptions_by_page(pool, 5, 50) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("page_index, page_size", [(-1, 20), (0, 0), (0, -5)])
async def test_rejects_out_of_range_paging(fake_pool, page_index, page_size):
    with pytest.raises(HTTPException) as exc_info:
        await service.get_inscriptions_by_page(fake_pool, page_index, page_size)

    assert exc_info.value.status_code == 400
    assert fake_pool.calls == []


@pytest.mark.asyncio
async def test_store_errors_propagate_unchanged():
    class BrokenPool(FakePool):
        async def fetch(self, sql, *args):
            raise ConnectionResetError("connection lost")

    with pytest.raises(ConnectionResetError, match="connection lost"):
        await service.get_inscriptions_by_page(BrokenPool())


@pytest.mark.asyncio
async def test_repository_query_shape():
    pool = FakePool(make_rows(3))
    await repository.list_page(pool, limit=2, offset=1)

    sql, args = pool.calls[0]
    normalized = " ".join(sql.split())
    assert "FROM inscriptions" in normalized
    assert "ORDER BY updated_on DESC" in normalized
    assert "LIMIT $1 OFFSET $2" in normalized
    for column in ("slot", "signature", "account", "metadata_account", "authority", "data", "write_version", "updated_on"):
        assert column in normalized
    assert args == (2, 1)
