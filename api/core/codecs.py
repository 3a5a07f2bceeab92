"""
Column codecs for the `inscriptions` table.

`data` is a bytea column holding UTF-8 text written by the indexer. On the
way in, a leading "0x" is dropped and the remaining characters are stored
as-is (no hex decoding); on the way out the bytes are read back as text.
So "0xabcd" round-trips to "abcd", not to the two bytes 0xAB 0xCD.
"""

from __future__ import annotations

from typing import Any

import asyncpg

HEX_PREFIX = "0x"


def encode_bytea(value: str) -> bytes:
    if value.startswith(HEX_PREFIX):
        value = value[len(HEX_PREFIX):]
    return value.encode("utf-8")


def decode_bytea(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return ""


async def register_bytea_codec(conn: asyncpg.Connection) -> None:
    """
    Pool `init` hook.

    asyncpg only calls a decoder for non-NULL values, so a NULL `data`
    column comes back as None. The "" fallback in `decode_bytea` covers
    non-binary input, not NULL.
    """
    await conn.set_type_codec(
        "bytea",
        schema="pg_catalog",
        encoder=encode_bytea,
        decoder=decode_bytea,
        format="binary",
    )
