"""Newline-delimited JSON framing for streamed responses."""

import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any


def encode_record(record: dict[str, Any]) -> bytes:
    return (json.dumps(record, ensure_ascii=False) + "\n").encode("utf-8")


async def ndjson_stream(records: AsyncIterator[dict[str, Any]]) -> AsyncIterator[bytes]:
    """One record per line, flushed as produced."""
    async with aclosing(records) as source:
        async for record in source:
            yield encode_record(record)
