"""Incremental decoder for newline-delimited JSON streams."""

from __future__ import annotations

import json
from typing import Any

from core.errors import JsonExtractError


class NdjsonDecoder:
    """Turns arbitrary byte chunks back into the records the server wrote.

    Works on bytes so a multi-byte UTF-8 character split across two chunks is
    reassembled before decoding. ``\\n`` never occurs inside a multi-byte
    sequence, so splitting on it is safe.
    """

    def __init__(self) -> None:
        self._buffer = b""

    def feed(self, chunk: bytes | str) -> list[Any]:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        return [self._decode(line) for line in lines if line.strip()]

    def close(self) -> list[Any]:
        """Flush a final line that had no trailing newline."""
        rest, self._buffer = self._buffer, b""
        return [self._decode(rest)] if rest.strip() else []

    @property
    def pending(self) -> bytes:
        return self._buffer

    @staticmethod
    def _decode(line: bytes) -> Any:
        try:
            return json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise JsonExtractError(f"Malformed NDJSON line: {e}", line=line[:200].decode("utf-8", "replace")) from e
