"""Extract a JSON value from agent or model output.

Accepted grammar::

    text   := ws [fence-open] ws body ws [fence-close] ws
    fence-open  := "```" [lang] newline
    fence-close := "```"

``lang`` is any run of word characters (``json``, ``JSON``, ``jsonc``...). The
body must be a single JSON value.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from core.errors import JsonExtractError

_FENCE_OPEN = re.compile(r"^```(?:[\w+-]*[ \t]*\r?\n|[\w+-]+[ \t]+)?")
_FENCE_CLOSE = re.compile(r"\r?\n?```$")


@dataclass(frozen=True)
class ExtractResult:
    value: Any = None
    error: JsonExtractError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def strip_fences(text: str) -> str:
    body = text.strip()
    opened = _FENCE_OPEN.match(body)
    if opened:
        body = body[opened.end():]
    body = _FENCE_CLOSE.sub("", body.rstrip())
    return body.strip()


def extract_json(text: str) -> ExtractResult:
    if not isinstance(text, str):
        return ExtractResult(error=JsonExtractError("Input is not text"))
    body = strip_fences(text)
    if not body:
        return ExtractResult(error=JsonExtractError("No JSON body found"))
    try:
        return ExtractResult(value=json.loads(body))
    except json.JSONDecodeError as e:
        return ExtractResult(error=JsonExtractError(f"Invalid JSON: {e.msg}", line=e.lineno, column=e.colno))
