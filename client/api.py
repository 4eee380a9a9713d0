"""Async HTTP client for the Patchbay backend."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from typing import Any

import httpx

from client.ndjson import NdjsonDecoder
from core.changes import ModifiedFile
from core.errors import PatchbayError
from core.workspace import FileRecord

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://127.0.0.1:8998"


class ApiError(PatchbayError):
    """Non-2xx response from the backend."""

    error_type = "ApiError"

    @classmethod
    def from_response(cls, response: httpx.Response) -> ApiError:
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = response.text
        if isinstance(detail, dict):
            return cls(detail.get("message", str(detail)), status=response.status_code, type=detail.get("type"))
        return cls(str(detail or response.reason_phrase), status=response.status_code)


class PatchbayClient:
    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        # Agent runs take minutes; only connecting is bounded by default.
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> PatchbayClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def run_agent(
        self,
        instruction: str,
        files: Iterable[FileRecord],
        agent_kind: str | None = None,
        trim: bool = False,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield stream records as they arrive."""
        payload: dict[str, Any] = {
            "instruction": instruction,
            "files": [{"path": f.path, "content": f.content} for f in files],
            "trim": trim,
        }
        if agent_kind:
            payload["agentKind"] = agent_kind

        async with self._client.stream("POST", "/api/run-agent", json=payload) as response:
            if response.status_code != 200:
                await response.aread()
                raise ApiError.from_response(response)
            decoder = NdjsonDecoder()
            async for chunk in response.aiter_bytes():
                for record in decoder.feed(chunk):
                    yield record
            for record in decoder.close():
                yield record

    async def commit_changes(self, changes: Iterable[ModifiedFile]) -> dict[str, Any]:
        response = await self._client.post(
            "/api/commit-changes",
            json={"changes": [c.to_dict() for c in changes]},
        )
        if response.status_code != 200:
            raise ApiError.from_response(response)
        return response.json()

    async def run_raw_command(self, command: str) -> AsyncIterator[str]:
        async with self._client.stream("POST", "/api/run-raw-command", json={"command": command}) as response:
            if response.status_code != 200:
                await response.aread()
                raise ApiError.from_response(response)
            async for text in response.aiter_text():
                yield text

    async def list_agents(self) -> dict[str, Any]:
        response = await self._client.get("/api/agents")
        response.raise_for_status()
        return response.json()

    async def list_invocations(self) -> list[dict[str, Any]]:
        response = await self._client.get("/api/invocations")
        response.raise_for_status()
        return response.json()["invocations"]

    async def cancel_invocation(self, invocation_id: str) -> bool:
        response = await self._client.post(f"/api/invocations/{invocation_id}/cancel")
        if response.status_code != 200:
            raise ApiError.from_response(response)
        return response.json()["cancelled"]
