"""Tests for the HTTP client, the file collector and the CLI helpers."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from client.api import ApiError, PatchbayClient
from client.cli import build_parser, load_change_set, main, save_change_set, unified_diff
from client.files import collect_files
from core.changes import ModifiedFile
from core.errors import ValidationError
from core.workspace import FileRecord


def _ndjson(*records: dict) -> bytes:
    return b"".join((json.dumps(r) + "\n").encode() for r in records)


class TestPatchbayClient:
    @pytest.mark.asyncio
    async def test_run_agent_streams_records(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=_ndjson({"stdout": "hi"}, {"modifiedFiles": [], "deletedFiles": []}))

        async with PatchbayClient(transport=httpx.MockTransport(handler)) as client:
            records = [r async for r in client.run_agent("go", [FileRecord.create("a.txt", "x")], agent_kind="gemini")]

        assert records == [{"stdout": "hi"}, {"modifiedFiles": [], "deletedFiles": []}]
        assert seen["body"]["agentKind"] == "gemini"
        assert seen["body"]["files"] == [{"path": "a.txt", "content": "x"}]

    @pytest.mark.asyncio
    async def test_error_response_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"detail": {"type": "ValidationError", "message": "At least one file is required"}})

        async with PatchbayClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ApiError) as excinfo:
                async for _ in client.run_agent("go", []):
                    pass

        assert excinfo.value.message == "At least one file is required"
        assert excinfo.value.details["status"] == 400

    @pytest.mark.asyncio
    async def test_commit_changes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/commit-changes"
            assert json.loads(request.content) == {"changes": [{"path": "a.txt", "modifiedContent": "x"}]}
            return httpx.Response(200, json={"results": [], "written": 1})

        async with PatchbayClient(transport=httpx.MockTransport(handler)) as client:
            assert (await client.commit_changes([ModifiedFile("a.txt", "x")]))["written"] == 1


class TestCollectFiles:
    def test_skips_ignored_dirs_extensions_and_binaries(self, tmp_path: Path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "main.py").write_text("print(1)\n")
        (tmp_path / "README.md").write_text("# hi")
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "dep.js").write_text("x")
        (tmp_path / "logo.png").write_bytes(b"\x89PNG")
        (tmp_path / "blob.bin").write_bytes(b"\xff\xfe\x00")

        records = collect_files(tmp_path)

        assert [r.path for r in records] == ["README.md", "src/main.py"]
        assert records[1].content == "print(1)\n"

    def test_not_a_directory(self, tmp_path: Path):
        with pytest.raises(NotADirectoryError):
            collect_files(tmp_path / "missing")


class TestCliHelpers:
    def test_unified_diff(self):
        patch = unified_diff("a.txt", "hello\n", "hello world\n")
        assert "--- a/a.txt" in patch
        assert "+hello world" in patch
        assert unified_diff("new.txt", None, "x\n").startswith("--- /dev/null")

    def test_change_set_round_trip(self, tmp_path: Path):
        path = tmp_path / "changes.json"
        changes = [ModifiedFile("a.txt", "x"), ModifiedFile("b/c.txt", "ü")]
        save_change_set(path, changes)
        assert load_change_set(path) == changes

    def test_load_terminal_record(self, tmp_path: Path):
        path = tmp_path / "terminal.json"
        path.write_text(json.dumps({"modifiedFiles": [{"path": "a.txt", "modifiedContent": "x"}], "deletedFiles": []}))
        assert load_change_set(path) == [ModifiedFile("a.txt", "x")]

    def test_commit_local(self, tmp_path: Path):
        change_set = tmp_path / "changes.json"
        store = tmp_path / "store"
        save_change_set(change_set, [ModifiedFile("new/x.txt", "x")])

        assert main(["commit", str(change_set), "--local", str(store)]) == 0
        assert (store / "new/x.txt").read_text() == "x"

    @pytest.mark.parametrize(
        "content",
        ["{not json", json.dumps({"modifiedFiles": "a.txt"}), json.dumps([{"path": "a.txt"}])],
    )
    def test_malformed_change_set_is_reported(self, tmp_path: Path, capsys, content):
        change_set = tmp_path / "changes.json"
        change_set.write_text(content)

        with pytest.raises(ValidationError):
            load_change_set(change_set)
        assert main(["commit", str(change_set), "--local", str(tmp_path / "store")]) == 1
        assert "✗" in capsys.readouterr().err

    def test_parser(self):
        args = build_parser().parse_args(["run", "proj", "-i", "fix it", "--agent", "gemini", "-y"])
        assert args.folder == "proj"
        assert args.instruction == "fix it"
        assert args.agent == "gemini"
        assert args.yes
