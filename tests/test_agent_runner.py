"""Tests for the process runner and agent invoker using a scripted fake agent."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from core.agent import (
    AgentInvoker,
    AgentProfile,
    AgentProfileRegistry,
    Command,
    ExitResult,
    InvocationStatus,
    ProcessResult,
    ProcessRunner,
    ProgressLine,
)
from core.errors import SpawnError, ValidationError
from core.workspace import FileRecord, WorkspaceManager

FAKE_AGENT = str(Path(__file__).parent / "fake_agent.py")


def _fake(instruction: str, cwd: Path | None = None, env: dict | None = None) -> Command:
    return Command(executable=sys.executable, args=(FAKE_AGENT, instruction), cwd=str(cwd) if cwd else None, env=env)


async def _collect(stream) -> tuple[list[str], object]:
    lines, last = [], None
    async for event in stream:
        if isinstance(event, ProgressLine):
            lines.append(event.text)
        else:
            last = event
    return lines, last


class TestProfiles:
    def test_builtin_profiles_substitute_instruction(self):
        registry = AgentProfileRegistry.with_builtins()
        assert registry.resolve("claude").build_args("do it") == ["--dangerously-skip-permissions", "-p", "do it"]
        assert registry.resolve("gemini").build_args("do it") == ["--yolo", "-p", "do it"]

    def test_instruction_appended_without_placeholder(self):
        profile = AgentProfile(kind="x", executable="x", args=("run",))
        assert profile.build_args("hi") == ["run", "hi"]

    def test_default_and_unknown_kind(self):
        registry = AgentProfileRegistry.with_builtins(default_kind="gemini")
        assert registry.resolve(None).kind == "gemini"
        with pytest.raises(ValidationError):
            registry.resolve("nope")


class TestProcessRunner:
    @pytest.mark.asyncio
    async def test_streams_lines_in_order_and_skips_blanks(self):
        lines, result = await _collect(ProcessRunner().stream(_fake("print:one;blank:;print:two;partial:tail")))

        assert lines == ["one", "two", "tail"]
        assert isinstance(result, ProcessResult)
        assert result.success
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_data(self):
        lines, result = await _collect(ProcessRunner().stream(_fake("print:working;stderr:boom;exit:3")))

        assert lines == ["working"]
        assert result.exit_code == 3
        assert not result.success
        assert "boom" in result.stderr_text

    @pytest.mark.asyncio
    async def test_env_is_merged_over_ambient(self, monkeypatch):
        monkeypatch.setenv("PATCHBAY_AMBIENT", "kept")
        _, result = await _collect(
            ProcessRunner().stream(_fake("env:PATCHBAY_AMBIENT;env:PATCHBAY_EXTRA", env={"PATCHBAY_EXTRA": "added"}))
        )
        assert result.stdout_lines == ["kept", "added"]

    @pytest.mark.asyncio
    async def test_runs_in_cwd(self, tmp_path: Path):
        result = await ProcessRunner().run(_fake("create:made.txt:x", cwd=tmp_path))
        assert result.success
        assert (tmp_path / "made.txt").read_text() == "x"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        loop = asyncio.get_running_loop()
        started = loop.time()
        _, result = await _collect(ProcessRunner(timeout=0.5).stream(_fake("print:start;sleep:30")))

        assert result.timed_out
        assert not result.success
        assert loop.time() - started < 10

    @pytest.mark.asyncio
    async def test_missing_executable_raises_spawn_error(self):
        with pytest.raises(SpawnError):
            await ProcessRunner().start(Command(executable="/nonexistent/patchbay-agent"))

    @pytest.mark.asyncio
    async def test_cancel_marks_result(self):
        runner = ProcessRunner()
        handle = await runner.start(_fake("print:ready;sleep:30"))
        events = []
        async for event in runner.follow(handle):
            events.append(event)
            if isinstance(event, ProgressLine):
                handle.cancel()

        result = events[-1]
        assert isinstance(result, ProcessResult)
        assert result.cancelled
        assert not handle.running

    @pytest.mark.asyncio
    async def test_shell_output_is_merged(self, tmp_path: Path):
        runner = ProcessRunner()
        process = await runner.start_shell("echo out; echo err 1>&2", cwd=str(tmp_path))
        chunks = [chunk async for chunk in runner.pipe_output(process, "echo")]
        output = b"".join(chunks).decode()
        assert "out" in output and "err" in output


class TestAgentInvoker:
    def _invoker(self, fake_profile: AgentProfile, timeout: float | None = None) -> AgentInvoker:
        registry = AgentProfileRegistry.with_builtins([fake_profile], default_kind="fake")
        return AgentInvoker(registry, runner=ProcessRunner(timeout=timeout))

    @pytest.mark.asyncio
    async def test_agent_mutates_its_workspace(self, tmp_path: Path, fake_profile):
        workspace = WorkspaceManager(tmp_path).prepare([FileRecord.create("a.txt", "hello")])
        lines, result = await _collect(self._invoker(fake_profile).run(workspace, "append:a.txt: world"))

        assert lines == ["appended a.txt"]
        assert isinstance(result, ExitResult)
        assert result.status is InvocationStatus.SUCCEEDED
        assert (workspace.root / "a.txt").read_text() == "hello world"

    @pytest.mark.asyncio
    async def test_failure_maps_to_agent_exit_error(self, tmp_path: Path, fake_profile):
        workspace = WorkspaceManager(tmp_path).prepare([FileRecord.create("a.txt", "hello")])
        _, result = await _collect(self._invoker(fake_profile).run(workspace, "stderr:bad things;exit:1"))

        assert result.status is InvocationStatus.FAILED
        record = result.to_error("fake").to_record()
        assert record["type"] == "AgentExitError"
        assert record["exitCode"] == 1
        assert "bad things" in record["stderr"]

    @pytest.mark.asyncio
    async def test_timeout_maps_to_timeout_error(self, tmp_path: Path, fake_profile):
        workspace = WorkspaceManager(tmp_path).prepare([FileRecord.create("a.txt", "hello")])
        _, result = await _collect(self._invoker(fake_profile, timeout=0.5).run(workspace, "sleep:30"))

        assert result.timed_out
        assert result.to_error("fake").to_record()["type"] == "Timeout"

    @pytest.mark.asyncio
    async def test_parse_result_json(self, tmp_path: Path, fake_profile):
        profile = AgentProfile(
            kind="fake", executable=fake_profile.executable, args=fake_profile.args, parse_result_json=True
        )
        workspace = WorkspaceManager(tmp_path).prepare([FileRecord.create("a.txt", "hello")])
        _, result = await _collect(self._invoker(profile).run(workspace, "json:42"))

        assert result.agent_result == {"answer": "42"}

    @pytest.mark.asyncio
    async def test_blank_instruction_rejected_before_spawn(self, tmp_path: Path, fake_profile):
        workspace = WorkspaceManager(tmp_path).prepare([FileRecord.create("a.txt", "hello")])
        with pytest.raises(ValidationError):
            await self._invoker(fake_profile).launch(workspace, "   ")

    @pytest.mark.asyncio
    async def test_unknown_agent_kind_rejected(self, tmp_path: Path, fake_profile):
        workspace = WorkspaceManager(tmp_path).prepare([FileRecord.create("a.txt", "hello")])
        with pytest.raises(ValidationError):
            await self._invoker(fake_profile).launch(workspace, "print:x", agent_kind="missing")
