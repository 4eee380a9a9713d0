"""Agent invoker: runs an agent profile inside a prepared workspace."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from core.agent.profiles import AgentProfile, AgentProfileRegistry
from core.agent.runner import Command, ProcessHandle, ProcessResult, ProcessRunner, ProgressLine
from core.errors import AgentCancelledError, AgentExitError, AgentTimeoutError, ValidationError
from core.json_extract import extract_json
from core.workspace.manager import WorkspaceHandle

logger = logging.getLogger(__name__)

# Keep failure records small; full stderr is in the server log.
_STDERR_TAIL_CHARS = 4000


class InvocationStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ExitResult:
    """Terminal event of an agent run."""

    exit_code: int
    stderr: str = ""
    timed_out: bool = False
    cancelled: bool = False
    agent_result: Any = None

    @property
    def status(self) -> InvocationStatus:
        if self.exit_code == 0 and not self.timed_out and not self.cancelled:
            return InvocationStatus.SUCCEEDED
        return InvocationStatus.FAILED

    @classmethod
    def from_process(cls, result: ProcessResult) -> ExitResult:
        return cls(
            exit_code=result.exit_code,
            stderr=result.stderr_text,
            timed_out=result.timed_out,
            cancelled=result.cancelled,
        )

    def to_error(self, agent_kind: str) -> AgentExitError:
        stderr_tail = self.stderr[-_STDERR_TAIL_CHARS:] or None
        if self.timed_out:
            return AgentTimeoutError(f"{agent_kind} timed out", exitCode=self.exit_code, stderr=stderr_tail)
        if self.cancelled:
            return AgentCancelledError(f"{agent_kind} was cancelled", exitCode=self.exit_code, stderr=stderr_tail)
        return AgentExitError(
            f"{agent_kind} process exited with an error",
            exitCode=self.exit_code,
            stderr=stderr_tail,
        )


@dataclass
class AgentInvocation:
    """Bookkeeping for one run: what was asked, where, and how it ended."""

    invocation_id: str
    instruction: str
    agent_kind: str
    workspace: WorkspaceHandle
    status: InvocationStatus = InvocationStatus.PENDING
    process: ProcessHandle | None = None
    exit_result: ExitResult | None = None
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def cancel(self) -> bool:
        if self.process is None or not self.process.running:
            return False
        self.process.cancel()
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "invocationId": self.invocation_id,
            "agentKind": self.agent_kind,
            "status": self.status.value,
            "pid": self.process.pid if self.process else None,
            "workspace": str(self.workspace.root),
            "startedAt": self.started_at,
        }


class RunningAgent:
    """A launched agent process, not yet followed."""

    def __init__(self, invoker: AgentInvoker, profile: AgentProfile, workspace: WorkspaceHandle, handle: ProcessHandle):
        self.invoker = invoker
        self.profile = profile
        self.workspace = workspace
        self.handle = handle

    async def events(self, timeout: float | None = None) -> AsyncIterator[ProgressLine | ExitResult]:
        """Yield progress lines in arrival order, then exactly one ``ExitResult``."""
        kind = self.profile.kind
        async with aclosing(self.invoker.runner.follow(self.handle, timeout=timeout)) as events:
            async for event in events:
                if isinstance(event, ProgressLine):
                    yield event
                    continue
                exit_result = ExitResult.from_process(event)
                logger.info("%s exited with code %s for %s", kind, event.exit_code, self.workspace.invocation_id)
                if exit_result.status is InvocationStatus.FAILED and event.stderr_text:
                    logger.warning("[%s stderr] %s", kind, event.stderr_text[-_STDERR_TAIL_CHARS:])
                if exit_result.status is InvocationStatus.SUCCEEDED and self.profile.parse_result_json:
                    parsed = extract_json(event.stdout_text)
                    if parsed.ok:
                        exit_result.agent_result = parsed.value
                    else:
                        logger.warning("Could not parse %s output as JSON: %s", kind, parsed.error)
                yield exit_result


class AgentInvoker:
    """Polymorphic over ``AgentProfile``; never special-cases an agent kind."""

    def __init__(
        self,
        profiles: AgentProfileRegistry,
        runner: ProcessRunner | None = None,
        env: Mapping[str, str] | None = None,
    ):
        self.profiles = profiles
        self.runner = runner or ProcessRunner()
        self.env = dict(env or {})

    def build_command(self, profile: AgentProfile, workspace: WorkspaceHandle, instruction: str) -> Command:
        return Command(
            executable=profile.executable,
            args=tuple(profile.build_args(instruction)),
            cwd=str(workspace.root),
            env={**self.env, **profile.env},
        )

    async def launch(self, workspace: WorkspaceHandle, instruction: str, agent_kind: str | None = None) -> RunningAgent:
        """Spawn the agent bound to ``workspace``. Raises ``ValidationError`` or ``SpawnError``."""
        if not instruction or not instruction.strip():
            raise ValidationError("instruction is required")
        profile = self.profiles.resolve(agent_kind)
        command = self.build_command(profile, workspace, instruction)
        logger.info("Invoking %s for %s", profile.kind, workspace.invocation_id)
        handle = await self.runner.start(command)
        return RunningAgent(self, profile, workspace, handle)

    async def run(
        self,
        workspace: WorkspaceHandle,
        instruction: str,
        agent_kind: str | None = None,
        timeout: float | None = None,
    ) -> AsyncIterator[ProgressLine | ExitResult]:
        running = await self.launch(workspace, instruction, agent_kind)
        async with aclosing(running.events(timeout=timeout)) as events:
            async for event in events:
                yield event
