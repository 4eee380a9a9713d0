"""Process runner for external agents.

A ``Command`` is an explicit value (executable, args, cwd, env). ``ProcessRunner``
launches it without a shell, streams stdout line by line and finishes with a
``ProcessResult``. A non-zero exit is data, not an exception; only a failure to
launch raises (``SpawnError``).
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import aclosing
from dataclasses import dataclass, field

from core.errors import SpawnError

logger = logging.getLogger(__name__)

# Agents print long JSON blobs on a single line.
DEFAULT_LINE_LIMIT = 8 * 1024 * 1024


@dataclass(frozen=True)
class Command:
    """An executable invocation. ``env`` is merged over the ambient environment."""

    executable: str
    args: tuple[str, ...] = ()
    cwd: str | None = None
    env: Mapping[str, str] | None = None

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    def merged_env(self) -> dict[str, str]:
        merged = os.environ.copy()
        if self.env:
            merged.update(self.env)
        return merged


@dataclass(frozen=True)
class ProgressLine:
    """One complete line the process wrote to stdout."""

    text: str


@dataclass
class ProcessResult:
    """Outcome of a finished process."""

    exit_code: int
    stdout_lines: list[str] = field(default_factory=list)
    stderr_text: str = ""
    timed_out: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.cancelled

    @property
    def stdout_text(self) -> str:
        return "\n".join(self.stdout_lines)


def _kill_group(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


class ProcessHandle:
    """Live process handle used to follow or cancel a run."""

    def __init__(self, process: asyncio.subprocess.Process, command: Command):
        self.process = process
        self.command = command
        self.cancelled = False

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def running(self) -> bool:
        return self.process.returncode is None

    def cancel(self) -> None:
        # @@@cancel-process-group - agents fork helpers; killing only the leader leaves orphans writing to the workspace.
        self.cancelled = True
        _kill_group(self.process)


class ProcessRunner:
    """Runs commands as child processes in their own process group."""

    def __init__(self, timeout: float | None = None, line_limit: int = DEFAULT_LINE_LIMIT):
        self.timeout = timeout
        self.line_limit = line_limit

    async def start(self, command: Command) -> ProcessHandle:
        """Launch ``command``. Raises ``SpawnError`` if it cannot be started."""
        try:
            process = await asyncio.create_subprocess_exec(
                command.executable,
                *command.args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=command.cwd,
                env=command.merged_env(),
                start_new_session=True,
                limit=self.line_limit,
            )
        except FileNotFoundError as e:
            raise SpawnError(f"Executable not found: {command.executable}", executable=command.executable) from e
        except PermissionError as e:
            raise SpawnError(f"Permission denied: {command.executable}", executable=command.executable) from e
        except OSError as e:
            raise SpawnError(f"Failed to start {command.executable}: {e}", executable=command.executable) from e
        logger.info("Started %s (pid %s) in %s", command.executable, process.pid, command.cwd)
        return ProcessHandle(process, command)

    @staticmethod
    async def _drain(stream: asyncio.StreamReader, sink: list[bytes]) -> None:
        while True:
            chunk = await stream.read(65536)
            if not chunk:
                return
            sink.append(chunk)

    @staticmethod
    def _remaining(loop: asyncio.AbstractEventLoop, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(0.0, deadline - loop.time())

    async def follow(
        self,
        handle: ProcessHandle,
        timeout: float | None = None,
    ) -> AsyncIterator[ProgressLine | ProcessResult]:
        """Yield a ``ProgressLine`` per non-blank stdout line, then one ``ProcessResult``."""
        timeout = self.timeout if timeout is None else timeout
        process = handle.process
        name = handle.command.executable

        stderr_chunks: list[bytes] = []
        stderr_task = asyncio.create_task(self._drain(process.stderr, stderr_chunks))
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        stdout_lines: list[str] = []
        timed_out = False
        finished = False
        try:
            while True:
                try:
                    raw = await asyncio.wait_for(process.stdout.readline(), self._remaining(loop, deadline))
                except TimeoutError:
                    timed_out = True
                    break
                except ValueError:
                    logger.warning("Dropped an stdout line longer than %d bytes from %s", self.line_limit, name)
                    continue
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                stdout_lines.append(line)
                if line.strip():
                    logger.debug("[%s stdout] %s", name, line)
                    yield ProgressLine(line)

            if not timed_out:
                try:
                    await asyncio.wait_for(process.wait(), self._remaining(loop, deadline))
                except TimeoutError:
                    timed_out = True
            if timed_out:
                logger.warning("%s exceeded %ss, killing process group %s", name, timeout, process.pid)
                _kill_group(process)
                await process.wait()
            finished = True
        finally:
            if not finished:
                # Consumer went away (client disconnect or cancellation).
                handle.cancel()
                await process.wait()
                stderr_task.cancel()
            else:
                await stderr_task

        yield ProcessResult(
            exit_code=process.returncode,
            stdout_lines=stdout_lines,
            stderr_text=b"".join(stderr_chunks).decode("utf-8", errors="replace"),
            timed_out=timed_out,
            cancelled=handle.cancelled,
        )

    async def stream(
        self,
        command: Command,
        timeout: float | None = None,
        on_start: Callable[[ProcessHandle], None] | None = None,
    ) -> AsyncIterator[ProgressLine | ProcessResult]:
        """Start ``command`` and follow it in one step."""
        handle = await self.start(command)
        if on_start is not None:
            on_start(handle)
        async with aclosing(self.follow(handle, timeout=timeout)) as events:
            async for event in events:
                yield event

    async def run(self, command: Command, timeout: float | None = None) -> ProcessResult:
        """Run to completion and return only the result."""
        result: ProcessResult | None = None
        async for event in self.stream(command, timeout=timeout):
            if isinstance(event, ProcessResult):
                result = event
        assert result is not None
        return result

    async def start_shell(self, command_line: str, cwd: str | None = None) -> asyncio.subprocess.Process:
        """Launch a shell command line with stderr merged into stdout."""
        try:
            return await asyncio.create_subprocess_shell(
                command_line,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=cwd,
                start_new_session=True,
            )
        except OSError as e:
            raise SpawnError(f"Failed to start subprocess: {e}") from e

    async def pipe_output(self, process: asyncio.subprocess.Process, label: str = "") -> AsyncIterator[bytes]:
        """Yield output chunks as they arrive; the exit code is only logged."""
        finished = False
        try:
            while True:
                chunk = await process.stdout.read(4096)
                if not chunk:
                    break
                yield chunk
            exit_code = await process.wait()
            finished = True
            logger.info("Child process exited with code %s: %s", exit_code, label[:200])
        finally:
            if not finished:
                _kill_group(process)
                await process.wait()
