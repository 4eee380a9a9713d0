"""Agent run lifecycle: prepare workspace, spawn, stream, detect, clean up."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

from fastapi import FastAPI

from backend.web.models.requests import RunAgentRequest
from core.agent import AgentInvocation, ExitResult, InvocationStatus, ProgressLine, RunningAgent
from core.errors import DetectionError, PatchbayError, ValidationError, WorkspaceError
from core.workspace import diff, find_deleted

logger = logging.getLogger(__name__)


async def start_agent_run(app: FastAPI, request: RunAgentRequest) -> tuple[AgentInvocation, RunningAgent]:
    """Everything that must succeed before the first streamed byte.

    Raises ``ValidationError`` for bad input, ``WorkspaceError``/``SpawnError`` otherwise.
    """
    if not request.instruction.strip():
        raise ValidationError("instruction is required")
    if not request.files:
        raise ValidationError("At least one file is required")
    records = [f.to_record() for f in request.files]

    invoker = app.state.invoker
    manager = app.state.workspace_manager
    profile = invoker.profiles.resolve(request.agent_kind)

    workspace = await asyncio.to_thread(manager.prepare, records, None, request.trim)
    try:
        running = await invoker.launch(workspace, request.instruction, profile.kind)
    except PatchbayError:
        await asyncio.to_thread(manager.teardown, workspace)
        raise

    invocation = AgentInvocation(
        invocation_id=workspace.invocation_id,
        instruction=request.instruction,
        agent_kind=profile.kind,
        workspace=workspace,
        status=InvocationStatus.RUNNING,
        process=running.handle,
    )
    app.state.invocations.add(invocation)
    return invocation, running


def _error_record(error: PatchbayError, invocation_id: str) -> dict[str, Any]:
    return {"error": {**error.to_record(), "invocationId": invocation_id}}


def _teardown_quietly(manager, workspace) -> None:
    try:
        manager.teardown(workspace)
    except WorkspaceError as e:
        logger.warning("%s", e)


async def stream_agent_run(app: FastAPI, invocation: AgentInvocation, running: RunningAgent) -> AsyncIterator[dict[str, Any]]:
    """Yield ``{stdout}`` records, then exactly one terminal record."""
    settings = app.state.settings
    manager = app.state.workspace_manager
    workspace = invocation.workspace
    invocation_id = invocation.invocation_id
    done = False
    closed_early = False

    try:
        exit_result: ExitResult | None = None
        async with aclosing(running.events()) as events:
            async for event in events:
                if isinstance(event, ProgressLine):
                    yield {"stdout": event.text}
                else:
                    exit_result = event

        invocation.exit_result = exit_result
        invocation.status = exit_result.status
        if exit_result.status is not InvocationStatus.SUCCEEDED:
            yield _error_record(exit_result.to_error(invocation.agent_kind), invocation_id)
            return

        if exit_result.agent_result is not None:
            yield {"agentResult": exit_result.agent_result}

        try:
            modified = await asyncio.to_thread(diff, workspace.snapshot, workspace.root, settings.workspace.ignore)
            deleted = await asyncio.to_thread(find_deleted, workspace.snapshot, workspace.root)
        except DetectionError as e:
            invocation.status = InvocationStatus.FAILED
            logger.warning("Change detection failed for %s: %s", invocation_id, e)
            yield _error_record(e, invocation_id)
            return

        logger.info("%s: %d modified, %d deleted", invocation_id, len(modified), len(deleted))
        done = True
        await asyncio.to_thread(_teardown_quietly, manager, workspace)
        yield {
            "modifiedFiles": [m.to_dict() for m in modified],
            "deletedFiles": deleted,
            "invocationId": invocation_id,
        }
    except Exception as e:
        # @@@stream-terminal-record - the caller must always get a terminal record, even for unexpected failures.
        logger.exception("Run %s failed mid-stream", invocation_id)
        invocation.status = InvocationStatus.FAILED
        yield {"error": {"type": "InternalError", "message": str(e), "invocationId": invocation_id}}
    except (GeneratorExit, asyncio.CancelledError):
        closed_early = True
        raise
    finally:
        app.state.invocations.remove(invocation_id)
        if not done:
            # @@@keep-failed-workspace - cancelled runs always keep their files; failures follow workspace.keep_failed.
            if running.handle.cancelled or settings.workspace.keep_failed:
                manager.release(workspace)
            elif closed_early:
                # no awaiting once the consumer is gone
                _teardown_quietly(manager, workspace)
            else:
                await asyncio.to_thread(_teardown_quietly, manager, workspace)
