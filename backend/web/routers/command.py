"""Raw command escape hatch."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from backend.web.core.config import RAW_COMMAND_MEDIA_TYPE
from backend.web.core.dependencies import get_app
from backend.web.models.requests import RawCommandRequest
from core.errors import SpawnError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["command"])


async def _run_raw_command(payload: RawCommandRequest, app: Any) -> StreamingResponse:
    settings = app.state.settings.raw_command
    if not settings.enabled:
        raise HTTPException(404, "Raw commands are disabled")
    command = (payload.command or "").strip()
    if not command:
        raise HTTPException(400, "Command is required")

    guard = app.state.command_guard
    if guard is not None:
        verdict = guard.check_command(command)
        if not verdict.allow:
            logger.warning("Blocked raw command: %s", command[:200])
            raise HTTPException(403, verdict.error_message)

    cwd = settings.cwd or str(app.state.settings.store.resolve_root())
    runner = app.state.invoker.runner
    try:
        process = await runner.start_shell(command, cwd=cwd)
    except SpawnError as e:
        raise HTTPException(500, detail=e.to_record()) from e
    logger.info("Running raw command (pid %s): %s", process.pid, command[:200])
    return StreamingResponse(runner.pipe_output(process, command), media_type=RAW_COMMAND_MEDIA_TYPE)


@router.post("/api/run-raw-command")
async def run_raw_command(
    payload: RawCommandRequest,
    app: Annotated[Any, Depends(get_app)] = None,
) -> StreamingResponse:
    """Pipe merged stdout/stderr of a shell command; the exit code is only logged."""
    return await _run_raw_command(payload, app)


@router.post("/cmd")
async def run_raw_command_alias(
    payload: RawCommandRequest,
    app: Annotated[Any, Depends(get_app)] = None,
) -> StreamingResponse:
    return await _run_raw_command(payload, app)
