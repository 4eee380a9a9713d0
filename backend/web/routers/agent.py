"""Agent invocation endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from backend.web.core.config import NDJSON_MEDIA_TYPE
from backend.web.core.dependencies import get_app, get_invocations
from backend.web.models.requests import RunAgentRequest
from backend.web.services.agent_run_service import start_agent_run, stream_agent_run
from backend.web.services.invocation_registry import InvocationRegistry
from backend.web.utils.ndjson import ndjson_stream
from core.errors import PatchbayError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["agent"])


@router.post("/run-agent")
async def run_agent(
    payload: RunAgentRequest,
    app: Annotated[Any, Depends(get_app)] = None,
) -> StreamingResponse:
    """Run an agent over the submitted files and stream NDJSON progress."""
    try:
        invocation, running = await start_agent_run(app, payload)
    # @@@pre-stream-errors - failures before the first byte are plain JSON responses, not stream records.
    except ValidationError as e:
        raise HTTPException(400, detail=e.to_record()) from e
    except PatchbayError as e:
        logger.error("run-agent failed before streaming: %s", e)
        raise HTTPException(500, detail=e.to_record()) from e

    return StreamingResponse(
        ndjson_stream(stream_agent_run(app, invocation, running)),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"X-Invocation-Id": invocation.invocation_id, "Cache-Control": "no-cache"},
    )


@router.get("/agents")
async def list_agents(app: Annotated[Any, Depends(get_app)] = None) -> dict[str, Any]:
    registry = app.state.invoker.profiles
    return {
        "default": registry.default_kind,
        "agents": [profile.to_dict() for profile in registry],
    }


@router.get("/invocations")
async def list_invocations(
    invocations: Annotated[InvocationRegistry, Depends(get_invocations)],
) -> dict[str, Any]:
    return {"invocations": [inv.to_dict() for inv in invocations.list()]}


@router.post("/invocations/{invocation_id}/cancel")
async def cancel_invocation(
    invocation_id: str,
    invocations: Annotated[InvocationRegistry, Depends(get_invocations)],
) -> dict[str, Any]:
    if invocations.get(invocation_id) is None:
        raise HTTPException(404, f"Invocation not found: {invocation_id}")
    return {"invocationId": invocation_id, "cancelled": invocations.cancel(invocation_id)}
