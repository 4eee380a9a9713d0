"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request

from backend.web.services.invocation_registry import InvocationRegistry


async def get_app(request: Request) -> FastAPI:
    """Get FastAPI app instance from request."""
    return request.app


async def get_invocations(app: Annotated[FastAPI, Depends(get_app)]) -> InvocationRegistry:
    registry = getattr(app.state, "invocations", None)
    if registry is None:
        raise HTTPException(503, "Server is not ready")
    return registry
