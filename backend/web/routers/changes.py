"""Commit endpoint: the only writer of the true store."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backend.web.core.dependencies import get_app
from backend.web.models.requests import CommitChangesRequest
from backend.web.services.commit_service import commit_changes

router = APIRouter(prefix="/api", tags=["changes"])


@router.post("/commit-changes")
async def commit_changes_endpoint(
    payload: CommitChangesRequest,
    app: Annotated[Any, Depends(get_app)] = None,
) -> dict[str, Any]:
    """Apply changes path by path; per-path failures are reported, not raised."""
    return await commit_changes(app, payload)
