"""Apply an approved change set to the true store."""

import asyncio
import logging
from typing import Any

from fastapi import FastAPI

from backend.web.models.requests import CommitChangesRequest
from core.changes import apply_changes

logger = logging.getLogger(__name__)


async def commit_changes(app: FastAPI, request: CommitChangesRequest) -> dict[str, Any]:
    store_root = app.state.settings.store.resolve_root()
    changes = [c.to_change() for c in request.changes]
    report = await asyncio.to_thread(apply_changes, store_root, changes)
    if report.failed:
        logger.warning("Commit to %s: %d of %d paths failed", store_root, len(report.failed), len(changes))
    return report.to_dict()
