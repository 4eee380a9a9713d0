"""Application lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.web.core.config import PROJECT_ROOT
from backend.web.services.invocation_registry import InvocationRegistry
from config.loader import load_settings
from core.agent import AgentInvoker, ProcessRunner
from core.command import CommandGuard
from core.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


def init_app_state(app: FastAPI) -> None:
    """Build long-lived services from settings; settings preset on app.state win."""
    settings = getattr(app.state, "settings", None)
    if settings is None:
        settings = load_settings(project_root=PROJECT_ROOT)
        app.state.settings = settings

    app.state.workspace_manager = WorkspaceManager(settings.workspace.root)
    app.state.invoker = AgentInvoker(
        settings.agent.build_registry(),
        runner=ProcessRunner(timeout=settings.agent.timeout_seconds),
        env=settings.agent.env,
    )
    app.state.invocations = InvocationRegistry()
    raw = settings.raw_command
    app.state.command_guard = (
        CommandGuard(block_network=raw.block_network_commands, custom_blocked=raw.custom_blocked)
        if raw.block_dangerous_commands
        else None
    )
    logger.info(
        "Patchbay ready: workspaces=%s store=%s agents=%s",
        settings.workspace.root,
        settings.store.resolve_root(),
        ", ".join(app.state.invoker.profiles.kinds()),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown."""
    init_app_state(app)
    try:
        yield
    finally:
        # Cleanup: kill agents still running
        cancelled = app.state.invocations.cancel_all()
        if cancelled:
            logger.warning("Cancelled %d running invocation(s) on shutdown", cancelled)
