"""In-memory registry of running agent invocations."""

from __future__ import annotations

import logging

from core.agent import AgentInvocation

logger = logging.getLogger(__name__)


class InvocationRegistry:
    """Tracks invocations between spawn and terminal record.

    Lives on ``app.state``; single event loop, so no lock.
    """

    def __init__(self) -> None:
        self._invocations: dict[str, AgentInvocation] = {}

    def add(self, invocation: AgentInvocation) -> None:
        self._invocations[invocation.invocation_id] = invocation

    def remove(self, invocation_id: str) -> AgentInvocation | None:
        return self._invocations.pop(invocation_id, None)

    def get(self, invocation_id: str) -> AgentInvocation | None:
        return self._invocations.get(invocation_id)

    def list(self) -> list[AgentInvocation]:
        return sorted(self._invocations.values(), key=lambda inv: inv.started_at)

    def cancel(self, invocation_id: str) -> bool:
        invocation = self._invocations.get(invocation_id)
        if invocation is None:
            return False
        cancelled = invocation.cancel()
        if cancelled:
            logger.info("Cancelled invocation %s", invocation_id)
        return cancelled

    def cancel_all(self) -> int:
        return sum(1 for inv in list(self._invocations.values()) if inv.cancel())

    def __len__(self) -> int:
        return len(self._invocations)
