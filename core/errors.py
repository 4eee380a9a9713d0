"""Error taxonomy for the agent pipeline.

Every error carries a stable ``error_type`` used in wire records so callers can
react by kind without parsing messages.
"""

from __future__ import annotations

from typing import Any


class PatchbayError(Exception):
    """Base class for all pipeline errors."""

    error_type = "PatchbayError"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_record(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.error_type, "message": self.message}
        payload.update({k: v for k, v in self.details.items() if v is not None})
        return payload


class ValidationError(PatchbayError):
    """Bad or missing request fields. No process is spawned."""

    error_type = "ValidationError"


class WorkspaceError(PatchbayError):
    """I/O failure materializing or cleaning a workspace."""

    error_type = "WorkspaceError"


class SpawnError(PatchbayError):
    """The agent executable could not be launched."""

    error_type = "SpawnError"


class AgentExitError(PatchbayError):
    """The agent exited with a non-zero code."""

    error_type = "AgentExitError"


class AgentTimeoutError(AgentExitError):
    """The agent exceeded its wall-clock ceiling and was killed."""

    error_type = "Timeout"


class AgentCancelledError(AgentExitError):
    error_type = "Cancelled"


class DetectionError(PatchbayError):
    """Diffing the workspace against its snapshot failed."""

    error_type = "DetectionError"


class CommitError(PatchbayError):
    """A single path could not be written to the true store."""

    error_type = "CommitError"


class ReviewStateError(PatchbayError):
    """Illegal transition of the approve/reject workflow."""

    error_type = "ReviewStateError"


class JsonExtractError(PatchbayError):
    error_type = "ParseError"


__all__ = [
    "AgentCancelledError",
    "AgentExitError",
    "AgentTimeoutError",
    "CommitError",
    "DetectionError",
    "JsonExtractError",
    "PatchbayError",
    "ReviewStateError",
    "SpawnError",
    "ValidationError",
    "WorkspaceError",
]
