"""Snapshotting, per-invocation workspaces and change detection."""

from .detector import diff, find_deleted
from .manager import WorkspaceHandle, WorkspaceManager, new_invocation_id
from .snapshot import FileRecord, Snapshot, normalize_relative_path

__all__ = [
    "FileRecord",
    "Snapshot",
    "WorkspaceHandle",
    "WorkspaceManager",
    "diff",
    "find_deleted",
    "new_invocation_id",
    "normalize_relative_path",
]
