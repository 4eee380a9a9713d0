"""Workspace manager: materializes a snapshot into a per-invocation directory.

Each invocation gets ``<base_dir>/<invocation_id>``, so concurrent invocations
never wipe each other's files and no lock is held around prepare/diff/teardown.
"""

from __future__ import annotations

import logging
import shutil
import threading
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from core.errors import ValidationError, WorkspaceError
from core.workspace.snapshot import FileRecord, Snapshot

logger = logging.getLogger(__name__)


def new_invocation_id() -> str:
    return f"inv_{uuid.uuid4().hex[:16]}"


@dataclass
class WorkspaceHandle:
    """A live workspace directory and the snapshot it was populated from."""

    invocation_id: str
    root: Path
    snapshot: Snapshot
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def path_of(self, relative_path: str) -> Path:
        return self.root / relative_path


class WorkspaceManager:
    """Factory for per-invocation workspaces keyed by invocation id."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir).expanduser().resolve()
        self._live: dict[str, WorkspaceHandle] = {}
        self._lock = threading.Lock()

    def prepare(
        self,
        files: Iterable[FileRecord],
        invocation_id: str | None = None,
        trim: bool = False,
    ) -> WorkspaceHandle:
        records = list(files)
        if not records:
            raise ValidationError("At least one file is required")
        snapshot = Snapshot.from_records(records, trim=trim)

        invocation_id = invocation_id or new_invocation_id()
        root = self._resolve_root(invocation_id)
        try:
            # @@@wipe-then-recreate - a reused invocation id must never inherit stale files.
            if root.exists():
                shutil.rmtree(root)
            root.mkdir(parents=True)
            for path, content in snapshot.items():
                target = self._resolve_target(root, path)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(content.encode("utf-8"))
        except ValidationError:
            shutil.rmtree(root, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(root, ignore_errors=True)
            raise WorkspaceError(
                f"Failed to materialize workspace {invocation_id}: {e}",
                invocation_id=invocation_id,
            ) from e

        handle = WorkspaceHandle(invocation_id=invocation_id, root=root, snapshot=snapshot)
        with self._lock:
            self._live[invocation_id] = handle
        logger.info("Prepared workspace %s with %d files at %s", invocation_id, len(snapshot), root)
        return handle

    def teardown(self, handle: WorkspaceHandle) -> None:
        with self._lock:
            self._live.pop(handle.invocation_id, None)
        try:
            shutil.rmtree(handle.root)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise WorkspaceError(
                f"Failed to remove workspace {handle.invocation_id}: {e}",
                invocation_id=handle.invocation_id,
            ) from e
        logger.info("Removed workspace %s", handle.invocation_id)

    def release(self, handle: WorkspaceHandle) -> None:
        """Forget a handle but keep its directory on disk for inspection."""
        with self._lock:
            self._live.pop(handle.invocation_id, None)
        logger.warning("Workspace %s kept for inspection at %s", handle.invocation_id, handle.root)

    def get(self, invocation_id: str) -> WorkspaceHandle | None:
        with self._lock:
            return self._live.get(invocation_id)

    def live(self) -> list[WorkspaceHandle]:
        with self._lock:
            return list(self._live.values())

    def _resolve_root(self, invocation_id: str) -> Path:
        if not invocation_id or "/" in invocation_id or "\\" in invocation_id or invocation_id in (".", ".."):
            raise ValidationError(f"Invalid invocation id: {invocation_id!r}")
        return self.base_dir / invocation_id

    @staticmethod
    def _resolve_target(root: Path, relative_path: str) -> Path:
        candidate = (root / relative_path).resolve()
        # @@@workspace-path-boundary - normalized paths are already ..-free; this also catches symlinked parents.
        try:
            candidate.relative_to(root.resolve())
        except ValueError as e:
            raise ValidationError(f"File path escapes the workspace: {relative_path}", path=relative_path) from e
        return candidate
