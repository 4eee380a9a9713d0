"""Change detector: compares a workspace tree against its snapshot."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable
from pathlib import Path

from core.changes.models import ModifiedFile
from core.errors import DetectionError
from core.workspace.snapshot import Snapshot


def _iter_files(root: Path) -> list[str]:
    found: list[str] = []

    def _onerror(err: OSError) -> None:
        raise DetectionError(f"Failed to walk workspace: {err}") from err

    for dirpath, dirnames, filenames in os.walk(root, onerror=_onerror, followlinks=False):
        dirnames.sort()
        for name in sorted(filenames):
            full = Path(dirpath) / name
            if full.is_symlink() or not full.is_file():
                continue
            found.append(full.relative_to(root).as_posix())
    return sorted(found)


def _is_ignored(path: str, ignore: Iterable[str]) -> bool:
    name = path.rsplit("/", 1)[-1]
    return any(fnmatch.fnmatchcase(path, pat) or fnmatch.fnmatchcase(name, pat) for pat in ignore)


def diff(snapshot: Snapshot, workspace_root: str | Path, ignore: Iterable[str] = ()) -> list[ModifiedFile]:
    """Return every workspace file whose bytes differ from the snapshot.

    Files missing from the snapshot were created by the agent and are always
    reported. No line-ending or whitespace normalization is applied.
    """
    root = Path(workspace_root)
    if not root.is_dir():
        raise DetectionError(f"Workspace vanished: {root}")
    ignore = tuple(ignore)

    modified: list[ModifiedFile] = []
    for path in _iter_files(root):
        if _is_ignored(path, ignore):
            continue
        try:
            data = (root / path).read_bytes()
        except OSError as e:
            raise DetectionError(f"Failed to read {path}: {e}", path=path) from e
        if data == snapshot.original_bytes(path):
            continue
        modified.append(ModifiedFile(path=path, modified_content=data.decode("utf-8", errors="replace")))
    return modified


def find_deleted(snapshot: Snapshot, workspace_root: str | Path) -> list[str]:
    """Snapshot paths that no longer exist as regular files in the workspace."""
    root = Path(workspace_root)
    if not root.is_dir():
        raise DetectionError(f"Workspace vanished: {root}")
    return [path for path in snapshot if not (root / path).is_file()]
