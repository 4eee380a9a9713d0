"""Apply a change set to the true store, one path at a time.

Each path is staged to a temp file beside its target and moved into place with
``os.replace``, so a crash never leaves a half-written file. There is no
transaction across paths: a failing path is reported and the rest still apply.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

from core.changes.models import CommitReport, CommitResult, ModifiedFile
from core.errors import CommitError, ValidationError
from core.workspace.snapshot import normalize_relative_path

logger = logging.getLogger(__name__)


def _resolve_store_path(store_root: Path, raw_path: str) -> Path:
    try:
        relative = normalize_relative_path(raw_path)
    except ValidationError as e:
        raise CommitError(e.message, path=raw_path) from e
    candidate = (store_root / relative).resolve()
    try:
        candidate.relative_to(store_root)
    except ValueError as e:
        raise CommitError(f"Path escapes the store root: {raw_path}", path=raw_path) from e
    return candidate


def _write_atomic(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def apply_change(store_root: Path, change: ModifiedFile) -> CommitResult:
    try:
        target = _resolve_store_path(store_root, change.path)
        data = change.modified_content.encode("utf-8")
        if target.is_file() and target.read_bytes() == data:
            return CommitResult(path=change.path, status="unchanged")
        _write_atomic(target, data)
    except CommitError as e:
        logger.warning("Commit rejected %s: %s", change.path, e.message)
        return CommitResult(path=change.path, status="failed", error=e.message)
    except OSError as e:
        logger.warning("Commit failed for %s: %s", change.path, e)
        return CommitResult(path=change.path, status="failed", error=str(e))
    return CommitResult(path=change.path, status="written")


def apply_changes(store_root: str | Path, changes: Iterable[ModifiedFile]) -> CommitReport:
    """Write every change under ``store_root`` and report per-path outcomes."""
    root = Path(store_root).expanduser().resolve()
    report = CommitReport()
    for change in changes:
        report.results.append(apply_change(root, change))
    logger.info(
        "Committed %d written, %d unchanged, %d failed under %s",
        report.written,
        report.unchanged,
        len(report.failed),
        root,
    )
    return report
