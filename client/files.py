"""Collect a folder's text files into FileRecords for an agent run."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from core.workspace import FileRecord

logger = logging.getLogger(__name__)

IGNORE_DIRS = frozenset(
    {
        "__pycache__",
        "node_modules",
        ".git",
        ".env",
        ".venv",
        ".idea",
        ".gradle",
        ".patchbay",
        "build",
        "dist",
        "out",
        "temp",
        "backups",
    }
)

IGNORE_EXTENSIONS = frozenset(
    {
        ".apk", ".lock", ".ttf", ".properties", ".gradle", ".env", ".png", ".jpg", ".jpeg",
        ".gif", ".svg", ".ico", ".mp3", ".wav", ".mp4", ".mov", ".avi", ".wmv", ".pdf",
        ".doc", ".docx", ".ppt", ".pptx", ".pyc", ".zip",
    }
)


def collect_files(
    root: str | Path,
    ignore_dirs: Iterable[str] = IGNORE_DIRS,
    ignore_extensions: Iterable[str] = IGNORE_EXTENSIONS,
) -> list[FileRecord]:
    """Walk ``root`` in sorted order; files that are not UTF-8 text are skipped."""
    root = Path(root).expanduser().resolve()
    if not root.is_dir():
        raise NotADirectoryError(str(root))
    skip_dirs = set(ignore_dirs)
    skip_ext = tuple(ignore_extensions)

    records: list[FileRecord] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)
        for name in sorted(filenames):
            if name.endswith(skip_ext):
                continue
            path = Path(dirpath) / name
            if path.is_symlink():
                continue
            try:
                content = path.read_bytes().decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("Skipping non-UTF-8 file %s", path)
                continue
            except OSError as e:
                logger.warning("Could not read %s: %s", path, e)
                continue
            records.append(FileRecord.create(path.relative_to(root).as_posix(), content))
    return records
