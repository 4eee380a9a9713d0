"""File records and the pre-mutation snapshot of one invocation."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from core.errors import ValidationError

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


def normalize_relative_path(raw: str) -> str:
    """Normalize a caller-supplied path to a forward-slash relative path.

    Backslashes become slashes, empty and ``.`` segments are dropped. Absolute
    paths, drive letters and ``..`` segments are rejected so a path can never
    resolve outside the directory it is joined onto.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("File path must be a non-empty string", path=raw)
    candidate = raw.replace("\\", "/")
    if candidate.startswith("/") or _DRIVE_PREFIX.match(candidate):
        raise ValidationError(f"File path must be relative: {raw}", path=raw)
    parts = []
    for segment in candidate.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise ValidationError(f"File path escapes the workspace: {raw}", path=raw)
        parts.append(segment)
    if not parts:
        raise ValidationError(f"File path has no name: {raw}", path=raw)
    return "/".join(parts)


def _reject_file_dir_conflicts(paths: Iterable[str]) -> None:
    """A path cannot be both a file and the parent directory of another file."""
    files = set(paths)
    for path in sorted(files):
        parts = path.split("/")
        for i in range(1, len(parts)):
            parent = "/".join(parts[:i])
            if parent in files:
                raise ValidationError(f"File path {parent} is also used as a directory by {path}", path=path)


@dataclass(frozen=True)
class FileRecord:
    """One submitted file. ``path`` is always normalized."""

    path: str
    content: str

    @classmethod
    def create(cls, path: str, content: str) -> FileRecord:
        return cls(path=normalize_relative_path(path), content=content)


class Snapshot(Mapping[str, str]):
    """Read-only mapping of normalized path -> original content."""

    def __init__(self, contents: Mapping[str, str]):
        self._contents = MappingProxyType(dict(contents))

    @classmethod
    def from_records(cls, records: Iterable[FileRecord], trim: bool = False) -> Snapshot:
        contents: dict[str, str] = {}
        for record in records:
            path = normalize_relative_path(record.path)
            if path in contents:
                raise ValidationError(f"Duplicate file path: {path}", path=path)
            contents[path] = record.content.strip() if trim else record.content
        _reject_file_dir_conflicts(contents)
        return cls(contents)

    def records(self) -> list[FileRecord]:
        return [FileRecord(path=p, content=c) for p, c in self._contents.items()]

    def original_bytes(self, path: str) -> bytes | None:
        content = self._contents.get(path)
        return None if content is None else content.encode("utf-8")

    def __getitem__(self, path: str) -> str:
        return self._contents[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._contents)

    def __len__(self) -> int:
        return len(self._contents)

    def __repr__(self) -> str:
        return f"Snapshot({len(self)} files)"
