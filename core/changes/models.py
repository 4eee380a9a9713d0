"""Change-set data types shared by the detector, the applier and the review workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from core.errors import ValidationError

CommitStatus = Literal["written", "unchanged", "failed"]


@dataclass(frozen=True)
class ModifiedFile:
    """Full new content of one changed path."""

    path: str
    modified_content: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "modifiedContent": self.modified_content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModifiedFile:
        if not isinstance(data, dict):
            raise ValidationError(f"Change entry must be an object, got {type(data).__name__}")
        # Older clients send filePath.
        path = data.get("path") or data.get("filePath")
        content = data.get("modifiedContent")
        if not isinstance(path, str) or not isinstance(content, str):
            raise ValidationError("Change entry needs string path and modifiedContent", path=path)
        return cls(path=path, modified_content=content)


@dataclass
class CommitResult:
    path: str
    status: CommitStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"path": self.path, "status": self.status}
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass
class CommitReport:
    """Per-path outcome of applying a change set to the true store."""

    results: list[CommitResult] = field(default_factory=list)

    @property
    def written(self) -> int:
        return sum(1 for r in self.results if r.status == "written")

    @property
    def unchanged(self) -> int:
        return sum(1 for r in self.results if r.status == "unchanged")

    @property
    def failed(self) -> list[CommitResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def last_applied_index(self) -> int:
        """Index of the last path that reached the store, -1 if none did."""
        last = -1
        for i, result in enumerate(self.results):
            if result.ok:
                last = i
        return last

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "written": self.written,
            "unchanged": self.unchanged,
            "failed": len(self.failed),
            "lastAppliedIndex": self.last_applied_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommitReport:
        return cls(
            results=[
                CommitResult(path=r["path"], status=r["status"], error=r.get("error"))
                for r in data.get("results", [])
            ]
        )
