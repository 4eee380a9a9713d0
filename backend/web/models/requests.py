"""Pydantic request models for the Patchbay web API."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from core.changes import ModifiedFile
from core.workspace import FileRecord


class FileRecordIn(BaseModel):
    path: str = Field(validation_alias=AliasChoices("path", "filePath"))
    content: str

    def to_record(self) -> FileRecord:
        return FileRecord.create(self.path, self.content)


class RunAgentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    instruction: str
    files: list[FileRecordIn] = Field(default_factory=list)
    agent_kind: str | None = Field(None, validation_alias=AliasChoices("agentKind", "agent_kind"))
    trim: bool = False


class ModifiedFileIn(BaseModel):
    path: str = Field(validation_alias=AliasChoices("path", "filePath"))
    modified_content: str = Field(validation_alias=AliasChoices("modifiedContent", "modified_content"))

    def to_change(self) -> ModifiedFile:
        return ModifiedFile(path=self.path, modified_content=self.modified_content)


class CommitChangesRequest(BaseModel):
    changes: list[ModifiedFileIn] = Field(default_factory=list)


class RawCommandRequest(BaseModel):
    command: str | None = None
