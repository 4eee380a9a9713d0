"""Configuration schema for Patchbay using Pydantic.

This module defines the complete configuration structure with:
- Workspace arena and true-store locations
- Agent profiles (built-ins plus user-defined kinds) and the run timeout
- Raw command policy
- Server bind address
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from core.agent.profiles import BUILTIN_PROFILES, AgentProfile, AgentProfileRegistry

DEFAULT_HOME = Path("~/.patchbay")

# ============================================================================
# Workspace / Store
# ============================================================================


class WorkspaceConfig(BaseModel):
    """Where per-invocation workspaces live and what the detector ignores."""

    root: str = Field(str(DEFAULT_HOME / "workspaces"), description="Parent directory of invocation workspaces")
    keep_failed: bool = Field(True, description="Keep workspaces of failed runs for inspection")
    ignore: list[str] = Field(default_factory=list, description="fnmatch patterns excluded from change detection")

    @field_validator("root")
    @classmethod
    def expand_root(cls, v: str) -> str:
        return str(Path(v).expanduser())


class StoreConfig(BaseModel):
    """True store: where committed changes are written."""

    root: str | None = Field(None, description="True store root (None = current working directory)")

    def resolve_root(self) -> Path:
        return Path(self.root).expanduser().resolve() if self.root else Path.cwd().resolve()


# ============================================================================
# Agent Configuration
# ============================================================================


class AgentProfileConfig(BaseModel):
    """User-defined or overridden agent profile."""

    executable: str = Field(..., description="Executable name or path")
    args: list[str] = Field(default_factory=lambda: ["{instruction}"], description="Argument template")
    env: dict[str, str] = Field(default_factory=dict, description="Extra environment variables")
    description: str = ""
    parse_result_json: bool = Field(False, description="Parse stdout as (fenced) JSON on success")

    def to_profile(self, kind: str) -> AgentProfile:
        return AgentProfile(
            kind=kind,
            executable=self.executable,
            args=tuple(self.args),
            env=dict(self.env),
            description=self.description,
            parse_result_json=self.parse_result_json,
        )


class AgentConfig(BaseModel):
    """Agent selection and run limits."""

    default_kind: str = Field("claude", description="Agent used when a request names none")
    timeout_seconds: float | None = Field(1800.0, gt=0, description="Hard wall-clock ceiling per run (None = none)")
    env: dict[str, str] = Field(default_factory=dict, description="Environment added to every agent")
    profiles: dict[str, AgentProfileConfig] = Field(default_factory=dict, description="Extra or overridden profiles")

    @model_validator(mode="after")
    def validate_default_kind(self) -> AgentConfig:
        known = set(BUILTIN_PROFILES) | set(self.profiles)
        if self.default_kind not in known:
            raise ValueError(f"default_kind '{self.default_kind}' is not a known agent: {sorted(known)}")
        return self

    def build_registry(self) -> AgentProfileRegistry:
        return AgentProfileRegistry.with_builtins(
            extra=[cfg.to_profile(kind) for kind, cfg in self.profiles.items()],
            default_kind=self.default_kind,
        )


# ============================================================================
# Raw Command / Server
# ============================================================================


class RawCommandConfig(BaseModel):
    """Policy for the raw command escape hatch."""

    enabled: bool = True
    block_dangerous_commands: bool = True
    block_network_commands: bool = False
    custom_blocked: list[str] = Field(default_factory=list, description="Extra regex patterns to block")
    cwd: str | None = Field(None, description="Working directory (None = store root)")


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(8998, gt=0, lt=65536)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


# ============================================================================
# Main Settings
# ============================================================================


class PatchbaySettings(BaseModel):
    """Main Patchbay configuration.

    Configuration priority (highest to lowest):
    1. CLI overrides
    2. Project config (<project>/.patchbay/settings.json)
    3. User config (~/.patchbay/settings.json)
    4. System defaults (config/defaults/settings.json)
    """

    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    raw_command: RawCommandConfig = Field(default_factory=RawCommandConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
