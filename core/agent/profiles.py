"""Agent profiles: how to launch each interchangeable external code agent."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from core.errors import ValidationError

INSTRUCTION_PLACEHOLDER = "{instruction}"


@dataclass(frozen=True)
class AgentProfile:
    """Launch capability for one agent kind.

    ``args`` is a template; every occurrence of ``{instruction}`` inside an
    argument is replaced by the instruction text. Arguments are passed to the
    executable directly, never through a shell.
    """

    kind: str
    executable: str
    args: tuple[str, ...] = (INSTRUCTION_PLACEHOLDER,)
    env: Mapping[str, str] = field(default_factory=dict)
    description: str = ""
    parse_result_json: bool = False

    def build_args(self, instruction: str) -> list[str]:
        if not any(INSTRUCTION_PLACEHOLDER in arg for arg in self.args):
            return [*self.args, instruction]
        return [arg.replace(INSTRUCTION_PLACEHOLDER, instruction) for arg in self.args]

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "executable": self.executable,
            "args": list(self.args),
            "description": self.description,
            "parseResultJson": self.parse_result_json,
        }


# Both agents must run non-interactively: stdin is closed, so permission
# prompts are disabled by flag.
BUILTIN_PROFILES: dict[str, AgentProfile] = {
    "claude": AgentProfile(
        kind="claude",
        executable="claude",
        args=("--dangerously-skip-permissions", "-p", INSTRUCTION_PLACEHOLDER),
        description="Claude Code CLI in print mode",
    ),
    "gemini": AgentProfile(
        kind="gemini",
        executable="gemini",
        args=("--yolo", "-p", INSTRUCTION_PLACEHOLDER),
        description="Gemini CLI in yolo mode",
    ),
}


class AgentProfileRegistry:
    """Lookup of agent profiles by kind."""

    def __init__(self, profiles: Iterable[AgentProfile] = (), default_kind: str | None = None):
        self._profiles: dict[str, AgentProfile] = {}
        for profile in profiles:
            self.register(profile)
        self.default_kind = default_kind

    @classmethod
    def with_builtins(cls, extra: Iterable[AgentProfile] = (), default_kind: str = "claude") -> AgentProfileRegistry:
        registry = cls(BUILTIN_PROFILES.values(), default_kind=default_kind)
        for profile in extra:
            registry.register(profile)
        return registry

    def register(self, profile: AgentProfile) -> None:
        self._profiles[profile.kind] = profile

    def resolve(self, kind: str | None) -> AgentProfile:
        kind = kind or self.default_kind
        if not kind:
            raise ValidationError("agentKind is required")
        profile = self._profiles.get(kind)
        if profile is None:
            raise ValidationError(f"Unknown agent kind: {kind}", agentKind=kind, available=sorted(self._profiles))
        return profile

    def kinds(self) -> list[str]:
        return sorted(self._profiles)

    def __contains__(self, kind: object) -> bool:
        return kind in self._profiles

    def __iter__(self):
        return iter(self._profiles.values())
