"""Settings loader.

Configuration priority (highest to lowest):
1. CLI overrides
2. Environment (PATCHBAY_WORKSPACES_ROOT, PATCHBAY_STORE_ROOT)
3. Project config (<project>/.patchbay/settings.json, agents/*.yaml)
4. User config (~/.patchbay/settings.json, agents/*.yaml)
5. System defaults (config/defaults/settings.json)

Agent profile files are YAML documents named after the agent kind::

    # ~/.patchbay/agents/codex.yaml
    executable: codex
    args: ["exec", "--full-auto", "{instruction}"]
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from config.schema import PatchbaySettings

logger = logging.getLogger(__name__)

_ENV_OVERRIDES = {
    "PATCHBAY_WORKSPACES_ROOT": ("workspace", "root"),
    "PATCHBAY_STORE_ROOT": ("store", "root"),
}


class SettingsLoader:
    """Three-tier settings loader with YAML agent profile discovery."""

    def __init__(self, project_root: str | Path | None = None):
        self.project_root = Path(project_root).resolve() if project_root else None
        self._system_defaults_dir = Path(__file__).parent / "defaults"

    def load(self, cli_overrides: dict[str, Any] | None = None) -> PatchbaySettings:
        system_config = self._load_json(self._system_defaults_dir / "settings.json")
        user_config = self._load_json(self.user_dir / "settings.json")
        project_config = self._load_json(self.project_dir / "settings.json") if self.project_dir else {}

        merged = self._deep_merge(system_config, user_config, project_config)

        profiles = self._deep_merge(
            self._load_profile_files(self.user_dir / "agents"),
            self._load_profile_files(self.project_dir / "agents") if self.project_dir else {},
        )
        if profiles:
            agent = merged.setdefault("agent", {})
            agent["profiles"] = self._deep_merge(agent.get("profiles", {}), profiles)

        merged = self._deep_merge(merged, self._env_overrides())
        if cli_overrides:
            merged = self._deep_merge(merged, cli_overrides)

        merged = self._expand_env_vars(merged)
        merged = self._remove_none_values(merged)
        return PatchbaySettings(**merged)

    @property
    def user_dir(self) -> Path:
        return Path.home() / ".patchbay"

    @property
    def project_dir(self) -> Path | None:
        return self.project_root / ".patchbay" if self.project_root else None

    @staticmethod
    def _load_json(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", path, e)
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _load_profile_files(dir_path: Path) -> dict[str, Any]:
        """Load agents/<kind>.yaml files -> {kind: profile dict}."""
        if not dir_path.is_dir():
            return {}
        profiles: dict[str, Any] = {}
        for path in sorted([*dir_path.glob("*.yaml"), *dir_path.glob("*.yml")]):
            try:
                data = yaml.safe_load(path.read_text(encoding="utf-8"))
            except (yaml.YAMLError, OSError) as e:
                logger.warning("Ignoring agent profile %s: %s", path, e)
                continue
            if not isinstance(data, dict) or "executable" not in data:
                logger.warning("Agent profile %s has no executable", path)
                continue
            kind = data.pop("kind", None) or path.stem
            profiles[kind] = data
        return profiles

    @staticmethod
    def _env_overrides() -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for var, (section, key) in _ENV_OVERRIDES.items():
            value = os.environ.get(var)
            if value:
                overrides.setdefault(section, {})[key] = value
        return overrides

    def _deep_merge(self, *dicts: dict[str, Any]) -> dict[str, Any]:
        """Deep merge multiple dictionaries. Later dicts override earlier ones."""
        result: dict[str, Any] = {}
        for d in dicts:
            for key, value in d.items():
                if key not in result:
                    result[key] = value
                elif value is None:
                    continue
                elif isinstance(value, dict) and isinstance(result[key], dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value
        return result

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR} and ~ in string values."""
        if isinstance(obj, dict):
            return {k: self._expand_env_vars(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._expand_env_vars(v) for v in obj]
        if isinstance(obj, str):
            return os.path.expandvars(os.path.expanduser(obj))
        return obj

    def _remove_none_values(self, obj: Any) -> Any:
        """Recursively remove None values to allow Pydantic defaults."""
        if isinstance(obj, dict):
            return {k: self._remove_none_values(v) for k, v in obj.items() if v is not None}
        if isinstance(obj, list):
            return [self._remove_none_values(v) for v in obj if v is not None]
        return obj


def load_settings(
    project_root: str | Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> PatchbaySettings:
    """Convenience function to load settings."""
    return SettingsLoader(project_root=project_root).load(cli_overrides=cli_overrides)
