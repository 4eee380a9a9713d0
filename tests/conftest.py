"""Pytest configuration for Patchbay tests.

Ensures the project root is in sys.path so imports work correctly.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

FAKE_AGENT = Path(__file__).parent / "fake_agent.py"


@pytest.fixture
def fake_agent_args() -> list[str]:
    """Args template that runs the scriptable fake agent."""
    return [str(FAKE_AGENT), "{instruction}"]


@pytest.fixture
def fake_profile(fake_agent_args):
    from core.agent import AgentProfile

    return AgentProfile(kind="fake", executable=sys.executable, args=tuple(fake_agent_args))


@pytest.fixture
def fake_settings(tmp_path, fake_agent_args):
    """Settings pointing workspaces and store into tmp_path with the fake agent as default."""
    from config.schema import PatchbaySettings

    store = tmp_path / "store"
    store.mkdir()
    return PatchbaySettings(
        workspace={"root": str(tmp_path / "workspaces"), "keep_failed": True},
        store={"root": str(store)},
        agent={
            "default_kind": "fake",
            "timeout_seconds": 20,
            "profiles": {"fake": {"executable": sys.executable, "args": fake_agent_args}},
        },
    )
