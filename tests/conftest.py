"""Shared fixtures for bridge tests."""

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
import structlog

from mudcode_bridge.bridge.dispatcher import EventDispatcher


def write_state(path: Path, projects: dict[str, Any]) -> Path:
    """Write a state document with the given ``projects`` mapping."""
    path.write_text(json.dumps({"projects": projects}))
    return path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project root containing a couple of shareable files."""
    root = tmp_path / "project"
    files_dir = root / ".mudcode" / "files"
    files_dir.mkdir(parents=True)
    (files_dir / "out.png").write_bytes(b"\x89PNG fake")
    (files_dir / "report.pdf").write_bytes(b"%PDF fake")
    return root


@pytest.fixture
def state_path(tmp_path: Path, project_dir: Path) -> Path:
    """State file routing ``proj`` to two opencode instances and a legacy channel."""
    return write_state(
        tmp_path / "state.json",
        {
            "proj": {
                "projectPath": str(project_dir),
                "instances": {
                    "opencode": {
                        "instanceId": "opencode",
                        "agentType": "opencode",
                        "channelId": "ch-opencode",
                    },
                    "opencode-2": {
                        "instanceId": "opencode-2",
                        "agentType": "opencode",
                        "channelId": "ch-opencode-2",
                    },
                },
                "discordChannels": {"claude": "ch-legacy-claude"},
            }
        },
    )


@pytest.fixture
def sink() -> AsyncMock:
    """Stand-in for the Discord client."""
    mock = AsyncMock()
    mock.send_message = AsyncMock(return_value=None)
    mock.send_files = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def dispatcher(sink: AsyncMock, state_path: Path) -> EventDispatcher:
    return EventDispatcher(sink, state_path)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any logging configuration a test applied."""
    yield
    structlog.reset_defaults()
