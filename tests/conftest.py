"""
Pytest configuration and shared fixtures for CES tests.
"""

import pytest
import io
import json
import tempfile
import shutil
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, Mock

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rich.console import Console

from ces.managers.hook import StartupHookRunner
from ces.managers.lifecycle import SessionLifecycle
from ces.models.project import (
    DetectedLanguage,
    EnvironmentSnapshot,
    ProjectHealth,
    StartupHookResult,
)
from ces.storage.session_store import SessionStore
from ces.utils.config import CesConfig
from ces.utils.display import SessionReporter


MCP_SERVERS = {
    "mcpServers": {
        "brave": {"command": "npx", "args": ["-y", "brave-search"]},
        "context7": {"command": "npx", "args": ["-y", "context7"]},
        "git": {"command": "uvx", "args": ["mcp-server-git"]},
        "custom": {"command": "./custom-server", "env": {"TOKEN": "x"}},
    }
}

AGENT_FILE = """---
name: reviewer
description: Reviews code changes
tools: Read, Grep, Edit
priority: high
color: blue
---

Review every change.
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def project_dir(temp_dir: Path) -> Path:
    """A Python project with MCP servers and one agent configured."""
    root = temp_dir / "demo-project"
    root.mkdir()
    (root / "pyproject.toml").write_text('[project]\nname = "demo"\ndependencies = ["fastapi"]\n')
    (root / "main.py").write_text("print('hello')\n")
    (root / "Makefile").write_text("all:\n")

    claude_dir = root / ".claude"
    (claude_dir / "agents").mkdir(parents=True)
    (claude_dir / "claude_desktop_config.json").write_text(json.dumps(MCP_SERVERS))
    (claude_dir / "agents" / "reviewer.md").write_text(AGENT_FILE)
    return root


@pytest.fixture
def ces_config(project_dir: Path, temp_dir: Path) -> CesConfig:
    """Configuration rooted at the test project."""
    return CesConfig(
        project_root=project_dir,
        logging={"level": "DEBUG", "directory": temp_dir / "logs"},
    )


@pytest.fixture
def environment_snapshot() -> EnvironmentSnapshot:
    """A detected environment without a git repository."""
    return EnvironmentSnapshot(
        project_root="/work/demo-project",
        project_name="demo-project",
        languages=[
            DetectedLanguage(
                name="Python",
                emoji="🐍",
                files=["pyproject.toml", "main.py"],
                extensions=[".py", ".pyx", ".pyi"],
                confidence=40,
            )
        ],
        frameworks=["FastAPI"],
        tools=["Make"],
        has_git=False,
        has_mcp=True,
        has_agents=True,
    )


@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(console_output: io.StringIO) -> SessionReporter:
    """Reporter writing to an in-memory console."""
    return SessionReporter(Console(file=console_output, width=120, color_system=None))


@pytest.fixture
def hook_runner() -> Mock:
    """Startup hook runner that reports success without running anything."""
    runner = Mock(spec=StartupHookRunner)
    runner.run = AsyncMock(return_value=StartupHookResult(
        success=True,
        health=ProjectHealth.not_executed(),
        logs=["hook ok"],
    ))
    return runner


@pytest.fixture
def session_store(ces_config: CesConfig) -> SessionStore:
    return SessionStore(ces_config.claude_dir)


@pytest.fixture
def lifecycle(ces_config, session_store, hook_runner, reporter) -> SessionLifecycle:
    """Lifecycle wired to the temporary project."""
    return SessionLifecycle(
        ces_config,
        store=session_store,
        hook_runner=hook_runner,
        reporter=reporter,
    )
