"""
Tests for models and formatting helpers.
"""

import pytest
from datetime import datetime, timedelta, timezone

from ces.models.project import (
    MCPServerConfig,
    MCPServerLaunch,
    ProjectHealth,
    ServerPriority,
    ServerStatus,
)
from ces.models.session import Session, SessionStatus
from ces.utils.errors import (
    CesError,
    ErrorCategory,
    NoActiveSessionError,
    PersistenceError,
    error_context,
)
from ces.utils.formatting import backup_timestamp, format_duration


START = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


class TestFormatDuration:
    """Test duration formatting."""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (45, "45s"),
        (60, "1m 0s"),
        (125, "2m 5s"),
        (3600, "1h 0m 0s"),
        (3 * 3600 + 4 * 60 + 5, "3h 4m 5s"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(START, START + timedelta(seconds=seconds)) == expected

    def test_defaults_to_now(self):
        start = datetime.now(timezone.utc) - timedelta(minutes=5)

        assert format_duration(start).startswith("5m")


class TestBackupTimestamp:
    def test_safe_for_paths(self):
        stamp = backup_timestamp(datetime(2024, 5, 1, 9, 30, 15, 123000, tzinfo=timezone.utc))

        assert stamp == "2024-05-01T09-30-15-123Z"


class TestSessionModel:
    """Test the session model."""

    def test_name(self):
        assert Session.make_name("demo", START) == "demo-2024-05-01T09:00:00"

    def test_snapshot_excludes_checkpoints(self, environment_snapshot):
        session = Session(id="s1", name="demo", start_time=START, environment=environment_snapshot)

        snapshot = session.snapshot()

        assert "checkpoints" not in snapshot
        assert snapshot["status"] == "active"
        snapshot["environment"]["frameworks"].append("Flask")
        assert session.environment.frameworks == ["FastAPI"]

    def test_duration_uses_end_time(self, environment_snapshot):
        session = Session(
            id="s1",
            name="demo",
            start_time=START,
            environment=environment_snapshot,
            status=SessionStatus.CLOSED,
            end_time=START + timedelta(minutes=90)
        )

        assert session.duration == "1h 30m 0s"
        assert not session.is_active

    def test_with_status_copies(self):
        server = MCPServerConfig(
            name="git",
            config=MCPServerLaunch(command="uvx"),
            priority=ServerPriority.HIGH,
            status=ServerStatus.DISCONNECTED
        )

        connected = server.with_status(ServerStatus.CONNECTED)

        assert connected.status == ServerStatus.CONNECTED
        assert server.status == ServerStatus.DISCONNECTED
        assert MCPServerConfig.from_dict(connected.to_dict()) == connected

    def test_not_executed_health(self):
        health = ProjectHealth.not_executed().to_dict()

        assert health["overall"] == "warning"
        assert health["git"] == {"status": "warning", "message": "Hook not executed"}


class TestErrors:
    """Test the error hierarchy."""

    def test_to_dict(self):
        error = NoActiveSessionError()

        data = error.to_dict()["error"]

        assert data["code"] == "NO_ACTIVE_SESSION"
        assert data["message"] == "No active session"
        assert data["category"] == "session"
        assert data["suggestions"]

    def test_error_context_wraps(self):
        with pytest.raises(CesError) as exc_info:
            with error_context("store", "write", session_id="s1", path="/tmp/x"):
                raise RuntimeError("boom")

        error = exc_info.value
        assert error.message == "boom"
        assert error.context.session_id == "s1"
        assert error.context.metadata == {"path": "/tmp/x"}
        assert isinstance(error.cause, RuntimeError)

    def test_error_context_keeps_ces_errors(self):
        with pytest.raises(PersistenceError) as exc_info:
            with error_context("store", "write", session_id="s1"):
                raise PersistenceError("disk full")

        assert exc_info.value.category == ErrorCategory.STORAGE
        assert exc_info.value.context.component == "store"
        assert exc_info.value.context.session_id == "s1"
