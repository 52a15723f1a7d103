"""
Tests for CLI dispatch.
"""

import pytest
from unittest.mock import Mock, patch

from ces.cli import build_parser, dispatch, main, main_async
from ces.managers.lifecycle import SessionLifecycle
from ces.models.session import SessionStatus


class TestParser:
    """Test argument parsing."""

    def test_commands(self):
        parser = build_parser()

        assert parser.parse_args(["start-session", "--force"]).force is True
        assert parser.parse_args(["checkpoint-session", "-m", "wip"]).message == "wip"
        assert parser.parse_args(["close-session"]).save is True
        assert parser.parse_args(["close-session", "--no-save"]).save is False
        assert parser.parse_args(["clean-history"]).force is False
        assert parser.parse_args(["status"]).command == "status"


class TestDispatch:
    """Test one operation per invocation."""

    @pytest.mark.asyncio
    async def test_session_across_invocations(
        self, ces_config, session_store, hook_runner, reporter
    ):
        parser = build_parser()

        def fresh() -> SessionLifecycle:
            return SessionLifecycle(ces_config, store=session_store, hook_runner=hook_runner, reporter=reporter)

        assert await dispatch(parser.parse_args(["start-session"]), fresh()) == 0
        assert await dispatch(parser.parse_args(["checkpoint-session", "-m", "wip"]), fresh()) == 0
        assert await dispatch(parser.parse_args(["close-session"]), fresh()) == 0

        session = await session_store.load_session(session_store.list_session_ids()[0])
        assert session.status == SessionStatus.CLOSED
        assert [c.message for c in session.checkpoints] == ["wip", "Session closing"]

    @pytest.mark.asyncio
    async def test_status_without_session(self, lifecycle, console_output):
        args = build_parser().parse_args(["status"])

        assert await dispatch(args, lifecycle) == 0
        assert "No active session" in console_output.getvalue()

    @pytest.mark.asyncio
    async def test_status_with_session(self, lifecycle, console_output):
        session = await lifecycle.start_session()

        await dispatch(build_parser().parse_args(["status"]), lifecycle)

        assert session.id in console_output.getvalue()

    @pytest.mark.asyncio
    async def test_clean_history_needs_force(self, lifecycle, console_output, session_store):
        await lifecycle.start_session()

        await dispatch(build_parser().parse_args(["clean-history"]), lifecycle)

        assert "Use --force to confirm" in console_output.getvalue()
        assert session_store.sessions_dir.exists()


class TestMain:
    """Test the entry point."""

    @pytest.mark.asyncio
    async def test_ces_error_exits_with_one(self, project_dir, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir / "home"))

        code = await main_async(["--project-root", str(project_dir), "checkpoint-session"])

        assert code == 1

    @pytest.mark.asyncio
    async def test_no_command(self):
        assert await main_async([]) == 1

    def test_main_exits(self):
        with patch("ces.cli.main_async", new=Mock(return_value=None)) as run, \
                patch("ces.cli.asyncio.run", return_value=0):
            with pytest.raises(SystemExit) as exc_info:
                main(["status"])

        assert exc_info.value.code == 0
        run.assert_called_once_with(["status"])
