"""
Session lifecycle manager for CES.

Owns the single active-session slot and orchestrates start, checkpoint,
close and history cleanup. The slot moves Empty -> Active -> Empty; a
forced start replaces the active session without closing it.
"""

import uuid
from typing import Any, Dict, List, Optional

from ..config.environment import EnvironmentDetector
from ..models.project import MCPServerConfig, ServerPriority, ServerStatus
from ..models.session import Checkpoint, Session, SessionStatus
from ..storage.session_store import CleanHistoryResult, SessionStore
from ..utils.config import CesConfig
from ..utils.display import SessionReporter
from ..utils.errors import (
    CesError,
    ConfigurationError,
    NoActiveSessionError,
    PersistenceError,
    SessionStartError,
    error_context,
)
from ..utils.formatting import utcnow
from ..utils.logging import get_logger
from .hook import StartupHookRunner
from .process import ProcessTable
from .system_state import SystemStateCapture


logger = get_logger("ces.managers.lifecycle")


def register_servers(servers: List[MCPServerConfig]) -> List[MCPServerConfig]:
    """Return connected copies of the given servers; the inputs are left as is."""
    tiers: Dict[ServerPriority, int] = {priority: 0 for priority in ServerPriority}
    for server in servers:
        tiers[server.priority] += 1

    logger.info(
        "mcp_servers_registered",
        total=len(servers),
        **{priority.value: count for priority, count in tiers.items()}
    )
    return [server.with_status(ServerStatus.CONNECTED) for server in servers]


class SessionLifecycle:
    """Start, checkpoint and close sessions for one project."""

    def __init__(
        self,
        config: CesConfig,
        store: Optional[SessionStore] = None,
        detector: Optional[EnvironmentDetector] = None,
        hook_runner: Optional[StartupHookRunner] = None,
        state_capture: Optional[SystemStateCapture] = None,
        process_table: Optional[ProcessTable] = None,
        reporter: Optional[SessionReporter] = None
    ):
        self.config = config
        self.store = store or SessionStore(config.claude_dir)
        self.detector = detector or EnvironmentDetector(config.project_root, config.claude_dir)
        self.hook_runner = hook_runner or StartupHookRunner(config, self.detector)
        self.process_table = process_table or ProcessTable()
        self.state_capture = state_capture or SystemStateCapture(config, self.process_table)
        self.reporter = reporter or SessionReporter()
        self._current: Optional[Session] = None

    async def start_session(self, force: bool = False) -> Session:
        """
        Start a new session.

        Args:
            force: Replace an active session instead of refusing

        Returns:
            The new active session

        Raises:
            SessionStartError: If a session is active, the environment cannot
                be loaded or the session cannot be persisted
        """
        if self._current is not None and not force:
            raise SessionStartError(
                f"Session already active: {self._current.id}. Use --force to start a new one."
            )

        if self._current is not None:
            logger.warning("active_session_discarded", session_id=self._current.id)
            self._current = None

        try:
            environment = self.detector.detect()
            servers = self.detector.load_mcp_servers()
            agents = self.detector.load_agents()
        except ConfigurationError as e:
            raise SessionStartError(f"Failed to load project environment: {e.message}", cause=e) from e

        start_time = utcnow()
        session = Session(
            id=str(uuid.uuid4()),
            name=Session.make_name(environment.project_name, start_time),
            start_time=start_time,
            environment=environment,
            status=SessionStatus.ACTIVE,
            agents=agents
        )

        hook_result = await self.hook_runner.run(environment)
        if not hook_result.success:
            logger.warning("startup_hook_degraded", session_id=session.id)

        session.mcp_servers = register_servers(servers)

        try:
            await self.store.save_session(session)
        except PersistenceError as e:
            raise SessionStartError(f"Failed to save session: {e.message}", cause=e) from e

        self._current = session
        logger.info(
            "session_started",
            session_id=session.id,
            name=session.name,
            servers=len(session.mcp_servers),
            agents=len(session.agents)
        )
        self.reporter.session_started(session, hook_result)
        return session

    async def create_checkpoint(self, message: Optional[str] = None) -> Checkpoint:
        """Record a checkpoint of the active session and persist it.

        Raises:
            NoActiveSessionError: If no session is active
            CesError: If the checkpoint could not be written
        """
        session = self._require_session()

        system_state = await self.state_capture.capture_system_state(session.environment)
        checkpoint = Checkpoint(
            id=str(uuid.uuid4()),
            timestamp=utcnow(),
            message=message,
            session_state=session.snapshot(),
            system_state=system_state
        )

        session.add_checkpoint(checkpoint)
        try:
            with error_context("lifecycle", "create_checkpoint", session_id=session.id):
                await self.store.save_session(session)
                await self.store.save_checkpoint(checkpoint)
        except CesError:
            # Only persisted checkpoints stay on the session
            session.checkpoints.remove(checkpoint)
            raise

        logger.info(
            "checkpoint_created",
            session_id=session.id,
            checkpoint_id=checkpoint.id,
            checkpoints=len(session.checkpoints)
        )
        self.reporter.checkpoint_created(checkpoint)
        return checkpoint

    async def close_session(self, save: bool = True) -> Optional[Session]:
        """
        Close the active session.

        Without an active session this only warns. The slot is cleared even
        when the final write fails; that failure then propagates.

        Args:
            save: Take a final checkpoint before closing

        Returns:
            The closed session, or None if there was none
        """
        session = self._current
        if session is None:
            logger.warning("close_without_active_session")
            self.reporter.warning("No active session to close")
            return None

        try:
            session.status = SessionStatus.CLOSED
            session.end_time = utcnow()

            stopped = await self.process_table.stop_all()
            if stopped:
                logger.info("session_processes_stopped", session_id=session.id, processes=stopped)

            if save:
                try:
                    await self.create_checkpoint(self.config.session.closing_message)
                except CesError as e:
                    logger.warning(
                        "final_checkpoint_failed",
                        session_id=session.id,
                        error=e.message
                    )

            with error_context("lifecycle", "close_session", session_id=session.id):
                await self.store.save_session(session)
        finally:
            self._current = None

        logger.info("session_closed", session_id=session.id, duration=session.duration)
        self.reporter.session_closed(session)
        return session

    async def clean_history(self, force: bool = False) -> CleanHistoryResult:
        """Back up and remove stored session history."""
        with error_context("lifecycle", "clean_history"):
            result = await self.store.clean_history(force=force)
        self.reporter.clean_history(result)
        return result

    async def resume_session(self) -> Optional[Session]:
        """Reattach the active session recorded by an earlier invocation."""
        if self._current is not None:
            return self._current

        session = await self.store.load_current()
        if session is None or not session.is_active:
            return None

        self._current = session
        logger.debug("session_resumed", session_id=session.id)
        return session

    def get_current_session(self) -> Optional[Session]:
        return self._current

    def get_session_status(self) -> Dict[str, Any]:
        session = self._current
        return {
            "initialized": session is not None,
            "sessionId": session.id if session else None,
            "active": session is not None and session.is_active,
        }

    def _require_session(self) -> Session:
        if self._current is None:
            raise NoActiveSessionError("No active session. Start a session first.")
        return self._current


__all__ = [
    'SessionLifecycle',
    'register_servers',
]
