"""
System state capture for checkpoints.

Collects the working directory, a copy of the process environment, the
session's tracked child processes and the git status of the operation
root. Capture never fails: any error degrades to a minimal snapshot.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from ..models.project import EnvironmentSnapshot
from ..models.session import GitStatus, SystemState
from ..utils.commands import run_command
from ..utils.config import CesConfig
from ..utils.errors import ExternalCommandError
from ..utils.logging import get_logger
from .process import ProcessTable


logger = get_logger("ces.managers.system_state")

T = TypeVar("T")


class ProbeOutcome(Enum):
    """Outcome of an external probe."""
    OK = "ok"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass
class ProbeResult(Generic[T]):
    """Tagged result of an external probe: a value, or why there is none."""
    outcome: ProbeOutcome
    value: Optional[T] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == ProbeOutcome.OK

    @classmethod
    def success(cls, value: T) -> 'ProbeResult[T]':
        return cls(outcome=ProbeOutcome.OK, value=value)

    @classmethod
    def unavailable(cls, reason: str) -> 'ProbeResult[T]':
        return cls(outcome=ProbeOutcome.UNAVAILABLE, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> 'ProbeResult[T]':
        return cls(outcome=ProbeOutcome.FAILED, reason=reason)


class SystemStateCapture:
    """Builds SystemState snapshots for the active session."""

    def __init__(
        self,
        config: CesConfig,
        process_table: Optional[ProcessTable] = None
    ):
        self.config = config
        self.process_table = process_table or ProcessTable()

    @property
    def git_timeout(self) -> float:
        return self.config.session.git_timeout

    async def probe_git_status(
        self,
        environment: Optional[EnvironmentSnapshot] = None
    ) -> ProbeResult[GitStatus]:
        """Query git for the branch and porcelain status of the operation root.

        When the environment reports no repository, no process is spawned.
        """
        has_git = (
            environment.has_git if environment is not None
            else (self.config.operation_root / ".git").exists()
        )
        if not has_git:
            return ProbeResult.unavailable("not a git repository")

        cwd = self.config.operation_root
        try:
            status = await run_command(
                ["git", "status", "--porcelain"], cwd=cwd, timeout=self.git_timeout
            )
            if not status.ok:
                return ProbeResult.failed(
                    f"git status exited with {status.returncode}: {status.stderr.strip()}"
                )

            branch = await run_command(
                ["git", "branch", "--show-current"], cwd=cwd, timeout=self.git_timeout
            )
            if not branch.ok:
                return ProbeResult.failed(
                    f"git branch exited with {branch.returncode}: {branch.stderr.strip()}"
                )
        except ExternalCommandError as e:
            return ProbeResult.failed(e.message)

        return ProbeResult.success(
            GitStatus.from_porcelain(branch.stdout.strip(), status.stdout)
        )

    async def capture_git_status(
        self,
        environment: Optional[EnvironmentSnapshot] = None
    ) -> Optional[GitStatus]:
        """Git status, or None when unavailable or failed."""
        result = await self.probe_git_status(environment)
        if result.outcome == ProbeOutcome.FAILED:
            logger.warning("git_status_failed", reason=result.reason)
        return result.value

    async def capture_system_state(
        self,
        environment: Optional[EnvironmentSnapshot] = None
    ) -> SystemState:
        """Snapshot the ambient system; falls back to a minimal state on error."""
        cwd = str(self.config.operation_root)
        try:
            try:
                cwd = os.getcwd()
            except OSError as e:
                logger.warning("working_directory_unavailable", error=str(e))
            git_status = await self.capture_git_status(environment)
            return SystemState(
                working_directory=cwd,
                environment=dict(os.environ),
                running_processes=self.process_table.snapshot(),
                open_files=[],
                git_status=git_status
            )
        except Exception as e:
            logger.warning(
                "system_state_capture_failed",
                error=str(e),
                error_type=type(e).__name__
            )
            return SystemState.fallback(cwd)


__all__ = [
    'ProbeOutcome',
    'ProbeResult',
    'SystemStateCapture',
]
