"""
Startup hook runner.

The startup hook is a project-supplied script executed when a session
starts. Its stdout lines are collected as logs; a missing, failing or
hanging hook produces a degraded result instead of aborting the start.
"""

import sys
from pathlib import Path
from typing import List, Optional

from ..config.environment import EnvironmentDetector
from ..models.project import EnvironmentSnapshot, ProjectHealth, StartupHookResult
from ..utils.commands import run_command
from ..utils.config import CesConfig
from ..utils.errors import ExternalCommandError, HookExecutionError
from ..utils.logging import get_logger


logger = get_logger("ces.managers.hook")

INTERPRETERS = {
    ".js": ["node"],
    ".cjs": ["node"],
    ".mjs": ["node"],
    ".py": [sys.executable],
    ".sh": ["bash"],
}


def hook_command(path: Path) -> List[str]:
    """Command line that runs the hook script at path."""
    return INTERPRETERS.get(path.suffix.lower(), []) + [str(path)]


class StartupHookRunner:
    """Executes the configured startup hook."""

    def __init__(self, config: CesConfig, detector: Optional[EnvironmentDetector] = None):
        self.config = config
        self.detector = detector or EnvironmentDetector(config.project_root, config.claude_dir)

    @property
    def hook_path(self) -> Path:
        return self.config.startup_hook_path

    async def run(self, environment: Optional[EnvironmentSnapshot] = None) -> StartupHookResult:
        """Run the hook; never raises."""
        path = self.hook_path

        if not self.config.hooks.enabled:
            logger.info("startup_hook_disabled")
            return self._degraded(environment, ProjectHealth.not_executed(), ["Startup hook disabled"])

        if not path.is_file():
            logger.warning("startup_hook_missing", path=str(path))
            return self._degraded(
                environment,
                ProjectHealth.not_executed(),
                [f"Startup hook not found: {path}"]
            )

        try:
            logs = await self._execute(path)
        except HookExecutionError as e:
            logger.warning("startup_hook_failed", path=str(path), error=e.message)
            return self._degraded(environment, self._health(environment), [f"Error: {e.message}"])

        logger.info("startup_hook_completed", path=str(path), lines=len(logs))
        return StartupHookResult(
            success=True,
            health=self._health(environment),
            languages=list(environment.languages) if environment else [],
            frameworks=list(environment.frameworks) if environment else [],
            tools=list(environment.tools) if environment else [],
            directories=self._directories(),
            logs=logs
        )

    async def _execute(self, path: Path) -> List[str]:
        command = hook_command(path)
        try:
            result = await run_command(
                command,
                cwd=self.config.operation_root,
                timeout=self.config.hooks.timeout
            )
        except ExternalCommandError as e:
            raise HookExecutionError(e.message, cause=e) from e

        if not result.ok:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise HookExecutionError(f"Startup hook failed: {detail}")

        return [line for line in result.stdout.splitlines() if line.strip()]

    def _health(self, environment: Optional[EnvironmentSnapshot]) -> ProjectHealth:
        try:
            return self.detector.health_check(environment)
        except Exception as e:
            logger.warning("health_check_failed", error=str(e))
            return ProjectHealth.not_executed()

    def _directories(self) -> List[str]:
        claude_dir = self.config.claude_dir
        if not claude_dir.is_dir():
            return []
        return sorted(str(p) for p in claude_dir.iterdir() if p.is_dir())

    def _degraded(
        self,
        environment: Optional[EnvironmentSnapshot],
        health: ProjectHealth,
        logs: List[str]
    ) -> StartupHookResult:
        return StartupHookResult(
            success=False,
            health=health,
            languages=list(environment.languages) if environment else [],
            frameworks=list(environment.frameworks) if environment else [],
            tools=list(environment.tools) if environment else [],
            logs=logs
        )


__all__ = [
    'StartupHookRunner',
    'hook_command',
    'INTERPRETERS',
]
