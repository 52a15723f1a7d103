"""External command execution with a timeout."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence

from .errors import ExternalCommandError
from .logging import get_logger


logger = get_logger("ces.commands")


@dataclass
class CommandResult:
    """Completed external command."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(
    args: Sequence[str],
    cwd: Optional[Path] = None,
    timeout: float = 30.0,
    env: Optional[Dict[str, str]] = None
) -> CommandResult:
    """
    Run a command and collect its output.

    Args:
        args: Program and arguments
        cwd: Working directory
        timeout: Seconds before the process is killed
        env: Environment for the child, inherited when None

    Returns:
        Exit code with decoded stdout and stderr

    Raises:
        ExternalCommandError: If the command cannot be spawned or times out
    """
    command = " ".join(str(a) for a in args)

    try:
        process = await asyncio.create_subprocess_exec(
            *[str(a) for a in args],
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=env
        )
    except OSError as e:
        raise ExternalCommandError(
            command,
            message=f"Cannot run {command}: {e}",
            cause=e
        ) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        logger.warning("command_timed_out", command=command, timeout=timeout)
        raise ExternalCommandError(
            command,
            message=f"{command} timed out after {timeout}s",
            cause=e
        ) from e

    return CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else ""
    )


__all__ = [
    'CommandResult',
    'run_command',
]
