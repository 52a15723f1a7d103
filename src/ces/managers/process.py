"""
Child-process table for CES sessions.

Tracks the OS processes a session launched (capability servers, helper
tools) so they can be reported in checkpoints and terminated on close.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import psutil

from ..models.session import ProcessInfo, ProcessStatus
from ..utils.logging import get_logger


logger = get_logger("ces.managers.process")


@dataclass
class TrackedProcess:
    """A launched child process and the command that started it."""
    name: str
    process: asyncio.subprocess.Process
    args: List[str] = field(default_factory=list)
    killed: bool = False

    @property
    def pid(self) -> int:
        return self.process.pid or 0

    @property
    def command(self) -> str:
        return " ".join(self.args)

    @property
    def is_running(self) -> bool:
        return not self.killed and self.process.returncode is None

    def info(self) -> ProcessInfo:
        return ProcessInfo(
            pid=self.pid,
            name=self.name,
            command=self.command,
            status=ProcessStatus.RUNNING if self.is_running else ProcessStatus.STOPPED
        )


class ProcessTable:
    """Name-keyed table of processes owned by the active session."""

    def __init__(self, terminate_timeout: float = 5.0):
        self.terminate_timeout = terminate_timeout
        self._processes: Dict[str, TrackedProcess] = {}

    def __len__(self) -> int:
        return len(self._processes)

    def __contains__(self, name: str) -> bool:
        return name in self._processes

    def track(
        self,
        name: str,
        process: asyncio.subprocess.Process,
        args: Sequence[str] = ()
    ) -> TrackedProcess:
        """Register an already started process under a name."""
        tracked = TrackedProcess(name=name, process=process, args=list(args))
        self._processes[name] = tracked
        logger.debug("process_tracked", name=name, pid=tracked.pid)
        return tracked

    async def spawn(
        self,
        name: str,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None
    ) -> TrackedProcess:
        """Start a process and track it."""
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            cwd=str(cwd) if cwd else None,
            env=env
        )
        logger.info("process_spawned", name=name, pid=process.pid, command=" ".join(args))
        return self.track(name, process, args)

    def snapshot(self) -> List[ProcessInfo]:
        """Process info for every tracked process, in insertion order."""
        return [tracked.info() for tracked in self._processes.values()]

    async def stop_all(self) -> List[str]:
        """Terminate every tracked process and clear the table.

        A process that fails to stop is logged and skipped.

        Returns:
            Names of the processes that were stopped
        """
        stopped: List[str] = []

        for name, tracked in list(self._processes.items()):
            if not tracked.is_running:
                continue
            try:
                await self._terminate(tracked)
                stopped.append(name)
                logger.info("process_stopped", name=name, pid=tracked.pid)
            except (OSError, psutil.Error) as e:
                logger.warning(
                    "process_stop_failed",
                    name=name,
                    pid=tracked.pid,
                    error=str(e)
                )

        self._processes.clear()
        return stopped

    async def _terminate(self, tracked: TrackedProcess) -> None:
        """SIGTERM the process and its children, SIGKILL what survives the timeout."""
        try:
            children = psutil.Process(tracked.pid).children(recursive=True)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            children = []

        for child in children:
            try:
                child.terminate()
            except psutil.NoSuchProcess:
                pass

        try:
            tracked.process.terminate()
        except ProcessLookupError:
            tracked.killed = True
            return

        try:
            await asyncio.wait_for(tracked.process.wait(), timeout=self.terminate_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "graceful_termination_timeout",
                name=tracked.name,
                pid=tracked.pid
            )
            tracked.process.kill()
            await tracked.process.wait()

        if children:
            _, alive = psutil.wait_procs(children, timeout=self.terminate_timeout)
            for child in alive:
                try:
                    child.kill()
                except psutil.NoSuchProcess:
                    pass

        tracked.killed = True


__all__ = [
    'ProcessTable',
    'TrackedProcess',
]
