"""
Session models for CES.

A Session is one tracked working period. It owns an append-only list of
Checkpoints; each checkpoint carries a detached copy of the session fields
and a SystemState snapshot taken at capture time.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional
from enum import Enum

from .project import EnvironmentSnapshot, MCPServerConfig, AgentConfig
from ..utils.formatting import format_duration


class SessionStatus(Enum):
    """Session lifecycle states.

    Only ACTIVE -> CLOSED is produced by the lifecycle; SUSPENDED and ERROR
    are reserved.
    """
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"
    ERROR = "error"


class ProcessStatus(Enum):
    """Status of a tracked child process."""
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class ProcessInfo:
    """A child process tracked by the session."""
    pid: int
    name: str
    command: str
    status: ProcessStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pid": self.pid,
            "name": self.name,
            "command": self.command,
            "status": self.status.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessInfo':
        return cls(
            pid=data.get("pid", 0),
            name=data["name"],
            command=data.get("command", ""),
            status=ProcessStatus(data.get("status", "running"))
        )


@dataclass
class GitStatus:
    """Version-control state of the operation root."""
    branch: str
    status: str
    staged: List[str] = field(default_factory=list)
    unstaged: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)

    @classmethod
    def from_porcelain(cls, branch: str, output: str) -> 'GitStatus':
        """Build from `git status --porcelain` output.

        The first two characters of each line are the index and worktree
        status codes; a file may land in both staged and unstaged. Untracked
        entries (`??`) land in untracked only.
        """
        staged: List[str] = []
        unstaged: List[str] = []
        untracked: List[str] = []

        for line in output.splitlines():
            if not line.strip():
                continue
            code = line[:2].ljust(2)
            file_name = line[3:]

            if code[0] not in (" ", "?"):
                staged.append(file_name)
            if code[1] not in (" ", "?"):
                unstaged.append(file_name)
            if code == "??":
                untracked.append(file_name)

        return cls(
            branch=branch,
            status=output.strip(),
            staged=staged,
            unstaged=unstaged,
            untracked=untracked
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "branch": self.branch,
            "status": self.status,
            "staged": list(self.staged),
            "unstaged": list(self.unstaged),
            "untracked": list(self.untracked)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GitStatus':
        return cls(
            branch=data.get("branch", ""),
            status=data.get("status", ""),
            staged=list(data.get("staged", [])),
            unstaged=list(data.get("unstaged", [])),
            untracked=list(data.get("untracked", []))
        )


@dataclass(frozen=True)
class SystemState:
    """Ambient system snapshot; recomputed on every capture."""
    working_directory: str
    environment: Dict[str, str] = field(default_factory=dict)
    running_processes: List[ProcessInfo] = field(default_factory=list)
    open_files: List[str] = field(default_factory=list)
    git_status: Optional[GitStatus] = None

    @classmethod
    def fallback(cls, working_directory: str) -> 'SystemState':
        """Minimal snapshot used when capture fails."""
        return cls(working_directory=working_directory)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workingDirectory": self.working_directory,
            "environment": dict(self.environment),
            "runningProcesses": [p.to_dict() for p in self.running_processes],
            "openFiles": list(self.open_files),
            "gitStatus": self.git_status.to_dict() if self.git_status else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SystemState':
        git_status = data.get("gitStatus")
        return cls(
            working_directory=data["workingDirectory"],
            environment=dict(data.get("environment", {})),
            running_processes=[ProcessInfo.from_dict(p) for p in data.get("runningProcesses", [])],
            open_files=list(data.get("openFiles", [])),
            git_status=GitStatus.from_dict(git_status) if git_status else None
        )


@dataclass
class Checkpoint:
    """Point-in-time snapshot of a session."""
    id: str
    timestamp: datetime
    session_state: Dict[str, Any]
    system_state: SystemState
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "sessionState": copy.deepcopy(self.session_state),
            "systemState": self.system_state.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Checkpoint':
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            message=data.get("message"),
            session_state=copy.deepcopy(data.get("sessionState", {})),
            system_state=SystemState.from_dict(data["systemState"])
        )


@dataclass
class Session:
    """One tracked working period."""
    id: str
    name: str
    start_time: datetime
    environment: EnvironmentSnapshot
    status: SessionStatus = SessionStatus.ACTIVE
    end_time: Optional[datetime] = None
    mcp_servers: List[MCPServerConfig] = field(default_factory=list)
    agents: List[AgentConfig] = field(default_factory=list)
    checkpoints: List[Checkpoint] = field(default_factory=list)

    @staticmethod
    def make_name(project_name: str, start_time: datetime) -> str:
        return f"{project_name}-{start_time.strftime('%Y-%m-%dT%H:%M:%S')}"

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def duration(self) -> str:
        """Human-readable duration, measured to now while still active."""
        return format_duration(self.start_time, self.end_time)

    def add_checkpoint(self, checkpoint: Checkpoint) -> None:
        self.checkpoints.append(checkpoint)

    def snapshot(self) -> Dict[str, Any]:
        """Detached copy of the session fields, without the checkpoint history."""
        state = self.to_dict()
        state.pop("checkpoints")
        return state

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "status": self.status.value,
            "mcpServers": [s.to_dict() for s in self.mcp_servers],
            "agents": [a.to_dict() for a in self.agents],
            "environment": self.environment.to_dict(),
            "checkpoints": [c.to_dict() for c in self.checkpoints]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        return cls(
            id=data["id"],
            name=data["name"],
            start_time=datetime.fromisoformat(data["startTime"]),
            end_time=_parse_dt(data.get("endTime")),
            status=SessionStatus(data.get("status", "active")),
            mcp_servers=[MCPServerConfig.from_dict(s) for s in data.get("mcpServers", [])],
            agents=[AgentConfig.from_dict(a) for a in data.get("agents", [])],
            environment=EnvironmentSnapshot.from_dict(data["environment"]),
            checkpoints=[Checkpoint.from_dict(c) for c in data.get("checkpoints", [])]
        )


__all__ = [
    'SessionStatus',
    'ProcessStatus',
    'ProcessInfo',
    'GitStatus',
    'SystemState',
    'Checkpoint',
    'Session',
]
