"""
Project models for CES.

Descriptors produced by environment detection: the detected project
environment, capability (MCP) servers, specialized agents and the
health summary shown when a session starts.
"""

from dataclasses import dataclass, field, replace
from typing import List, Dict, Any, Optional
from enum import Enum


class ServerPriority(Enum):
    """Priority tier of a capability server."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def order(self) -> int:
        return _PRIORITY_ORDER[self]


_PRIORITY_ORDER = {
    ServerPriority.CRITICAL: 1,
    ServerPriority.HIGH: 2,
    ServerPriority.MEDIUM: 3,
    ServerPriority.LOW: 4,
}


class ServerStatus(Enum):
    """Connection status of a capability server."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class AgentPriority(Enum):
    """Priority of a specialized agent."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class HealthTier(Enum):
    """Overall project health."""
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


class CheckStatus(Enum):
    """Result of a single health check."""
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


@dataclass
class DetectedLanguage:
    """A programming language found in the project."""
    name: str
    emoji: str
    files: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)
    confidence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "emoji": self.emoji,
            "files": list(self.files),
            "extensions": list(self.extensions),
            "confidence": self.confidence
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DetectedLanguage':
        return cls(
            name=data["name"],
            emoji=data.get("emoji", ""),
            files=list(data.get("files", [])),
            extensions=list(data.get("extensions", [])),
            confidence=data.get("confidence", 0)
        )


@dataclass
class EnvironmentSnapshot:
    """Detected project environment, captured once per session."""
    project_root: str
    project_name: str
    languages: List[DetectedLanguage] = field(default_factory=list)
    frameworks: List[str] = field(default_factory=list)
    tools: List[str] = field(default_factory=list)
    has_git: bool = False
    has_mcp: bool = False
    has_agents: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectRoot": self.project_root,
            "projectName": self.project_name,
            "languages": [lang.to_dict() for lang in self.languages],
            "frameworks": list(self.frameworks),
            "tools": list(self.tools),
            "hasGit": self.has_git,
            "hasMCP": self.has_mcp,
            "hasAgents": self.has_agents
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EnvironmentSnapshot':
        return cls(
            project_root=data["projectRoot"],
            project_name=data["projectName"],
            languages=[DetectedLanguage.from_dict(lang) for lang in data.get("languages", [])],
            frameworks=list(data.get("frameworks", [])),
            tools=list(data.get("tools", [])),
            has_git=data.get("hasGit", False),
            has_mcp=data.get("hasMCP", False),
            has_agents=data.get("hasAgents", False)
        )


@dataclass
class MCPServerLaunch:
    """How a capability server process is launched."""
    command: str
    args: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"command": self.command}
        if self.args is not None:
            data["args"] = list(self.args)
        if self.env is not None:
            data["env"] = dict(self.env)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MCPServerLaunch':
        args = data.get("args")
        env = data.get("env")
        return cls(
            command=data.get("command", ""),
            args=list(args) if args is not None else None,
            env=dict(env) if env is not None else None
        )


@dataclass
class MCPServerConfig:
    """Capability server descriptor."""
    name: str
    config: MCPServerLaunch
    enabled: bool = True
    priority: ServerPriority = ServerPriority.MEDIUM
    status: Optional[ServerStatus] = None

    def with_status(self, status: ServerStatus) -> 'MCPServerConfig':
        """Return a copy carrying the given status."""
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "enabled": self.enabled,
            "priority": self.priority.value,
            "config": self.config.to_dict(),
        }
        if self.status is not None:
            data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MCPServerConfig':
        status = data.get("status")
        return cls(
            name=data["name"],
            config=MCPServerLaunch.from_dict(data.get("config", {})),
            enabled=data.get("enabled", True),
            priority=ServerPriority(data.get("priority", "medium")),
            status=ServerStatus(status) if status else None
        )


@dataclass
class AgentConfig:
    """Specialized assistant agent descriptor."""
    name: str
    file_path: str
    description: str = ""
    tools: List[str] = field(default_factory=list)
    priority: AgentPriority = AgentPriority.MEDIUM
    color: Optional[str] = None
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "description": self.description,
            "tools": list(self.tools),
            "priority": self.priority.value,
            "filePath": self.file_path,
            "enabled": self.enabled
        }
        if self.color is not None:
            data["color"] = self.color
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AgentConfig':
        return cls(
            name=data["name"],
            file_path=data.get("filePath", ""),
            description=data.get("description", ""),
            tools=list(data.get("tools", [])),
            priority=AgentPriority(data.get("priority", "medium")),
            color=data.get("color"),
            enabled=data.get("enabled", True)
        )


@dataclass
class HealthCheck:
    """Outcome of one health category."""
    status: CheckStatus
    message: str
    details: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"status": self.status.value, "message": self.message}
        if self.details is not None:
            data["details"] = self.details
        return data


@dataclass
class HealthIssue:
    """A single issue reported by a health check."""
    level: str  # "error", "warning", "info"
    category: str
    message: str
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "category": self.category,
            "message": self.message,
            "suggestion": self.suggestion
        }


@dataclass
class ProjectHealth:
    """Tiered project health summary, used for display only."""
    overall: HealthTier
    languages: HealthCheck
    mcp: HealthCheck
    agents: HealthCheck
    git: HealthCheck
    environment: HealthCheck
    issues: List[HealthIssue] = field(default_factory=list)

    @classmethod
    def not_executed(cls) -> 'ProjectHealth':
        """Health reported when no check could run."""
        check = HealthCheck(status=CheckStatus.WARNING, message="Hook not executed")
        return cls(
            overall=HealthTier.WARNING,
            languages=check,
            mcp=check,
            agents=check,
            git=check,
            environment=check
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall.value,
            "languages": self.languages.to_dict(),
            "mcp": self.mcp.to_dict(),
            "agents": self.agents.to_dict(),
            "git": self.git.to_dict(),
            "environment": self.environment.to_dict(),
            "issues": [issue.to_dict() for issue in self.issues]
        }


@dataclass
class StartupHookResult:
    """Result of running the startup hook."""
    success: bool
    health: ProjectHealth
    languages: List[DetectedLanguage] = field(default_factory=list)
    frameworks: List[str] = field(default_factory=list)
    tools: List[str] = field(default_factory=list)
    directories: List[str] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)


__all__ = [
    'ServerPriority',
    'ServerStatus',
    'AgentPriority',
    'HealthTier',
    'CheckStatus',
    'DetectedLanguage',
    'EnvironmentSnapshot',
    'MCPServerLaunch',
    'MCPServerConfig',
    'AgentConfig',
    'HealthCheck',
    'HealthIssue',
    'ProjectHealth',
    'StartupHookResult',
]
