"""
Data models for CES.
"""

from .project import (
    AgentConfig,
    AgentPriority,
    DetectedLanguage,
    EnvironmentSnapshot,
    MCPServerConfig,
    MCPServerLaunch,
    ProjectHealth,
    ServerPriority,
    ServerStatus,
    StartupHookResult,
)
from .session import (
    Checkpoint,
    GitStatus,
    ProcessInfo,
    ProcessStatus,
    Session,
    SessionStatus,
    SystemState,
)

__all__ = [
    # Project
    'AgentConfig',
    'AgentPriority',
    'DetectedLanguage',
    'EnvironmentSnapshot',
    'MCPServerConfig',
    'MCPServerLaunch',
    'ProjectHealth',
    'ServerPriority',
    'ServerStatus',
    'StartupHookResult',

    # Session
    'Checkpoint',
    'GitStatus',
    'ProcessInfo',
    'ProcessStatus',
    'Session',
    'SessionStatus',
    'SystemState',
]
