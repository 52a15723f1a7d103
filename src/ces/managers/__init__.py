"""
Managers package for CES.
"""

from .lifecycle import SessionLifecycle
from .hook import StartupHookRunner
from .process import ProcessTable
from .system_state import SystemStateCapture, ProbeResult, ProbeOutcome

__all__ = [
    'SessionLifecycle',
    'StartupHookRunner',
    'ProcessTable',
    'SystemStateCapture',
    'ProbeResult',
    'ProbeOutcome',
]
