"""
Storage components for CES.

Sessions and checkpoints are kept as JSON documents under the
project's .claude directory.
"""

from .session_store import SessionStore, CleanHistoryResult

__all__ = [
    'SessionStore',
    'CleanHistoryResult',
]
