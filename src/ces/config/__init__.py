"""
Project configuration discovery for CES.
"""

from .environment import EnvironmentDetector, server_priority

__all__ = [
    'EnvironmentDetector',
    'server_priority',
]
