"""
CES - session lifecycle management for Claude projects.

This package provides:
- Session start, checkpoint and close with JSON persistence
- System and git state capture for checkpoints
- Project environment detection and capability server registration
- Startup hook execution
"""

__version__ = "2.7.0"
__author__ = "CES Team"

__all__ = [
    '__version__',
]
