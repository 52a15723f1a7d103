"""
Error handling framework for CES.

This module provides:
- Hierarchical exception classes
- Error context preservation
- Structured error dictionaries for the CLI boundary
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from contextlib import contextmanager
import traceback

from .logging import get_logger


logger = get_logger("ces.errors")


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    SYSTEM = "system"
    CONFIGURATION = "configuration"
    SESSION = "session"
    STORAGE = "storage"
    EXTERNAL_SERVICE = "external_service"
    USER_INPUT = "user_input"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None


class CesError(Exception):
    """Base exception for all CES errors."""

    code: str = "CES_ERROR"
    default_message: str = "An error occurred in CES"
    severity: ErrorSeverity = ErrorSeverity.ERROR
    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        **kwargs
    ):
        """Initialize CES error."""
        self.message = message or self.default_message
        self.context = context or ErrorContext()
        self.cause = cause
        self.kwargs = kwargs

        if not self.context.stack_trace and cause is not None:
            self.context.stack_trace = "".join(
                traceback.format_exception(type(cause), cause, cause.__traceback__)
            )

        super().__init__(self.message)

    def get_suggestions(self) -> List[str]:
        """Get error resolution suggestions."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "severity": self.severity.value,
                "category": self.category.value,
                "suggestions": self.get_suggestions(),
                "cause": str(self.cause) if self.cause else None,
                "context": {
                    "timestamp": self.context.timestamp.isoformat(),
                    "session_id": self.context.session_id,
                    "component": self.context.component,
                    "operation": self.context.operation,
                    "metadata": self.context.metadata
                }
            }
        }


class ConfigurationError(CesError):
    """Configuration errors."""
    code = "CONFIG_ERROR"
    default_message = "Configuration error"
    category = ErrorCategory.CONFIGURATION

    def get_suggestions(self) -> List[str]:
        return [
            "Check your configuration file syntax",
            "Ensure all CES_* environment variables hold valid values",
        ]


class SessionError(CesError):
    """Session lifecycle errors."""
    code = "SESSION_ERROR"
    default_message = "Session operation failed"
    category = ErrorCategory.SESSION


class SessionStartError(SessionError):
    """Raised when a session cannot be started."""
    code = "SESSION_START_ERROR"
    default_message = "Failed to start session"

    def get_suggestions(self) -> List[str]:
        return ["Close the active session first or start with --force"]


class NoActiveSessionError(SessionError):
    """Raised when an operation needs an active session and none exists."""
    code = "NO_ACTIVE_SESSION"
    default_message = "No active session"
    severity = ErrorSeverity.WARNING

    def get_suggestions(self) -> List[str]:
        return ["Start a session with 'ces start-session'"]


class PersistenceError(CesError):
    """File-system failures while reading or writing session documents."""
    code = "PERSISTENCE_ERROR"
    default_message = "Failed to persist session data"
    category = ErrorCategory.STORAGE

    def get_suggestions(self) -> List[str]:
        return [
            "Check permissions of the .claude directory",
            "Check available disk space",
        ]


class HookExecutionError(CesError):
    """Startup hook failures."""
    code = "HOOK_EXECUTION_ERROR"
    default_message = "Hook execution failed"
    category = ErrorCategory.EXTERNAL_SERVICE
    severity = ErrorSeverity.WARNING


class ExternalCommandError(CesError):
    """Failures of external commands such as git."""
    code = "EXTERNAL_COMMAND_ERROR"
    default_message = "External command failed"
    category = ErrorCategory.EXTERNAL_SERVICE
    severity = ErrorSeverity.WARNING

    def __init__(self, command: str, **kwargs):
        self.command = command
        kwargs.setdefault("message", f"External command failed: {command}")
        super().__init__(**kwargs)


@contextmanager
def error_context(
    component: str,
    operation: str,
    reraise: bool = True,
    **metadata
):
    """
    Context manager for error handling with context.

    CesError instances get the component/operation filled in; any other
    exception is wrapped in a CesError.

    Args:
        component: Component name
        operation: Operation name
        reraise: Whether to reraise exceptions
        **metadata: Additional context metadata
    """
    context = ErrorContext(
        component=component,
        operation=operation,
        session_id=metadata.pop("session_id", None),
        metadata=metadata
    )

    try:
        yield context
    except CesError as e:
        e.context.component = e.context.component or component
        e.context.operation = e.context.operation or operation
        e.context.session_id = e.context.session_id or context.session_id
        e.context.metadata.update(metadata)
        logger.error(
            "ces_error_in_context",
            code=e.code,
            component=component,
            operation=operation,
            error=e.message,
        )
        if reraise:
            raise
    except Exception as e:
        wrapped = CesError(
            message=str(e),
            context=context,
            cause=e
        )
        logger.error(
            "unexpected_error_in_context",
            component=component,
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True
        )
        if reraise:
            raise wrapped from e


__all__ = [
    'CesError',
    'ErrorContext',
    'ErrorSeverity',
    'ErrorCategory',
    'ConfigurationError',
    'SessionError',
    'SessionStartError',
    'NoActiveSessionError',
    'PersistenceError',
    'HookExecutionError',
    'ExternalCommandError',
    'error_context',
]
