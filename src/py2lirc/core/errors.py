"""
Error hierarchy for the lircd client.

This module defines the structured errors raised by the client so callers
can tell a dropped connection from a command the daemon refused.

Error Code Ranges:
- 1000-1999: Connection errors
- 2000-2999: Command and protocol errors
- 6000-6999: Configuration errors
- 7000-7999: Validation errors
- 9000-9999: Unknown/System errors
"""

from typing import Optional, Dict, Any, List, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from .protocol import Reply


class ErrorCodes:
    """Standard error codes for common error scenarios."""

    # Connection errors (1000-1999)
    CONNECTION_REFUSED = 1001
    CONNECTION_TIMEOUT = 1002
    CONNECTION_LOST = 1003
    SOCKET_ERROR = 1004
    CONNECTION_CLOSED = 1005

    # Command errors (2000-2999)
    INVALID_COMMAND = 2001
    COMMAND_FAILED = 2002
    PROTOCOL_ERROR = 2003

    # Configuration errors (6000-6999)
    CONFIG_NOT_FOUND = 6001
    CONFIG_INVALID = 6002
    UNKNOWN_SETTING = 6003

    # Validation errors (7000-7999)
    INVALID_PARAMETER = 7001
    OUT_OF_RANGE = 7002

    # System errors (9000-9999)
    UNKNOWN_ERROR = 9000


class LircError(Exception):
    """
    Base exception for all lircd client errors.

    Carries a numeric code, a context dict for log records and an optional
    list of suggestions shown to CLI users.
    """

    DEFAULT_CODE = ErrorCodes.UNKNOWN_ERROR
    CATEGORY: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None
    ):
        """
        Args:
            message: Human-readable error description
            error_code: Numeric code; the class default when omitted
            context: Extra key/value pairs for logging
            cause: Underlying exception, if any
            suggestions: Next steps for the user
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.DEFAULT_CODE
        self.context = dict(context or {})
        self.cause = cause
        self.suggestions = list(suggestions or [])
        self.timestamp = datetime.now()

        if self.CATEGORY:
            self.context['category'] = self.CATEGORY
        if cause is not None:
            self.context['original_error'] = str(cause)
            self.context['original_type'] = type(cause).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            'error_type': type(self).__name__,
            'message': self.message,
            'code': self.error_code,
            'context': self.context,
            'suggestions': self.suggestions,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause is not None else None,
        }

    def format_user_message(self) -> str:
        """Message plus numbered suggestions, for the CLI."""
        lines = [self.message]
        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            lines.extend(f"  {n}. {text}" for n, text in enumerate(self.suggestions, 1))
        return "\n".join(lines)

    def format_log_message(self) -> str:
        """Single-line form with code, context and cause."""
        text = f"[{self.error_code}] {type(self).__name__}: {self.message}"
        if self.context:
            text += f" | Context: {self.context}"
        if self.cause is not None:
            text += f" | Caused by: {self.cause}"
        return text


class LircConnectionError(LircError):
    """Errors related to the daemon socket: dial failures, lost connection."""
    DEFAULT_CODE = ErrorCodes.CONNECTION_REFUSED
    CATEGORY = 'CONNECTION'

    def __init__(self, message: str, address: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if address:
            self.context['address'] = address


class CommandError(LircError):
    """A command the daemon answered with an ERROR status."""
    DEFAULT_CODE = ErrorCodes.COMMAND_FAILED
    CATEGORY = 'COMMAND'

    def __init__(self, message: str, command: Optional[str] = None,
                 reply: Optional["Reply"] = None, **kwargs):
        super().__init__(message, **kwargs)
        if command is not None:
            self.context['command'] = command
        self.command = command
        self.reply = reply


class ProtocolError(LircError, ValueError):
    """A line from lircd that does not fit the reply or broadcast grammar."""
    DEFAULT_CODE = ErrorCodes.PROTOCOL_ERROR
    CATEGORY = 'PROTOCOL'

    def __init__(self, message: str, line: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if line is not None:
            self.context['line'] = line
        self.line = line


class ConfigurationError(LircError):
    """Errors related to client configuration files and settings."""
    DEFAULT_CODE = ErrorCodes.CONFIG_NOT_FOUND
    CATEGORY = 'CONFIGURATION'

    def __init__(self, message: str, setting_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if setting_name:
            self.context['setting'] = setting_name


class ValidationError(LircError, ValueError):
    """Errors related to input validation and parameter checking."""
    DEFAULT_CODE = ErrorCodes.INVALID_PARAMETER
    CATEGORY = 'VALIDATION'

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        if field_name:
            self.context['field'] = field_name


def wrap_external_error(e: Exception, message: str, error_class=LircError, **kwargs) -> LircError:
    """
    Wrap an OS or library exception in a LircError.

    Args:
        e: The original exception
        message: What the client was doing when it failed
        error_class: The LircError subclass to raise
        **kwargs: Passed to the error class (address, error_code, suggestions...)

    Returns:
        The wrapped error, ready to ``raise ... from e``
    """
    return error_class(message, cause=e, **kwargs)
