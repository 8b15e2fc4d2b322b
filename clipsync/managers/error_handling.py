"""
Error Handling Framework

Central error logging and user notification for ClipSync. Errors never stop
playback; they are logged, kept in a short history and announced through Qt
signals for whatever surface shows them.
"""

from enum import Enum
from typing import Optional, Callable, Dict, Any
from datetime import datetime
from PyQt6.QtCore import QObject, pyqtSignal
import logging


class ErrorSeverity(Enum):
    """Error severity levels for categorizing errors."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorContext:
    """Where an error happened and what was being attempted."""

    def __init__(self, component: str, operation: str, user_action: Optional[str] = None):
        self.component = component
        self.operation = operation
        self.user_action = user_action
        self.timestamp = datetime.now()
        self.error_id = f"{component}_{operation}_{int(self.timestamp.timestamp())}"

    def __str__(self) -> str:
        parts = [f"[{self.component}] {self.operation}"]
        if self.user_action:
            parts.append(f"User action: {self.user_action}")
        parts.append(f"Time: {self.timestamp.strftime('%H:%M:%S')}")
        return " | ".join(parts)


class ErrorHandler(QObject):
    """
    Centralized error handling and user notification.

    Provides:
    - structured error logging with context
    - user-friendly messages for the errors this application actually meets
    - per-operation callbacks
    - a bounded history with statistics
    """

    error_occurred = pyqtSignal(str, str, str)  # severity, title, message
    critical_error = pyqtSignal(str)  # message

    def __init__(self, max_recent_errors: int = 10):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.error_callbacks: Dict[str, Callable] = {}
        self.error_count = 0
        self.last_errors = []
        self.max_recent_errors = max_recent_errors

    def handle_error(self, error: Exception, context: ErrorContext,
                     severity: ErrorSeverity = ErrorSeverity.ERROR,
                     log: bool = True, message: Optional[str] = None) -> None:
        """
        Record, log and announce an error.

        Args:
            error: The exception that occurred
            context: Where it occurred
            severity: Severity level
            log: False when the caller already logged the traceback
            message: Overrides the generated user-facing message
        """
        self.error_count += 1

        self.last_errors.append({
            'error': error,
            'context': context,
            'severity': severity,
            'timestamp': datetime.now(),
            'error_id': context.error_id
        })
        if len(self.last_errors) > self.max_recent_errors:
            self.last_errors.pop(0)

        if log:
            log_message = f"{context} | Error: {error}"
            if severity == ErrorSeverity.CRITICAL:
                self.logger.critical(log_message, exc_info=error)
            elif severity == ErrorSeverity.ERROR:
                self.logger.error(log_message, exc_info=error)
            elif severity == ErrorSeverity.WARNING:
                self.logger.warning(log_message)
            else:
                self.logger.info(log_message)

        user_message = message or self.get_user_friendly_message(error, context)
        if severity == ErrorSeverity.CRITICAL:
            self.critical_error.emit(user_message)
        else:
            self.error_occurred.emit(severity.value, f"{context.component} Error", user_message)

        self._execute_error_callbacks(error, context, severity)

    def get_user_friendly_message(self, error: Exception, context: ErrorContext) -> str:
        error_type = type(error).__name__
        error_str = str(error)

        if error_type == 'FileNotFoundError':
            if '.mp4' in error_str:
                return f"Video file not found for {context.operation}. The file may have been moved or deleted."
            return f"Required file not found for {context.operation}: {error_str}"

        user_messages = {
            'PermissionError': f"Permission denied while {context.operation}. Please check folder permissions.",
            'TimestampParseError': f"A clip has an unreadable timestamp and was skipped: {error_str}",
            'UnknownCameraError': f"A clip names an unknown camera and was skipped: {error_str}",
            'StreamUnavailable': f"A camera stream is not ready yet during {context.operation}.",
            'JSONDecodeError': f"Event metadata could not be read during {context.operation}.",
            'ValueError': f"Invalid input for {context.operation}: {error_str}",
            'OSError': f"System error during {context.operation}: {error_str}",
        }
        return user_messages.get(error_type, f"An error occurred during {context.operation}: {error_str}")

    def _execute_error_callbacks(self, error: Exception, context: ErrorContext,
                                 severity: ErrorSeverity) -> None:
        callback_key = f"{context.component}.{context.operation}"
        callback = self.error_callbacks.get(callback_key)
        if callback is None:
            return
        try:
            callback(error, context, severity)
        except Exception as callback_error:
            self.logger.error(f"Error in error callback for {callback_key}: {callback_error}")

    def register_error_callback(self, component: str, operation: str,
                                callback: Callable[[Exception, ErrorContext, ErrorSeverity], None]) -> None:
        callback_key = f"{component}.{operation}"
        self.error_callbacks[callback_key] = callback
        self.logger.debug(f"Registered error callback for {callback_key}")

    def unregister_error_callback(self, component: str, operation: str) -> bool:
        return self.error_callbacks.pop(f"{component}.{operation}", None) is not None

    def get_error_statistics(self) -> Dict[str, Any]:
        type_counts: Dict[str, int] = {}
        component_counts: Dict[str, int] = {}
        for record in self.last_errors:
            error_type = type(record['error']).__name__
            type_counts[error_type] = type_counts.get(error_type, 0) + 1
            component = record['context'].component
            component_counts[component] = component_counts.get(component, 0) + 1

        return {
            'total_errors': self.error_count,
            'recent_errors_count': len(self.last_errors),
            'error_types': type_counts,
            'components_with_errors': component_counts,
            'last_error_time': self.last_errors[-1]['timestamp'] if self.last_errors else None
        }

    def clear_error_history(self) -> None:
        self.last_errors.clear()
        self.error_count = 0
