"""
Structured logging utility for the SDK runtime.

This module provides a consistent logging interface on top of the standard
library ``logging`` package, rendering structured fields such as the
operation id and request path as ``key=value`` pairs.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional


class LogLevel(str, Enum):
    """Log levels for SDK logging, in increasing severity."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


LOG_LEVEL_ORDER = (LogLevel.DEBUG, LogLevel.INFO, LogLevel.WARN, LogLevel.ERROR)

_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def level_at_least(level: LogLevel, minimum: LogLevel) -> bool:
    return LOG_LEVEL_ORDER.index(level) >= LOG_LEVEL_ORDER.index(minimum)


class SDKLogger:
    """Structured logger for an SDK component."""

    def __init__(self, component: str):
        """
        Initialize logger for a specific component.

        Args:
            component: Name of the component (e.g., "runtime", "modules.analytics")
        """
        self.component = component
        self.logger = logging.getLogger(f"supa_sdk.{component}")

    def _format_message(self, message: str, fields: Mapping[str, Any]) -> str:
        """Format message with structured fields."""
        parts = [f"component={self.component}"]

        for key, value in fields.items():
            if value is not None:
                parts.append(f"{key}={value}")

        return f"[{' '.join(parts)}] {message}"

    def log(self, level: LogLevel, message: str, data: Any = None) -> None:
        """Log ``message`` at ``level``; mapping data becomes structured fields."""
        if isinstance(data, Mapping):
            fields = data
        elif data is not None:
            fields = {"data": data}
        else:
            fields = {}

        self.logger.log(_STDLIB_LEVELS[LogLevel(level)], self._format_message(message, fields))

    def error(self, message: str, operation_id: Optional[str] = None,
              error: Optional[Exception] = None, **kwargs):
        """Log error message with structured fields."""
        if error:
            kwargs["error_type"] = type(error).__name__
            kwargs["error_msg"] = str(error)

        self.log(LogLevel.ERROR, message, {"operation_id": operation_id, **kwargs})
