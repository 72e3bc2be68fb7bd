"""Base error classes for fluxcmd.

Expected outcomes (validation failures, not-found lookups) are returned as
values inside a ``ToolResult``. The classes here are for faults: store
adapters that break, misconfiguration, and catalog construction mistakes.
"""

import logging
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)


class FluxError(Exception):
    """Base class for all fluxcmd errors.

    Provides a message, an optional cause for nested errors and a creation
    timestamp for reporting.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize error.

        Args:
            message: Error message
            cause: Optional cause exception
        """
        self.message = message
        self.cause = cause
        self.timestamp = datetime.now()
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary.

        Returns:
            Dictionary representation of error
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        cause_str = f" (caused by: {self.cause})" if self.cause else ""
        return f"{self.message}{cause_str}"


class StoreError(FluxError):
    """Raised by a store adapter when the backing service fails.

    The execution engine reports these as upstream failures, keeping the
    original message as context.
    """

    def __init__(self, message: str, operation: str, cause: Exception | None = None):
        self.operation = operation
        super().__init__(message, cause)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["operation"] = self.operation
        return data


class ConfigurationError(FluxError):
    """Raised when settings or a configuration file are invalid."""

    def __init__(self, message: str, config_key: str | None = None, cause: Exception | None = None):
        self.config_key = config_key
        super().__init__(message, cause)


class ToolDefinitionError(FluxError):
    """Raised when a tool definition is malformed at registration time."""

    def __init__(self, message: str, tool_name: str):
        self.tool_name = tool_name
        super().__init__(message)


class DuplicateToolError(ToolDefinitionError):
    """Raised when a tool name is registered twice."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool already registered: {tool_name}", tool_name)
