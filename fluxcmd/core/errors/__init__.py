"""Exception hierarchy for fluxcmd."""

from fluxcmd.core.errors.errors import (
    ConfigurationError,
    DuplicateToolError,
    FluxError,
    StoreError,
    ToolDefinitionError,
)

__all__ = [
    "FluxError",
    "StoreError",
    "ConfigurationError",
    "DuplicateToolError",
    "ToolDefinitionError",
]
