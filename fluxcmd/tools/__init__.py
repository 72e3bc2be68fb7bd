"""Tool system: parameter and result models, registry, decorator, schema export.

The built-in tools live in ``fluxcmd.tools.catalog`` and register themselves
on import; ``import fluxcmd`` loads them.
"""

from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import (
    COLUMN_PARAMETER_MARKER,
    ErrorKind,
    InverseCommand,
    ToolCall,
    ToolError,
    ToolMetadata,
    ToolParameters,
    ToolResult,
    column_field,
)
from fluxcmd.tools.registry import ToolNotFoundError, ToolRegistry, ToolRegistryEntry, tool_registry
from fluxcmd.tools.schema import export_tool_definitions, parameters_schema, tool_definition

__all__ = [
    "tool",
    "COLUMN_PARAMETER_MARKER",
    "ErrorKind",
    "InverseCommand",
    "ToolCall",
    "ToolError",
    "ToolMetadata",
    "ToolParameters",
    "ToolResult",
    "column_field",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolRegistryEntry",
    "tool_registry",
    "export_tool_definitions",
    "parameters_schema",
    "tool_definition",
]
