"""fluxcmd: command and tool orchestration for a project management workspace.

An operator, or a language model acting for one, drives the workspace through
named tools. This package provides:
1. A typed tool catalog with function-calling schema export
2. Forgiving resolution of entity names, statuses and dates
3. An execution engine that turns every fault into a ``ToolResult``
4. Batch preview/run and single-step undo backed by an action log
"""

from fluxcmd.batch.orchestrator import CommandOrchestrator
from fluxcmd.core.errors.errors import FluxError, StoreError
from fluxcmd.core.log_config import configure_logging
from fluxcmd.core.settings.settings import FluxSettings, get_settings, load_settings
from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.execution.engine import ExecutionEngine
from fluxcmd.store.memory import InMemoryStore
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolCall, ToolResult
from fluxcmd.tools.registry import tool_registry
from fluxcmd.tools.schema import export_tool_definitions
from fluxcmd.workflows.provider import StaticWorkflowProvider

# Registers the built-in tools
from fluxcmd.tools import catalog  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "CommandOrchestrator",
    "ExecutionEngine",
    "ToolExecutionContext",
    "InMemoryStore",
    "StaticWorkflowProvider",
    "ErrorKind",
    "InverseCommand",
    "ToolCall",
    "ToolResult",
    "tool_registry",
    "export_tool_definitions",
    "FluxSettings",
    "get_settings",
    "load_settings",
    "configure_logging",
    "FluxError",
    "StoreError",
]
