"""Tool call execution: the engine and the context it passes to tool bodies."""

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.execution.engine import ExecutionEngine, validate_parameters, validation_failure

__all__ = [
    "ExecutionEngine",
    "ToolExecutionContext",
    "validate_parameters",
    "validation_failure",
]
