"""Tool decorator for automatic registration."""

import inspect
import logging
from typing import Callable, Optional

from fluxcmd.core.errors.errors import ToolDefinitionError
from fluxcmd.tools.models import ToolMetadata, ToolParameters
from fluxcmd.tools.registry import ToolBody, ToolRegistry

logger = logging.getLogger(__name__)


def _get_tool_registry() -> ToolRegistry:
    from fluxcmd.tools.registry import tool_registry

    return tool_registry


def tool(
    *,
    parameter_type: type,
    name: Optional[str] = None,
    category: str = "general",
    description: Optional[str] = None,
    mutating: bool = False,
    requires_confirmation: bool = False,
    max_execution_time: Optional[float] = None,
    registry: Optional[ToolRegistry] = None,
) -> Callable[[ToolBody], ToolBody]:
    """Register an async function as a tool.

    The body is called as ``await body(params, context)`` with a validated
    ``parameter_type`` instance and the execution context.

    Args:
        parameter_type: ToolParameters subclass describing the arguments
        name: Tool name (defaults to the function name)
        category: Tool category for organization
        description: Description (defaults to the first docstring line)
        mutating: Whether the tool changes store state
        requires_confirmation: Whether the tool needs explicit confirmation
        max_execution_time: Timeout in seconds, overriding the engine default
        registry: Registry to add to (defaults to the process-wide one)

    Example:
        class GetTaskParameters(ToolParameters):
            task: str = Field(description="Task title or id")

        @tool(parameter_type=GetTaskParameters, category="tasks")
        async def get_task_details(params, context):
            \"\"\"Show one task.\"\"\"
            ...

    Raises:
        ToolDefinitionError: If the parameter type or body is malformed
        DuplicateToolError: If the name is already registered
    """

    def decorator(func: ToolBody) -> ToolBody:
        tool_name = name or func.__name__

        if not isinstance(parameter_type, type) or not issubclass(parameter_type, ToolParameters):
            raise ToolDefinitionError(
                f"Tool '{tool_name}' parameter_type must be a ToolParameters subclass, got {parameter_type}",
                tool_name,
            )
        if not inspect.iscoroutinefunction(func):
            raise ToolDefinitionError(f"Tool '{tool_name}' body must be an async function", tool_name)

        tool_description = description
        if not tool_description and func.__doc__:
            tool_description = func.__doc__.strip().split("\n")[0]
        if not tool_description:
            tool_description = f"{tool_name} tool"

        metadata = ToolMetadata(
            name=tool_name,
            description=tool_description,
            category=category,
            parameter_type=parameter_type,
            mutating=mutating,
            requires_confirmation=requires_confirmation,
            max_execution_time=max_execution_time,
        )

        target = registry if registry is not None else _get_tool_registry()
        target.add(func, metadata)

        func.__tool_metadata__ = metadata  # type: ignore[attr-defined]
        logger.debug(f"Registered tool '{tool_name}' via decorator (category: {category})")
        return func

    return decorator
