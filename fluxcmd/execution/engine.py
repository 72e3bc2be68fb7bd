"""Execution engine for tool calls.

The engine is the single boundary where tool faults are caught: whatever a
body raises comes back as a failed ``ToolResult``. It keeps no state between
calls.
"""

import asyncio
import difflib
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from fluxcmd.core.errors.errors import ConfigurationError, StoreError
from fluxcmd.core.settings.settings import FluxSettings, get_settings
from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.tools.models import ErrorKind, ToolCall, ToolParameters, ToolResult
from fluxcmd.tools.registry import ToolRegistry, ToolRegistryEntry, tool_registry

logger = logging.getLogger(__name__)

MAX_TOOL_SUGGESTIONS = 3


def _format_location(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "arguments"


def validation_failure(tool_name: str, error: ValidationError) -> ToolResult:
    """Turn a parameter ``ValidationError`` into one actionable message."""
    missing: List[str] = []
    unknown: List[str] = []
    invalid: List[str] = []
    for err in error.errors():
        location = _format_location(err["loc"])
        if err["type"] == "missing":
            missing.append(location)
        elif err["type"] == "extra_forbidden":
            unknown.append(location)
        else:
            invalid.append(f"'{location}': {err['msg']}")

    parts = []
    if missing:
        parts.append(f"missing required parameter(s): {', '.join(missing)}")
    if unknown:
        parts.append(f"unknown parameter(s): {', '.join(unknown)}")
    if invalid:
        parts.append(f"invalid value for {'; '.join(invalid)}")
    return ToolResult.failure(
        ErrorKind.VALIDATION,
        f"Invalid arguments for {tool_name}: {'; '.join(parts)}",
        data={"missing": missing, "unknown": unknown},
    )


def validate_parameters(
    tool_name: str, parameter_type: type[ToolParameters], arguments: Dict[str, Any]
) -> Union[ToolParameters, ToolResult]:
    """Validate raw arguments into the tool's parameter model.

    Returns:
        The parameter instance, or a validation failure result
    """
    try:
        return parameter_type.model_validate(arguments)
    except ValidationError as e:
        return validation_failure(tool_name, e)


class ExecutionEngine:
    """Looks up, validates and runs tool calls.

    Args:
        registry: Tool registry (defaults to the process-wide catalog)
        settings: Settings providing the default timeout
    """

    def __init__(self, registry: Optional[ToolRegistry] = None, settings: Optional[FluxSettings] = None):
        self._registry = registry if registry is not None else tool_registry
        self._settings = settings
        logger.debug("Execution engine initialized")

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def _default_timeout(self) -> float:
        settings = self._settings or get_settings()
        return settings.tool_timeout_seconds

    def _unknown_tool(self, name: str) -> ToolResult:
        suggestions = difflib.get_close_matches(name, self._registry.list(), n=MAX_TOOL_SUGGESTIONS, cutoff=0.5)
        message = f"Unknown tool: {name}"
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"
        return ToolResult.failure(ErrorKind.UNKNOWN_TOOL, message, alternatives=suggestions)

    @staticmethod
    async def _invoke(entry: ToolRegistryEntry, params: ToolParameters, context: ToolExecutionContext) -> ToolResult:
        if entry.metadata.mutating:
            rejection = await context.require_authenticated()
            if rejection is not None:
                return rejection
        return await entry.body(params, context)

    async def execute(self, call: ToolCall, context: ToolExecutionContext) -> ToolResult:
        """Execute one tool call.

        Never raises for tool-level problems: unknown tools, invalid
        arguments, timeouts and exceptions from the body all come back as
        failed results.
        """
        name = call.function
        start_time = datetime.now()

        if not self._registry.contains(name):
            logger.warning(f"Unknown tool requested: {name} ({call.id})")
            return self._unknown_tool(name)

        entry = self._registry.get(name)
        metadata = entry.metadata

        try:
            arguments = call.decoded_arguments()
        except ValueError as e:
            return ToolResult.failure(ErrorKind.VALIDATION, f"Invalid arguments for {name}: {e}")

        validated = validate_parameters(name, metadata.parameter_type, arguments)
        if isinstance(validated, ToolResult):
            logger.info(f"Rejected {name} ({call.id}): {validated.message}")
            return validated

        try:
            timeout = metadata.max_execution_time or self._default_timeout()
        except ConfigurationError as e:
            logger.error(f"Cannot run {name}: {e}")
            return ToolResult.failure(ErrorKind.UNEXPECTED, f"Error executing {name}: {e}")
        logger.debug(f"Executing tool: {name} ({call.id})")

        try:
            result = await asyncio.wait_for(self._invoke(entry, validated, context), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Tool {name} timed out after {timeout}s")
            return ToolResult.failure(
                ErrorKind.TIMEOUT, f"Error executing {name}: timed out after {timeout:g} seconds"
            )
        except StoreError as e:
            logger.error(f"Store failure in {name}: {e}", exc_info=True)
            return ToolResult.failure(ErrorKind.UPSTREAM, f"Error executing {name}: {e}")
        except Exception as e:
            logger.error(f"Tool {name} raised {type(e).__name__}: {e}", exc_info=True)
            return ToolResult.failure(ErrorKind.UNEXPECTED, f"Error executing {name}: {e}")

        if not isinstance(result, ToolResult):
            logger.error(f"Tool {name} returned {type(result).__name__} instead of ToolResult")
            return ToolResult.failure(
                ErrorKind.UNEXPECTED,
                f"Error executing {name}: tool returned {type(result).__name__} instead of a result",
            )

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        logger.debug(f"Tool {name} finished in {elapsed_ms:.1f}ms (success={result.success})")
        return result

    async def run(
        self, function: str, arguments: Optional[Dict[str, Any]] = None, *, context: ToolExecutionContext
    ) -> ToolResult:
        """Shorthand for ``execute(ToolCall(function=..., arguments=...), context)``."""
        return await self.execute(ToolCall(function=function, arguments=arguments or {}), context)
