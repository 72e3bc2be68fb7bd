"""Batch execution and undo on top of the execution engine.

Every mutating call that goes through the orchestrator is appended to the
session's action log. Undo only ever looks at the newest entry and reverses
it by running the ``InverseCommand`` the tool returned.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import Field

from fluxcmd.batch.action_log import ActionLog, JsonFileActionLogBackend
from fluxcmd.core.errors.errors import StoreError
from fluxcmd.core.models import StrictBaseModel
from fluxcmd.core.settings.settings import FluxSettings, get_settings
from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.execution.engine import ExecutionEngine
from fluxcmd.tools.models import ErrorKind, ToolCall, ToolResult

logger = logging.getLogger(__name__)

# Tools that drive the orchestrator themselves and so cannot run inside a batch
ORCHESTRATION_TOOLS = frozenset({"batch_operations", "undo_last_action"})

_NAME_KEYS = ("toolName", "tool_name", "tool", "function", "name")
_PARAM_KEYS = ("params", "parameters", "arguments", "args")


class BatchOperation(StrictBaseModel):
    """One step of a batch."""

    tool_name: str = Field(description="Tool to run")
    params: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the tool")


def _parse_one(index: int, item: Any) -> BatchOperation:
    if not isinstance(item, Mapping):
        raise ValueError(f"operation {index} must be an object with a tool name and params")
    name = next((item[k] for k in _NAME_KEYS if k in item), None)
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"operation {index} has no tool name (use 'toolName')")
    name = name.strip()
    if name in ORCHESTRATION_TOOLS:
        raise ValueError(f"operation {index} uses {name}, which cannot run inside a batch")
    params = next((item[k] for k in _PARAM_KEYS if k in item), {})
    if isinstance(params, str):
        params = json.loads(params) if params.strip() else {}
    if not isinstance(params, Mapping):
        raise ValueError(f"operation {index} params must be an object")
    return BatchOperation(tool_name=name, params=dict(params))


def parse_operations(raw: Union[str, Sequence[Any]]) -> List[BatchOperation]:
    """Parse a JSON list (or an already decoded list) of operations.

    Each item is ``{"toolName": ..., "params": {...}}``; ``tool``/``function``
    and ``arguments`` are accepted as synonyms.

    Raises:
        ValueError: If the payload is not a list of well-formed operations
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"operations are not valid JSON ({e.msg} at position {e.pos})") from e
    if isinstance(raw, Mapping) and "operations" in raw:
        raw = raw["operations"]
    if not isinstance(raw, (list, tuple)):
        raise ValueError("operations must be a JSON list")
    try:
        return [_parse_one(n, item) for n, item in enumerate(raw, start=1)]
    except json.JSONDecodeError as e:
        raise ValueError(f"params are not valid JSON ({e.msg})") from e


def _format_params(params: Mapping[str, Any]) -> str:
    return ", ".join(f"{k}={v!r}" for k, v in params.items())


class CommandOrchestrator:
    """Runs single calls, previews and runs batches, and undoes the last action.

    Args:
        engine: Execution engine (defaults to one over the global catalog)
        action_log: Action log (defaults to one built from settings)
        settings: Settings for batch limits and the action log
    """

    def __init__(
        self,
        engine: Optional[ExecutionEngine] = None,
        action_log: Optional[ActionLog] = None,
        settings: Optional[FluxSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.engine = engine or ExecutionEngine(settings=self.settings)
        if action_log is None:
            backend = (
                JsonFileActionLogBackend(self.settings.action_log_path) if self.settings.action_log_path else None
            )
            action_log = ActionLog(backend, cap=self.settings.action_log_cap)
        self.action_log = action_log

    def bind(self, context: ToolExecutionContext) -> ToolExecutionContext:
        """Context whose tools can reach this orchestrator."""
        if context.orchestrator is self:
            return context
        return context.with_orchestrator(self)

    def _is_mutating(self, name: str) -> bool:
        registry = self.engine.registry
        return registry.contains(name) and registry.get_metadata(name).mutating

    async def _log(self, call: ToolCall, result: ToolResult, context: ToolExecutionContext) -> None:
        try:
            arguments = call.decoded_arguments()
        except ValueError:
            arguments = {"raw": call.arguments}
        try:
            await self.action_log.record(context.session_id, call.function, arguments, result, context.now())
        except StoreError as e:
            # Best effort: a lost entry only means the action cannot be undone
            logger.warning(f"Could not record {call.function} in the action log: {e}")

    async def execute(self, call: ToolCall, context: ToolExecutionContext) -> ToolResult:
        """Execute one call, logging it when a mutating tool ran.

        Successful calls that changed nothing are not logged, so undo keeps
        pointing at the last real change.
        """
        result = await self.engine.execute(call, self.bind(context))
        if self._is_mutating(call.function) and result.changed:
            await self._log(call, result, context)
        return result

    async def run(
        self, function: str, arguments: Optional[Dict[str, Any]] = None, *, context: ToolExecutionContext
    ) -> ToolResult:
        return await self.execute(ToolCall(function=function, arguments=arguments or {}), context)

    def _check_size(self, operations: Sequence[BatchOperation]) -> Optional[ToolResult]:
        if not operations:
            return ToolResult.failure(ErrorKind.VALIDATION, "The batch contains no operations")
        limit = self.settings.batch_max_operations
        if len(operations) > limit:
            return ToolResult.failure(
                ErrorKind.VALIDATION,
                f"The batch has {len(operations)} operations; at most {limit} are allowed",
            )
        return None

    def propose(self, operations: Sequence[BatchOperation]) -> ToolResult:
        """Describe what a batch would do without running any of it."""
        rejection = self._check_size(operations)
        if rejection is not None:
            return rejection

        registry = self.engine.registry
        lines: List[str] = []
        preview: List[Dict[str, Any]] = []
        unknown: List[str] = []
        for index, op in enumerate(operations, start=1):
            known = registry.contains(op.tool_name)
            line = f"{index}. {op.tool_name}({_format_params(op.params)})"
            if not known:
                line += " [unknown tool]"
                unknown.append(op.tool_name)
            elif registry.get_metadata(op.tool_name).requires_confirmation:
                line += " [destructive]"
            lines.append(line)
            preview.append({"index": index, "toolName": op.tool_name, "params": op.params, "known": known})

        message = f"The batch will run {len(operations)} operation(s):\n" + "\n".join(lines)
        if unknown:
            message += f"\nUnknown tool(s) that will fail: {', '.join(sorted(set(unknown)))}"
        message += "\nCall again with confirm=true to run it."
        return ToolResult.ok(
            message,
            data={"requiresConfirmation": True, "operations": preview, "unknownTools": sorted(set(unknown))},
        )

    async def run_batch(self, operations: Sequence[BatchOperation], context: ToolExecutionContext) -> ToolResult:
        """Run operations one after another.

        A failed operation does not stop the batch. The batch succeeds only
        if every operation did.
        """
        rejection = self._check_size(operations)
        if rejection is not None:
            return rejection

        results: List[Dict[str, Any]] = []
        lines: List[str] = []
        first_error: Optional[ErrorKind] = None
        for index, op in enumerate(operations, start=1):
            result = await self.execute(ToolCall(function=op.tool_name, arguments=op.params), context)
            results.append({"index": index, "toolName": op.tool_name, **result.to_wire()})
            lines.append(f"{index}. {'ok' if result.success else 'failed'}: {result.message}")
            if not result.success and first_error is None:
                first_error = result.error_kind or ErrorKind.UNEXPECTED

        succeeded = sum(1 for r in results if r["success"])
        failed = len(results) - succeeded
        logger.info(f"Batch of {len(results)} finished: {succeeded} succeeded, {failed} failed")
        message = f"Batch finished: {succeeded} succeeded, {failed} failed.\n" + "\n".join(lines)
        data = {"succeeded": succeeded, "failed": failed, "results": results}
        if first_error is None:
            return ToolResult.ok(message, data=data)
        return ToolResult.failure(first_error, message, data=data)

    async def undo(self, context: ToolExecutionContext) -> ToolResult:
        """Reverse the newest logged action of the session.

        Failed actions changed nothing and are dropped. Actions without an
        inverse are dropped and reported as not reversible. When the inverse
        itself fails the entry stays so the undo can be retried.
        """
        entry = await self.action_log.peek(context.session_id)
        if entry is None:
            return ToolResult.failure(ErrorKind.PRECONDITION, "Nothing to undo")

        if not entry.success:
            await self.action_log.pop(context.session_id)
            return ToolResult.ok(
                f"The last action ({entry.action_type}) had failed, so there was nothing to reverse.",
                data={"undone": entry.model_dump(mode="json")},
            )

        if entry.inverse is None:
            await self.action_log.pop(context.session_id)
            return ToolResult.failure(
                ErrorKind.PRECONDITION,
                f"The last action ({entry.action_type}) could not be fully reversed: it has no undo.",
                data={"undone": entry.model_dump(mode="json")},
            )

        inverse = entry.inverse
        # Runs straight through the engine so the undo itself is not logged
        result = await self.engine.execute(
            ToolCall(function=inverse.tool_name, arguments=inverse.arguments), self.bind(context)
        )
        if not result.success:
            logger.warning(f"Undo of {entry.action_type} failed: {result.message}")
            return ToolResult.failure(
                result.error_kind or ErrorKind.UNEXPECTED,
                f"Could not undo {entry.action_type}: {result.message}",
                alternatives=result.error.alternatives if result.error else None,
            )

        await self.action_log.pop(context.session_id)
        logger.info(f"Undid {entry.action_type} in session '{context.session_id}'")
        return ToolResult.ok(
            f"Undid {entry.action_type}: {inverse.description}.",
            data={"undone": entry.model_dump(mode="json"), "result": result.to_wire()},
        )
