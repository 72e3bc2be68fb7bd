"""Tools that drive the command orchestrator: batches and undo."""

from pydantic import Field

from fluxcmd.batch.orchestrator import parse_operations
from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.tools.catalog.common import invalid
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, ToolParameters, ToolResult

NO_ORCHESTRATOR = "This command needs the command orchestrator; run it through CommandOrchestrator.execute"


class BatchOperationsParameters(ToolParameters):
    operations: str = Field(
        description='JSON list of operations, e.g. [{"toolName": "create_task", "params": {"title": "Fix login"}}]'
    )
    confirm: bool = Field(default=False, description="Run the operations; without it only a preview is returned")


@tool(parameter_type=BatchOperationsParameters, category="orchestration", max_execution_time=300.0)
async def batch_operations(params: BatchOperationsParameters, context: ToolExecutionContext) -> ToolResult:
    """Run several tool calls in order, after previewing them first."""
    if context.orchestrator is None:
        return ToolResult.failure(ErrorKind.PRECONDITION, NO_ORCHESTRATOR)
    try:
        operations = parse_operations(params.operations)
    except ValueError as e:
        return invalid(f"Invalid operations: {e}")
    if not params.confirm:
        return context.orchestrator.propose(operations)
    return await context.orchestrator.run_batch(operations, context)


class UndoLastActionParameters(ToolParameters):
    pass


@tool(parameter_type=UndoLastActionParameters, category="orchestration")
async def undo_last_action(params: UndoLastActionParameters, context: ToolExecutionContext) -> ToolResult:
    """Undo the most recent change made in this session."""
    if context.orchestrator is None:
        return ToolResult.failure(ErrorKind.PRECONDITION, NO_ORCHESTRATOR)
    return await context.orchestrator.undo(context)
