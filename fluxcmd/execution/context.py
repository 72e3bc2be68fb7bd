"""Execution context handed to every tool body."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from fluxcmd.store.base import Store
from fluxcmd.tools.models import ErrorKind, ToolResult
from fluxcmd.workflows.models import WorkflowConfig
from fluxcmd.workflows.provider import StaticWorkflowProvider, WorkflowProvider

if TYPE_CHECKING:
    from fluxcmd.batch.orchestrator import CommandOrchestrator

logger = logging.getLogger(__name__)


class ToolExecutionContext:
    """State a tool body may touch, passed in explicitly.

    Plain class rather than a model because the store and provider are
    protocol instances.

    Attributes:
        store: Application state API
        workflows: Workflow schema provider
        user_id: Identity that ``me``/``my``/``myself`` resolve to
        session_id: Action log partition
        clock: Source of "now", injectable for tests
        orchestrator: Set when calls are driven by a ``CommandOrchestrator``;
            required by the batch and undo tools
    """

    def __init__(
        self,
        store: Store,
        workflows: Optional[WorkflowProvider] = None,
        user_id: Optional[str] = None,
        session_id: str = "default",
        clock: Callable[[], datetime] = datetime.now,
        orchestrator: Optional["CommandOrchestrator"] = None,
    ):
        self.store = store
        self.workflows = workflows or StaticWorkflowProvider()
        self.user_id = user_id
        self.session_id = session_id
        self.clock = clock
        self.orchestrator = orchestrator

    def now(self) -> datetime:
        return self.clock()

    async def active_workflow(self) -> WorkflowConfig:
        """Workflow selected in the workspace."""
        workspace = await self.store.get_workspace()
        return self.workflows.get_workflow(workspace.workflow_mode)

    async def require_authenticated(self) -> Optional[ToolResult]:
        """Return a failure when the store reports an expired session, else None."""
        if await self.store.is_session_valid():
            return None
        logger.warning(f"Session '{self.session_id}' is no longer valid")
        return ToolResult.failure(
            ErrorKind.PRECONDITION,
            "Your session has expired. Sign in again, then retry the command.",
        )

    def with_orchestrator(self, orchestrator: "CommandOrchestrator") -> "ToolExecutionContext":
        """Copy of this context bound to ``orchestrator``."""
        return ToolExecutionContext(
            store=self.store,
            workflows=self.workflows,
            user_id=self.user_id,
            session_id=self.session_id,
            clock=self.clock,
            orchestrator=orchestrator,
        )
