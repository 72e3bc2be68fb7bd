"""Workflow schema provider.

The orchestration core consumes workflows through ``WorkflowProvider``. The
built-in ``StaticWorkflowProvider`` serves the three standard workflows:
agile software delivery, contact center (CCaaS) and IT service management.
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable

from fluxcmd.workflows.models import WorkflowColumn, WorkflowConfig

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_MODE = "agile"


@runtime_checkable
class WorkflowProvider(Protocol):
    """Source of workflow schemas, keyed by workflow mode."""

    def get_workflow(self, mode: str) -> WorkflowConfig:
        """Return the workflow for ``mode``."""
        ...

    def list_modes(self) -> List[str]:
        """Return the known workflow modes."""
        ...


def _columns(*specs: tuple) -> List[WorkflowColumn]:
    return [WorkflowColumn(id=i, title=t, category=c) for i, t, c in specs]


AGILE_WORKFLOW = WorkflowConfig(
    id="agile",
    name="Agile Development",
    description="Scrum/Kanban workflow for software teams",
    columns=_columns(
        ("backlog", "Backlog", "backlog"),
        ("ready", "Ready", "backlog"),
        ("todo", "Sprint Backlog", "active"),
        ("in-progress", "In Progress", "active"),
        ("code-review", "Code Review", "review"),
        ("testing", "QA Testing", "review"),
        ("done", "Done", "done"),
    ),
)

CCAAS_WORKFLOW = WorkflowConfig(
    id="ccaas",
    name="Contact Center",
    description="Customer service ticket management",
    columns=_columns(
        ("new", "New", "backlog"),
        ("queued", "Queued", "backlog"),
        ("assigned", "Assigned", "active"),
        ("in-progress", "In Progress", "active"),
        ("pending-customer", "Pending Customer", "review"),
        ("escalated", "Escalated", "review"),
        ("resolved", "Resolved", "done"),
        ("closed", "Closed", "done"),
    ),
)

ITSM_WORKFLOW = WorkflowConfig(
    id="itsm",
    name="IT Service Management",
    description="ITIL-aligned incident and change management",
    columns=_columns(
        ("new", "New", "backlog"),
        ("triaged", "Triaged", "backlog"),
        ("assigned", "Assigned", "active"),
        ("investigating", "Investigating", "active"),
        ("pending-vendor", "Pending Vendor", "review"),
        ("pending-approval", "Pending Approval", "review"),
        ("implementing", "Implementing", "active"),
        ("resolved", "Resolved", "done"),
        ("closed", "Closed", "done"),
    ),
)

BUILTIN_WORKFLOWS: Dict[str, WorkflowConfig] = {
    AGILE_WORKFLOW.id: AGILE_WORKFLOW,
    CCAAS_WORKFLOW.id: CCAAS_WORKFLOW,
    ITSM_WORKFLOW.id: ITSM_WORKFLOW,
}


class StaticWorkflowProvider:
    """Serves a fixed set of workflows; unknown modes fall back to the default."""

    def __init__(
        self,
        workflows: Optional[Iterable[WorkflowConfig]] = None,
        default_mode: str = DEFAULT_WORKFLOW_MODE,
    ):
        source = list(workflows) if workflows is not None else list(BUILTIN_WORKFLOWS.values())
        self._workflows: Dict[str, WorkflowConfig] = {w.id: w for w in source}
        if default_mode not in self._workflows:
            raise ValueError(f"Default workflow '{default_mode}' is not one of {sorted(self._workflows)}")
        self._default_mode = default_mode

    def get_workflow(self, mode: str) -> WorkflowConfig:
        key = (mode or "").strip().lower()
        workflow = self._workflows.get(key)
        if workflow is None:
            logger.warning(f"Unknown workflow mode '{mode}', using '{self._default_mode}'")
            return self._workflows[self._default_mode]
        return workflow

    def list_modes(self) -> List[str]:
        return list(self._workflows)

    def has_mode(self, mode: str) -> bool:
        return (mode or "").strip().lower() in self._workflows


def map_status_to_workflow(status: str, workflow: WorkflowConfig) -> str:
    """Translate a status from another workflow into ``workflow``'s columns.

    Ids present in the target are kept. Otherwise common statuses are mapped
    by category, and anything else lands in the first column.
    """
    if workflow.get_column(status):
        return status

    first = workflow.initial_column().id
    if status in ("todo", "new", "backlog"):
        return first
    if status in ("in-progress", "investigating", "assigned"):
        active = workflow.columns_in("active")
        return active[0].id if active else first
    if status in ("done", "resolved", "closed"):
        done = workflow.columns_in("done")
        return done[0].id if done else workflow.columns[-1].id
    return first
