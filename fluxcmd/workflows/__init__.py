"""Workflow schemas: the valid status columns per workflow mode."""

from fluxcmd.workflows.models import ColumnCategory, WorkflowColumn, WorkflowConfig
from fluxcmd.workflows.provider import (
    AGILE_WORKFLOW,
    BUILTIN_WORKFLOWS,
    CCAAS_WORKFLOW,
    DEFAULT_WORKFLOW_MODE,
    ITSM_WORKFLOW,
    StaticWorkflowProvider,
    WorkflowProvider,
    map_status_to_workflow,
)

__all__ = [
    "ColumnCategory",
    "WorkflowColumn",
    "WorkflowConfig",
    "WorkflowProvider",
    "StaticWorkflowProvider",
    "AGILE_WORKFLOW",
    "CCAAS_WORKFLOW",
    "ITSM_WORKFLOW",
    "BUILTIN_WORKFLOWS",
    "DEFAULT_WORKFLOW_MODE",
    "map_status_to_workflow",
]
