"""Workspace tools: navigation, appearance and workflow mode."""

import logging
from typing import Dict, List, Optional

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.normalizers.aliases import VALID_PAGES, compact_key, is_valid_page, normalize_page, normalize_theme
from fluxcmd.tools.catalog.common import invalid
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult
from fluxcmd.workflows.provider import map_status_to_workflow

logger = logging.getLogger(__name__)

# Compact spellings of workflow modes
WORKFLOW_ALIASES: Dict[str, str] = {
    "agile": "agile",
    "scrum": "agile",
    "kanban": "agile",
    "software": "agile",
    "development": "agile",
    "dev": "agile",
    "ccaas": "ccaas",
    "contactcenter": "ccaas",
    "contactcentre": "ccaas",
    "callcenter": "ccaas",
    "callcentre": "ccaas",
    "customerservice": "ccaas",
    "support": "ccaas",
    "itsm": "itsm",
    "itil": "itsm",
    "servicedesk": "itsm",
    "servicemanagement": "itsm",
    "itservice": "itsm",
    "helpdesk": "itsm",
}


def normalize_workflow_mode(raw: str) -> str:
    """Map a workflow name or alias to its mode id; unknown input is returned compacted."""
    key = compact_key(raw)
    return WORKFLOW_ALIASES.get(key, key)


class NavigateToPageParameters(ToolParameters):
    page: str = Field(description=f"Page to open: {', '.join(VALID_PAGES)} (aliases such as 'kanban' or 'mail' work)")


@tool(parameter_type=NavigateToPageParameters, category="workspace", mutating=True)
async def navigate_to_page(params: NavigateToPageParameters, context: ToolExecutionContext) -> ToolResult:
    """Open a page of the application."""
    page = normalize_page(params.page)
    if not is_valid_page(page):
        return invalid(
            f"Unknown page '{params.page}'. Valid pages: {', '.join(VALID_PAGES)}",
            alternatives=list(VALID_PAGES),
        )
    workspace = await context.store.get_workspace()
    if workspace.current_page == page:
        return ToolResult.unchanged(f"Already on the {page} page.", data={"page": page})

    await context.store.update_workspace({"current_page": page})
    return ToolResult.ok(
        f"Opened the {page} page.",
        data={"page": page, "previousPage": workspace.current_page},
        inverse=InverseCommand(
            tool_name="navigate_to_page",
            arguments={"page": workspace.current_page},
            description=f"Go back to the {workspace.current_page} page",
        ),
    )


class SetThemeParameters(ToolParameters):
    theme: str = Field(description="light, dark or system (aliases such as 'night mode' work)")


@tool(parameter_type=SetThemeParameters, category="workspace", mutating=True)
async def set_theme(params: SetThemeParameters, context: ToolExecutionContext) -> ToolResult:
    """Switch between light, dark and system themes."""
    theme = normalize_theme(params.theme)
    workspace = await context.store.get_workspace()
    if workspace.theme == theme:
        return ToolResult.unchanged(f"The theme is already {theme}.", data={"theme": theme})

    await context.store.update_workspace({"theme": theme})
    return ToolResult.ok(
        f"Theme set to {theme}.",
        data={"theme": theme, "previousTheme": workspace.theme},
        inverse=InverseCommand(
            tool_name="set_theme",
            arguments={"theme": workspace.theme},
            description=f"Switch the theme back to {workspace.theme}",
        ),
    )


class ToggleSidebarParameters(ToolParameters):
    collapsed: Optional[bool] = Field(
        default=None, description="True to collapse, False to expand; omit to toggle"
    )


@tool(parameter_type=ToggleSidebarParameters, category="workspace", mutating=True)
async def toggle_sidebar(params: ToggleSidebarParameters, context: ToolExecutionContext) -> ToolResult:
    """Collapse or expand the sidebar."""
    workspace = await context.store.get_workspace()
    collapsed = not workspace.sidebar_collapsed if params.collapsed is None else params.collapsed
    state = "collapsed" if collapsed else "expanded"
    if collapsed == workspace.sidebar_collapsed:
        return ToolResult.unchanged(f"The sidebar is already {state}.", data={"collapsed": collapsed})

    await context.store.update_workspace({"sidebar_collapsed": collapsed})
    return ToolResult.ok(
        f"Sidebar {state}.",
        data={"collapsed": collapsed},
        inverse=InverseCommand(
            tool_name="toggle_sidebar",
            arguments={"collapsed": workspace.sidebar_collapsed},
            description="Restore the sidebar",
        ),
    )


class ChangeWorkflowParameters(ToolParameters):
    workflow: str = Field(description="Workflow mode: agile, ccaas or itsm (aliases such as 'scrum' or 'service desk')")


@tool(parameter_type=ChangeWorkflowParameters, category="workspace", mutating=True)
async def change_workflow(params: ChangeWorkflowParameters, context: ToolExecutionContext) -> ToolResult:
    """Switch the board to another workflow, moving tasks into matching columns."""
    mode = normalize_workflow_mode(params.workflow)
    modes = context.workflows.list_modes()
    if mode not in modes:
        return invalid(
            f"Unknown workflow '{params.workflow}'. Available workflows: {', '.join(modes)}",
            alternatives=modes,
        )
    workspace = await context.store.get_workspace()
    target = context.workflows.get_workflow(mode)
    if workspace.workflow_mode == mode:
        return ToolResult.unchanged(f"The {target.name} workflow is already active.", data={"workflow": mode})

    # Tasks whose column does not exist in the target move by category
    remapped: List[Dict[str, str]] = []
    for task in await context.store.list_tasks(include_archived=True):
        status = map_status_to_workflow(task.status, target)
        if status != task.status:
            await context.store.update_task(task.id, {"status": status})
            remapped.append({"taskId": task.id, "from": task.status, "to": status})

    await context.store.update_workspace({"workflow_mode": mode})
    logger.info(f"Workflow changed from {workspace.workflow_mode} to {mode}, {len(remapped)} task(s) remapped")

    message = f"Switched to the {target.name} workflow. Columns: {target.describe_columns()}."
    if remapped:
        message += f" Moved {len(remapped)} task(s) into matching columns."
        inverse = None
    else:
        inverse = InverseCommand(
            tool_name="change_workflow",
            arguments={"workflow": workspace.workflow_mode},
            description=f"Switch back to the {workspace.workflow_mode} workflow",
        )
    return ToolResult.ok(
        message,
        data={"workflow": mode, "previousWorkflow": workspace.workflow_mode, "remapped": remapped},
        inverse=inverse,
    )


class GetWorkflowColumnsParameters(ToolParameters):
    workflow: Optional[str] = Field(default=None, description="Workflow mode (defaults to the active workflow)")


@tool(parameter_type=GetWorkflowColumnsParameters, category="workspace")
async def get_workflow_columns(params: GetWorkflowColumnsParameters, context: ToolExecutionContext) -> ToolResult:
    """List the columns of a workflow."""
    if params.workflow:
        mode = normalize_workflow_mode(params.workflow)
        if mode not in context.workflows.list_modes():
            return ToolResult.failure(
                ErrorKind.NOT_FOUND,
                f"Unknown workflow '{params.workflow}'. Available workflows: {', '.join(context.workflows.list_modes())}",
                alternatives=context.workflows.list_modes(),
            )
        workflow = context.workflows.get_workflow(mode)
    else:
        workflow = await context.active_workflow()
    return ToolResult.ok(
        f"{workflow.name} columns: {workflow.describe_columns()}",
        data={"workflow": workflow.id, "columns": [c.model_dump() for c in workflow.columns]},
    )
