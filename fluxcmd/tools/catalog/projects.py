"""Project tools."""

from typing import Any, Dict, Optional, Union

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.store.models import Project
from fluxcmd.tools.catalog.common import bullet_list, dump, invalid, lookup_project, record_activity
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult


class CreateProjectParameters(ToolParameters):
    name: str = Field(description="Project name")
    description: str = Field(default="", description="What the project is about")


@tool(parameter_type=CreateProjectParameters, category="projects", mutating=True)
async def create_project(params: CreateProjectParameters, context: ToolExecutionContext) -> ToolResult:
    """Create a new project."""
    name = params.name.strip()
    if not name:
        return invalid("A project name is required")
    existing = await context.store.list_projects()
    if any(p.name.lower() == name.lower() for p in existing):
        return ToolResult.failure(ErrorKind.PRECONDITION, f"A project named '{name}' already exists")

    project = await context.store.create_project(name, description=params.description, owner_id=context.user_id)
    await record_activity(context, "project", project.id, "created")
    return ToolResult.ok(f"Created project '{project.name}' ({project.id}).", data=dump(project))


class ListProjectsParameters(ToolParameters):
    include_archived: bool = Field(default=False, description="Also list archived projects")


@tool(parameter_type=ListProjectsParameters, category="projects")
async def list_projects(params: ListProjectsParameters, context: ToolExecutionContext) -> ToolResult:
    """List all projects."""
    projects = [p for p in await context.store.list_projects() if params.include_archived or not p.archived]
    workspace = await context.store.get_workspace()
    lines = [
        f"{p.name} ({p.id})"
        + (" [current]" if p.id == workspace.current_project_id else "")
        + (" [archived]" if p.archived else "")
        for p in projects
    ]
    return ToolResult.ok(
        f"{len(projects)} project(s):\n{bullet_list(lines, 'No projects yet.')}",
        data={"projects": [dump(p) for p in projects], "currentProjectId": workspace.current_project_id},
    )


class SwitchProjectParameters(ToolParameters):
    project: str = Field(description="Project name or id")


@tool(parameter_type=SwitchProjectParameters, category="projects", mutating=True)
async def switch_project(params: SwitchProjectParameters, context: ToolExecutionContext) -> ToolResult:
    """Make another project the current one."""
    match = await lookup_project(context, params.project)
    if isinstance(match, ToolResult):
        return match
    project = match.entity
    if project.archived:
        return ToolResult.failure(ErrorKind.PRECONDITION, f"Project '{project.name}' is archived; unarchive it first")
    workspace = await context.store.get_workspace()
    if workspace.current_project_id == project.id:
        return ToolResult.unchanged(f"'{project.name}' is already the current project.", data=dump(project))

    await context.store.update_workspace({"current_project_id": project.id})
    inverse = None
    if workspace.current_project_id:
        inverse = InverseCommand(
            tool_name="switch_project",
            arguments={"project": workspace.current_project_id},
            description="Switch back to the previous project",
        )
    return ToolResult.ok(f"Switched to project '{project.name}'.", data=dump(project), inverse=inverse)


async def _project_or_current(context: ToolExecutionContext, fragment: Optional[str]) -> Union[Project, ToolResult]:
    """Resolve the named project, or the current one when no name is given."""
    if fragment:
        match = await lookup_project(context, fragment)
        return match if isinstance(match, ToolResult) else match.entity
    workspace = await context.store.get_workspace()
    current = await context.store.get_project(workspace.current_project_id) if workspace.current_project_id else None
    if current is None:
        return invalid("No project is selected; name the project")
    return current


class UpdateProjectParameters(ToolParameters):
    project: Optional[str] = Field(default=None, description="Project name or id (defaults to the current project)")
    new_name: Optional[str] = Field(default=None, description="New project name")
    description: Optional[str] = Field(default=None, description="New description")
    color: Optional[str] = Field(default=None, description="New color such as '#3b82f6'")


@tool(parameter_type=UpdateProjectParameters, category="projects", mutating=True)
async def update_project(params: UpdateProjectParameters, context: ToolExecutionContext) -> ToolResult:
    """Rename a project or change its description or color."""
    project = await _project_or_current(context, params.project)
    if isinstance(project, ToolResult):
        return project

    changes: Dict[str, Any] = {}
    previous: Dict[str, Any] = {}
    if params.new_name is not None:
        name = params.new_name.strip()
        if not name:
            return invalid("A project name cannot be empty")
        projects = await context.store.list_projects()
        if any(p.name.lower() == name.lower() and p.id != project.id for p in projects):
            return ToolResult.failure(ErrorKind.PRECONDITION, f"A project named '{name}' already exists")
        changes["name"] = name
        previous["new_name"] = project.name
    if params.description is not None:
        changes["description"] = params.description
        previous["description"] = project.description
    if params.color is not None:
        changes["color"] = params.color.strip()
        previous["color"] = project.color

    if not changes:
        return invalid("Nothing to update: provide at least one of new_name, description or color")
    if all(getattr(project, field) == value for field, value in changes.items()):
        return ToolResult.unchanged(f"Project '{project.name}' already has those details.", data=dump(project))

    updated = await context.store.update_project(project.id, changes)
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Project '{project.name}' no longer exists")
    await record_activity(context, "project", project.id, "updated", fields=sorted(changes))

    fields = ", ".join(sorted(changes))
    return ToolResult.ok(
        f"Updated {fields} of project '{updated.name}'.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="update_project",
            arguments={"project": project.id, **previous},
            description=f"Restore the previous {fields} of project '{project.name}'",
        ),
    )


class ArchiveProjectParameters(ToolParameters):
    project: Optional[str] = Field(default=None, description="Project name or id (defaults to the current project)")
    archived: bool = Field(default=True, description="True to archive, False to restore")


@tool(parameter_type=ArchiveProjectParameters, category="projects", mutating=True, requires_confirmation=True)
async def archive_project(params: ArchiveProjectParameters, context: ToolExecutionContext) -> ToolResult:
    """Archive a project, or restore an archived one.

    Archiving the current project deselects it. Restoring a project while no
    project is selected selects it, so undoing an archive puts things back.
    """
    project = await _project_or_current(context, params.project)
    if isinstance(project, ToolResult):
        return project
    state = "archived" if params.archived else "active"
    if project.archived == params.archived:
        return ToolResult.unchanged(f"Project '{project.name}' is already {state}.", data=dump(project))

    updated = await context.store.update_project(project.id, {"archived": params.archived})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Project '{project.name}' no longer exists")
    workspace = await context.store.get_workspace()
    message = f"{'Archived' if params.archived else 'Restored'} project '{project.name}'."
    if params.archived and workspace.current_project_id == project.id:
        await context.store.update_workspace({"current_project_id": None})
        message += " No project is selected now."
    elif not params.archived and workspace.current_project_id is None:
        await context.store.update_workspace({"current_project_id": project.id})
        message += " It is now the current project."
    await record_activity(context, "project", project.id, "archived" if params.archived else "restored")

    return ToolResult.ok(
        message,
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="archive_project",
            arguments={"project": project.id, "archived": project.archived},
            description=f"{'Archive' if project.archived else 'Restore'} project '{project.name}' again",
        ),
    )
