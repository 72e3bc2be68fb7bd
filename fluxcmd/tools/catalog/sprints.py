"""Sprint tools."""

from datetime import timedelta
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.store.models import Sprint, Task
from fluxcmd.tools.catalog.common import (
    bullet_list,
    check_date,
    dump,
    format_date,
    invalid,
    lookup_sprint,
    lookup_task,
    record_activity,
    task_label,
)
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult


def _sprint_line(sprint: Sprint) -> str:
    return f"{sprint.name} ({sprint.id}) [{sprint.status}] {sprint.start_date:%Y-%m-%d} to {sprint.end_date:%Y-%m-%d}"


class ListSprintsParameters(ToolParameters):
    status: Optional[Literal["planning", "active", "completed"]] = Field(
        default=None, description="Only sprints in this state"
    )


@tool(parameter_type=ListSprintsParameters, category="sprints")
async def list_sprints(params: ListSprintsParameters, context: ToolExecutionContext) -> ToolResult:
    """List sprints."""
    sprints = await context.store.list_sprints()
    if params.status:
        sprints = [s for s in sprints if s.status == params.status]
    return ToolResult.ok(
        f"{len(sprints)} sprint(s):\n" + bullet_list([_sprint_line(s) for s in sprints], "No sprints."),
        data={"sprints": [dump(s) for s in sprints]},
    )


class AddTaskToSprintParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    sprint: str = Field(default="current", description="Sprint name or id; 'current' means the active sprint")


@tool(parameter_type=AddTaskToSprintParameters, category="sprints", mutating=True)
async def add_task_to_sprint(params: AddTaskToSprintParameters, context: ToolExecutionContext) -> ToolResult:
    """Add a task to a sprint."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    sprint = await lookup_sprint(context, params.sprint)
    if isinstance(sprint, ToolResult):
        return sprint
    task, target = match.entity, sprint.entity
    if target.status == "completed":
        return ToolResult.failure(ErrorKind.PRECONDITION, f"Sprint '{target.name}' is already completed")
    if task.sprint_id == target.id:
        return ToolResult.unchanged(f"Task {task_label(task)} is already in sprint '{target.name}'.", data=dump(task))

    updated = await context.store.update_task(task.id, {"sprint_id": target.id})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Task {task_label(task)} no longer exists")
    await record_activity(context, "task", task.id, "added_to_sprint", sprint=target.id, previous=task.sprint_id)

    if task.sprint_id:
        inverse = InverseCommand(
            tool_name="add_task_to_sprint",
            arguments={"task": task.id, "sprint": task.sprint_id},
            description=f"Move task {task_label(task)} back to its previous sprint",
        )
    else:
        inverse = InverseCommand(
            tool_name="remove_task_from_sprint",
            arguments={"task": task.id},
            description=f"Take task {task_label(task)} out of sprint '{target.name}'",
        )
    return ToolResult.ok(f"Added task {task_label(task)} to sprint '{target.name}'.", data=dump(updated), inverse=inverse)


class RemoveTaskFromSprintParameters(ToolParameters):
    task: str = Field(description="Task title or id")


@tool(parameter_type=RemoveTaskFromSprintParameters, category="sprints", mutating=True)
async def remove_task_from_sprint(params: RemoveTaskFromSprintParameters, context: ToolExecutionContext) -> ToolResult:
    """Move a task back to the backlog, out of its sprint."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity
    if task.sprint_id is None:
        return ToolResult.failure(ErrorKind.PRECONDITION, f"Task {task_label(task)} is not in a sprint")

    updated = await context.store.update_task(task.id, {"sprint_id": None})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Task {task_label(task)} no longer exists")
    await record_activity(context, "task", task.id, "removed_from_sprint", previous=task.sprint_id)

    return ToolResult.ok(
        f"Removed task {task_label(task)} from its sprint.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="add_task_to_sprint",
            arguments={"task": task.id, "sprint": task.sprint_id},
            description=f"Put task {task_label(task)} back into its sprint",
        ),
    )


class GetSprintSummaryParameters(ToolParameters):
    sprint: Optional[str] = Field(default=None, description="Sprint name or id (defaults to the active sprint)")


@tool(parameter_type=GetSprintSummaryParameters, category="sprints")
async def get_sprint_summary(params: GetSprintSummaryParameters, context: ToolExecutionContext) -> ToolResult:
    """Summarize progress of a sprint."""
    match = await lookup_sprint(context, params.sprint)
    if isinstance(match, ToolResult):
        return match
    sprint = match.entity
    workflow = await context.active_workflow()

    tasks = [t for t in await context.store.list_tasks(include_archived=True) if t.sprint_id == sprint.id]
    by_category: Dict[str, int] = {"backlog": 0, "active": 0, "review": 0, "done": 0}
    for task in tasks:
        column = workflow.get_column(task.status)
        by_category[column.category if column else "backlog"] += 1
    total = len(tasks)
    done = by_category["done"]
    completion = round(100 * done / total) if total else 0
    days_left = max(0, (sprint.end_date.date() - context.now().date()).days)

    lines = [
        f"Sprint '{sprint.name}' ({sprint.status})" + (f": {sprint.goal}" if sprint.goal else ""),
        f"{done} of {total} task(s) done ({completion}%)",
        f"In progress: {by_category['active']}, in review: {by_category['review']}, not started: {by_category['backlog']}",
        f"{days_left} day(s) left",
    ]
    return ToolResult.ok(
        "\n".join(lines),
        data={
            "sprint": dump(sprint),
            "total": total,
            "byCategory": by_category,
            "completionPercent": completion,
            "daysLeft": days_left,
        },
    )


def _next_planned(sprints: List[Sprint], exclude: Optional[str] = None) -> Optional[Sprint]:
    planned = [s for s in sprints if s.status == "planning" and s.id != exclude]
    return min(planned, key=lambda s: s.start_date) if planned else None


class CreateSprintParameters(ToolParameters):
    name: str = Field(description="Sprint name")
    goal: str = Field(default="", description="Goal or objective for the sprint")
    start_date: Optional[str] = Field(default=None, description="When the sprint starts (defaults to today)")
    duration_days: int = Field(default=14, ge=1, le=90, description="Sprint length in days")


@tool(parameter_type=CreateSprintParameters, category="sprints", mutating=True)
async def create_sprint(params: CreateSprintParameters, context: ToolExecutionContext) -> ToolResult:
    """Plan a new sprint."""
    name = params.name.strip()
    if not name:
        return invalid("A sprint name is required")
    if any(s.name.lower() == name.lower() for s in await context.store.list_sprints()):
        return ToolResult.failure(ErrorKind.PRECONDITION, f"A sprint named '{name}' already exists")
    start = check_date(params.start_date or "today", context, "start date")
    if isinstance(start, ToolResult):
        return start

    sprint = await context.store.create_sprint(
        name, start, start + timedelta(days=params.duration_days), goal=params.goal.strip()
    )
    await record_activity(context, "sprint", sprint.id, "created")
    return ToolResult.ok(
        f"Created sprint {_sprint_line(sprint)}.",
        data=dump(sprint),
        inverse=InverseCommand(
            tool_name="delete_sprint",
            arguments={"sprint": sprint.id},
            description=f"Delete sprint '{sprint.name}'",
        ),
    )


class UpdateSprintParameters(ToolParameters):
    sprint: str = Field(description="Sprint name or id")
    name: Optional[str] = Field(default=None, description="New name")
    goal: Optional[str] = Field(default=None, description="New goal")
    end_date: Optional[str] = Field(default=None, description="New end date")
    status: Optional[Literal["planning", "active"]] = Field(
        default=None, description="Move the sprint back to planning or make it active again"
    )


@tool(parameter_type=UpdateSprintParameters, category="sprints", mutating=True)
async def update_sprint(params: UpdateSprintParameters, context: ToolExecutionContext) -> ToolResult:
    """Change the name, goal, end date or state of a sprint."""
    match = await lookup_sprint(context, params.sprint)
    if isinstance(match, ToolResult):
        return match
    sprint = match.entity
    sprints = await context.store.list_sprints()

    changes: Dict[str, Any] = {}
    previous: Dict[str, Any] = {}
    if params.name is not None:
        name = params.name.strip()
        if not name:
            return invalid("A sprint name cannot be empty")
        if any(s.name.lower() == name.lower() and s.id != sprint.id for s in sprints):
            return ToolResult.failure(ErrorKind.PRECONDITION, f"A sprint named '{name}' already exists")
        changes["name"] = name
        previous["name"] = sprint.name
    if params.goal is not None:
        changes["goal"] = params.goal.strip()
        previous["goal"] = sprint.goal
    if params.end_date is not None:
        end = check_date(params.end_date, context, "end date")
        if isinstance(end, ToolResult):
            return end
        if end <= sprint.start_date:
            return invalid(f"The end date must be after the start date {format_date(sprint.start_date)}")
        changes["end_date"] = end
        previous["end_date"] = format_date(sprint.end_date)
    if params.status is not None and params.status != sprint.status:
        if params.status == "active":
            active = [s for s in sprints if s.status == "active" and s.id != sprint.id]
            if active:
                return ToolResult.failure(
                    ErrorKind.PRECONDITION, f"Sprint '{active[0].name}' is already active; complete it first"
                )
        changes["status"] = params.status
        previous["status"] = sprint.status

    if not changes:
        if params.status is not None:
            return ToolResult.unchanged(f"Sprint '{sprint.name}' is already {sprint.status}.", data=dump(sprint))
        return invalid("Nothing to update: provide at least one of name, goal, end_date or status")

    updated = await context.store.update_sprint(sprint.id, changes)
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Sprint '{sprint.name}' no longer exists")
    await record_activity(context, "sprint", sprint.id, "updated", fields=sorted(changes))

    fields = ", ".join(sorted(previous))
    return ToolResult.ok(
        f"Updated {fields} of sprint '{updated.name}'.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="update_sprint",
            arguments={"sprint": sprint.id, **previous},
            description=f"Restore the previous {fields} of sprint '{sprint.name}'",
        ),
    )


class DeleteSprintParameters(ToolParameters):
    sprint: str = Field(description="Sprint name or id")


@tool(parameter_type=DeleteSprintParameters, category="sprints", mutating=True, requires_confirmation=True)
async def delete_sprint(params: DeleteSprintParameters, context: ToolExecutionContext) -> ToolResult:
    """Delete a sprint that has not started; its tasks go back to the backlog."""
    match = await lookup_sprint(context, params.sprint)
    if isinstance(match, ToolResult):
        return match
    sprint = match.entity
    if sprint.status != "planning":
        return ToolResult.failure(
            ErrorKind.PRECONDITION, f"Sprint '{sprint.name}' is {sprint.status}; only planned sprints can be deleted"
        )

    moved = [t.id for t in await context.store.list_tasks(include_archived=True) if t.sprint_id == sprint.id]
    if not await context.store.delete_sprint(sprint.id):
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Sprint '{sprint.name}' no longer exists")
    message = f"Deleted sprint '{sprint.name}'."
    if moved:
        message += f" {len(moved)} task(s) went back to the backlog."
    return ToolResult.ok(message, data={"id": sprint.id, "movedTasks": moved})


class StartSprintParameters(ToolParameters):
    sprint: Optional[str] = Field(default=None, description="Sprint name or id (defaults to the next planned sprint)")


@tool(parameter_type=StartSprintParameters, category="sprints", mutating=True)
async def start_sprint(params: StartSprintParameters, context: ToolExecutionContext) -> ToolResult:
    """Start a planned sprint. Only one sprint can be active at a time."""
    sprints = await context.store.list_sprints()
    if params.sprint:
        match = await lookup_sprint(context, params.sprint)
        if isinstance(match, ToolResult):
            return match
        sprint = match.entity
    else:
        sprint = _next_planned(sprints)
        if sprint is None:
            return ToolResult.failure(
                ErrorKind.NOT_FOUND, "There is no sprint in planning", alternatives=[s.name for s in sprints]
            )

    if sprint.status != "planning":
        return ToolResult.failure(
            ErrorKind.PRECONDITION, f"Sprint '{sprint.name}' is {sprint.status}; only planned sprints can be started"
        )
    active = [s for s in sprints if s.status == "active"]
    if active:
        return ToolResult.failure(
            ErrorKind.PRECONDITION, f"Sprint '{active[0].name}' is still active; complete it first"
        )

    updated = await context.store.update_sprint(sprint.id, {"status": "active"})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Sprint '{sprint.name}' no longer exists")
    await record_activity(context, "sprint", sprint.id, "started")
    return ToolResult.ok(
        f"Started sprint {_sprint_line(updated)}.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="update_sprint",
            arguments={"sprint": sprint.id, "status": "planning"},
            description=f"Move sprint '{sprint.name}' back to planning",
        ),
    )


class CompleteSprintParameters(ToolParameters):
    sprint: Optional[str] = Field(default=None, description="Sprint name or id (defaults to the active sprint)")
    move_incomplete: Literal["next_sprint", "backlog"] = Field(
        default="next_sprint", description="Where unfinished tasks go"
    )


@tool(parameter_type=CompleteSprintParameters, category="sprints", mutating=True)
async def complete_sprint(params: CompleteSprintParameters, context: ToolExecutionContext) -> ToolResult:
    """Complete the active sprint and carry unfinished tasks over.

    Unfinished tasks move to the next planned sprint, or to the backlog when
    asked to or when nothing is planned. The completion can only be undone
    when no task had to move.
    """
    match = await lookup_sprint(context, params.sprint)
    if isinstance(match, ToolResult):
        return match
    sprint = match.entity
    if sprint.status != "active":
        state = "already completed" if sprint.status == "completed" else "still in planning"
        return ToolResult.failure(ErrorKind.PRECONDITION, f"Sprint '{sprint.name}' is {state}")

    workflow = await context.active_workflow()
    tasks = [t for t in await context.store.list_tasks() if t.sprint_id == sprint.id]
    incomplete: List[Task] = []
    for task in tasks:
        column = workflow.get_column(task.status)
        if column is None or column.category != "done":
            incomplete.append(task)
    target = _next_planned(await context.store.list_sprints(), exclude=sprint.id)
    if params.move_incomplete == "backlog":
        target = None

    for task in incomplete:
        await context.store.update_task(task.id, {"sprint_id": target.id if target else None})
    updated = await context.store.update_sprint(sprint.id, {"status": "completed"})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Sprint '{sprint.name}' no longer exists")
    moved = [t.id for t in incomplete]
    await record_activity(context, "sprint", sprint.id, "completed", moved=moved, target=target.id if target else None)

    message = f"Completed sprint '{sprint.name}': {len(tasks) - len(incomplete)} of {len(tasks)} task(s) done."
    if incomplete:
        where = f"sprint '{target.name}'" if target else "the backlog"
        message += f" Moved {len(incomplete)} unfinished task(s) to {where}."
        if target is None and params.move_incomplete == "next_sprint":
            message += " No sprint is planned yet."
    inverse = None
    if not incomplete:
        inverse = InverseCommand(
            tool_name="update_sprint",
            arguments={"sprint": sprint.id, "status": "active"},
            description=f"Reopen sprint '{sprint.name}'",
        )
    return ToolResult.ok(
        message,
        data={
            "sprint": dump(updated),
            "movedTasks": moved,
            "movedTo": target.id if target else None,
        },
        inverse=inverse,
    )
