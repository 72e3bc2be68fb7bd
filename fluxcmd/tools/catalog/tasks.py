"""Task tools: create, change, assign, list, archive and triage tasks."""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.normalizers.aliases import Priority, normalize_priority
from fluxcmd.store.models import Task, User
from fluxcmd.tools.catalog.common import (
    CLEAR_WORDS,
    ambiguity_note,
    bullet_list,
    check_date,
    check_status,
    dump,
    format_date,
    invalid,
    lookup_project,
    lookup_task,
    lookup_user,
    other_ids,
    record_activity,
    split_list,
    task_label,
)
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult, column_field
from fluxcmd.workflows.models import WorkflowColumn, WorkflowConfig

logger = logging.getLogger(__name__)

PRIORITY_HELP = "Priority: low, medium, high or urgent (aliases such as p1, critical or minor are accepted)"


def _vanished(task: Task) -> ToolResult:
    return ToolResult.failure(ErrorKind.NOT_FOUND, f"Task {task_label(task)} no longer exists")


def _completion_changes(task: Task, column: WorkflowColumn, workflow: WorkflowConfig, now: Any) -> Dict[str, Any]:
    """Status change plus the matching ``completed_at`` value."""
    was_done = task.status in workflow.done_column_ids()
    if column.category == "done":
        completed_at = task.completed_at if was_done and task.completed_at else now
    else:
        completed_at = None
    return {"status": column.id, "completed_at": completed_at}


def _task_line(task: Task, workflow: WorkflowConfig) -> str:
    column = workflow.get_column(task.status)
    status = column.title if column else task.status
    line = f"{task.title} ({task.id}) [{status}, {task.priority}]"
    if task.due_date:
        line += f" due {format_date(task.due_date)}"
    return line


# -- create ---------------------------------------------------------------


class CreateTaskParameters(ToolParameters):
    title: str = Field(description="Task title")
    description: str = Field(default="", description="Longer description of the work")
    status: Optional[str] = column_field("Column to place the task in (defaults to the first column)", default=None)
    priority: Optional[str] = Field(default=None, description=PRIORITY_HELP)
    assignee: Optional[str] = Field(default=None, description="Assignee name, email or 'me'")
    due_date: Optional[str] = Field(default=None, description="Due date such as 'tomorrow', 'next friday' or '2025-12-24'")
    tags: Optional[str] = Field(default=None, description="Comma separated tags")
    project: Optional[str] = Field(default=None, description="Project name (defaults to the current project)")


@tool(parameter_type=CreateTaskParameters, category="tasks", mutating=True)
async def create_task(params: CreateTaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Create a new task on the board."""
    title = params.title.strip()
    if not title:
        return invalid("A task title is required")

    workflow = await context.active_workflow()
    if params.status is not None:
        match = check_status(params.status, workflow)
        if isinstance(match, ToolResult):
            return match
        column = match.column
    else:
        column = workflow.initial_column()

    fields: Dict[str, Any] = {
        "description": params.description,
        "priority": normalize_priority(params.priority),
        "tags": split_list(params.tags),
    }
    if params.assignee:
        user = await lookup_user(context, params.assignee)
        if isinstance(user, ToolResult):
            return user
        fields["assignee_id"] = user.entity.id
    if params.due_date:
        due = check_date(params.due_date, context, "due date")
        if isinstance(due, ToolResult):
            return due
        fields["due_date"] = due
    if params.project:
        project = await lookup_project(context, params.project)
        if isinstance(project, ToolResult):
            return project
        fields["project_id"] = project.entity.id
    else:
        workspace = await context.store.get_workspace()
        fields["project_id"] = workspace.current_project_id
    if column.category == "done":
        fields["completed_at"] = context.now()

    task = await context.store.create_task(title, column.id, **fields)
    await record_activity(context, "task", task.id, "created", status=column.id)
    logger.info(f"Created task {task.id} in column {column.id}")

    return ToolResult.ok(
        f"Created task {task_label(task)} in {column.title} with {task.priority} priority.",
        data=dump(task),
        inverse=InverseCommand(
            tool_name="delete_task", arguments={"task": task.id}, description=f"Delete task {task_label(task)}"
        ),
    )


class AddSubtaskParameters(ToolParameters):
    parent: str = Field(description="Parent task title or id")
    title: str = Field(description="Subtask title")
    assignee: Optional[str] = Field(default=None, description="Assignee name, email or 'me'")
    priority: Optional[str] = Field(default=None, description=PRIORITY_HELP)


@tool(parameter_type=AddSubtaskParameters, category="tasks", mutating=True)
async def add_subtask(params: AddSubtaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Create a subtask under an existing task."""
    title = params.title.strip()
    if not title:
        return invalid("A subtask title is required")
    parent = await lookup_task(context, params.parent)
    if isinstance(parent, ToolResult):
        return parent

    fields: Dict[str, Any] = {
        "parent_id": parent.entity.id,
        "project_id": parent.entity.project_id,
        "priority": normalize_priority(params.priority) if params.priority else parent.entity.priority,
    }
    if params.assignee:
        user = await lookup_user(context, params.assignee)
        if isinstance(user, ToolResult):
            return user
        fields["assignee_id"] = user.entity.id

    workflow = await context.active_workflow()
    subtask = await context.store.create_task(title, workflow.initial_column().id, **fields)
    await record_activity(context, "task", parent.entity.id, "subtask_added", subtask_id=subtask.id)

    return ToolResult.ok(
        f"Added subtask {task_label(subtask)} under {task_label(parent.entity)}."
        + ambiguity_note(parent, lambda t: t.title),
        data=dump(subtask),
        inverse=InverseCommand(
            tool_name="delete_task", arguments={"task": subtask.id}, description=f"Delete subtask {task_label(subtask)}"
        ),
    )


# -- change ---------------------------------------------------------------


class UpdateTaskParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    title: Optional[str] = Field(default=None, description="New title")
    description: Optional[str] = Field(default=None, description="New description")
    status: Optional[str] = column_field("New column", default=None)
    priority: Optional[str] = Field(default=None, description=PRIORITY_HELP)
    assignee: Optional[str] = Field(default=None, description="New assignee name, email or 'me'; 'none' unassigns")
    due_date: Optional[str] = Field(default=None, description="New due date; 'none' clears it")
    tags: Optional[str] = Field(default=None, description="Comma separated tags replacing the current ones")


@tool(parameter_type=UpdateTaskParameters, category="tasks", mutating=True)
async def update_task(params: UpdateTaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Change several fields of a task at once."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity

    changes: Dict[str, Any] = {}
    previous: Dict[str, Any] = {}

    if params.title is not None:
        if not params.title.strip():
            return invalid("The task title cannot be empty")
        changes["title"] = params.title.strip()
        previous["title"] = task.title
    if params.description is not None:
        changes["description"] = params.description
        previous["description"] = task.description
    if params.priority is not None:
        changes["priority"] = normalize_priority(params.priority)
        previous["priority"] = task.priority
    if params.status is not None:
        workflow = await context.active_workflow()
        column = check_status(params.status, workflow)
        if isinstance(column, ToolResult):
            return column
        changes.update(_completion_changes(task, column.column, workflow, context.now()))
        previous["status"] = task.status
    if params.assignee is not None:
        if params.assignee.strip().lower() in CLEAR_WORDS:
            changes["assignee_id"] = None
        else:
            user = await lookup_user(context, params.assignee)
            if isinstance(user, ToolResult):
                return user
            changes["assignee_id"] = user.entity.id
        previous["assignee"] = task.assignee_id or "none"
    if params.due_date is not None:
        due = check_date(params.due_date, context, "due date", allow_clear=True)
        if isinstance(due, ToolResult):
            return due
        changes["due_date"] = due
        previous["due_date"] = format_date(task.due_date)
    if params.tags is not None:
        changes["tags"] = split_list(params.tags)
        previous["tags"] = ", ".join(task.tags)

    if not changes:
        return invalid(
            "Nothing to update: provide at least one of title, description, status, priority, assignee, due_date or tags"
        )

    updated = await context.store.update_task(task.id, changes)
    if updated is None:
        return _vanished(task)
    await record_activity(context, "task", task.id, "updated", fields=sorted(changes))

    return ToolResult.ok(
        f"Updated {', '.join(sorted(previous))} of task {task_label(updated)}." + ambiguity_note(match, lambda t: t.title),
        data={**dump(updated), "otherMatches": other_ids(match)},
        inverse=InverseCommand(
            tool_name="update_task",
            arguments={"task": task.id, **previous},
            description=f"Restore the previous {', '.join(sorted(previous))} of task {task_label(task)}",
        ),
    )


class UpdateTaskStatusParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    status: str = column_field("Target column (id or title)")


@tool(parameter_type=UpdateTaskStatusParameters, category="tasks", mutating=True)
async def update_task_status(params: UpdateTaskStatusParameters, context: ToolExecutionContext) -> ToolResult:
    """Move a task to another column of the active workflow."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity

    workflow = await context.active_workflow()
    column = check_status(params.status, workflow)
    if isinstance(column, ToolResult):
        return column

    if task.status == column.column_id:
        return ToolResult.unchanged(f"Task {task_label(task)} is already in {column.column.title}.", data=dump(task))

    updated = await context.store.update_task(task.id, _completion_changes(task, column.column, workflow, context.now()))
    if updated is None:
        return _vanished(task)
    await record_activity(context, "task", task.id, "status_changed", previous=task.status, status=column.column_id)

    prior = workflow.get_column(task.status)
    prior_title = prior.title if prior else task.status
    return ToolResult.ok(
        f"Moved task {task_label(task)} from {prior_title} to {column.column.title}."
        + ambiguity_note(match, lambda t: t.title),
        data={**dump(updated), "previousStatus": task.status, "otherMatches": other_ids(match)},
        inverse=InverseCommand(
            tool_name="update_task_status",
            arguments={"task": task.id, "status": task.status},
            description=f"Move task {task_label(task)} back to {prior_title}",
        ),
    )


class DeleteTaskParameters(ToolParameters):
    task: str = Field(description="Task title or id")


@tool(parameter_type=DeleteTaskParameters, category="tasks", mutating=True, requires_confirmation=True)
async def delete_task(params: DeleteTaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Delete a task permanently."""
    match = await lookup_task(context, params.task, include_archived=True)
    if isinstance(match, ToolResult):
        return match
    task = match.entity

    if not await context.store.delete_task(task.id):
        return _vanished(task)
    await record_activity(context, "task", task.id, "deleted", title=task.title)
    logger.info(f"Deleted task {task.id}")

    return ToolResult.ok(f"Deleted task {task_label(task)}." + ambiguity_note(match, lambda t: t.title), data=dump(task))


class AssignTaskParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    assignee: str = Field(description="User name, email or 'me'")


@tool(parameter_type=AssignTaskParameters, category="tasks", mutating=True)
async def assign_task(params: AssignTaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Assign a task to a user."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    user = await lookup_user(context, params.assignee)
    if isinstance(user, ToolResult):
        return user
    task, assignee = match.entity, user.entity

    if task.assignee_id == assignee.id:
        return ToolResult.unchanged(f"Task {task_label(task)} is already assigned to {assignee.name}.", data=dump(task))

    updated = await context.store.update_task(task.id, {"assignee_id": assignee.id})
    if updated is None:
        return _vanished(task)
    await record_activity(context, "task", task.id, "assigned", previous=task.assignee_id, assignee=assignee.id)

    if task.assignee_id:
        inverse = InverseCommand(
            tool_name="assign_task",
            arguments={"task": task.id, "assignee": task.assignee_id},
            description=f"Reassign task {task_label(task)} to its previous assignee",
        )
    else:
        inverse = InverseCommand(
            tool_name="unassign_task", arguments={"task": task.id}, description=f"Unassign task {task_label(task)}"
        )
    return ToolResult.ok(
        f"Assigned task {task_label(task)} to {assignee.name}." + ambiguity_note(match, lambda t: t.title),
        data={**dump(updated), "previousAssigneeId": task.assignee_id},
        inverse=inverse,
    )


class UnassignTaskParameters(ToolParameters):
    task: str = Field(description="Task title or id")


@tool(parameter_type=UnassignTaskParameters, category="tasks", mutating=True)
async def unassign_task(params: UnassignTaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Remove the assignee from a task."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity
    if task.assignee_id is None:
        return ToolResult.unchanged(f"Task {task_label(task)} has no assignee.", data=dump(task))

    updated = await context.store.update_task(task.id, {"assignee_id": None})
    if updated is None:
        return _vanished(task)
    await record_activity(context, "task", task.id, "unassigned", previous=task.assignee_id)

    return ToolResult.ok(
        f"Unassigned task {task_label(task)}.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="assign_task",
            arguments={"task": task.id, "assignee": task.assignee_id},
            description=f"Reassign task {task_label(task)}",
        ),
    )


class SetTaskPriorityParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    priority: str = Field(description=PRIORITY_HELP)


@tool(parameter_type=SetTaskPriorityParameters, category="tasks", mutating=True)
async def set_task_priority(params: SetTaskPriorityParameters, context: ToolExecutionContext) -> ToolResult:
    """Change the priority of a task."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity
    priority = normalize_priority(params.priority)
    if task.priority == priority:
        return ToolResult.unchanged(f"Task {task_label(task)} already has {priority} priority.", data=dump(task))

    updated = await context.store.update_task(task.id, {"priority": priority})
    if updated is None:
        return _vanished(task)
    await record_activity(context, "task", task.id, "priority_changed", previous=task.priority, priority=priority)

    return ToolResult.ok(
        f"Set priority of task {task_label(task)} to {priority} (was {task.priority})."
        + ambiguity_note(match, lambda t: t.title),
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="set_task_priority",
            arguments={"task": task.id, "priority": task.priority},
            description=f"Restore {task.priority} priority on task {task_label(task)}",
        ),
    )


# -- read -----------------------------------------------------------------


class ListTasksParameters(ToolParameters):
    status: Optional[str] = column_field("Only tasks in this column", default=None)
    assignee: Optional[str] = Field(default=None, description="Only tasks assigned to this user ('me' for yourself)")
    priority: Optional[str] = Field(default=None, description="Only tasks with this priority")
    project: Optional[str] = Field(default=None, description="Only tasks in this project")
    include_archived: bool = Field(default=False, description="Include archived tasks")
    limit: int = Field(default=50, ge=1, le=500, description="Maximum number of tasks to return")


@tool(parameter_type=ListTasksParameters, category="tasks")
async def list_tasks(params: ListTasksParameters, context: ToolExecutionContext) -> ToolResult:
    """List tasks, optionally filtered by column, assignee, priority or project."""
    workflow = await context.active_workflow()
    tasks = await context.store.list_tasks(include_archived=params.include_archived)
    filters: List[str] = []

    if params.status is not None:
        column = check_status(params.status, workflow)
        if isinstance(column, ToolResult):
            return column
        tasks = [t for t in tasks if t.status == column.column_id]
        filters.append(f"in {column.column.title}")
    if params.assignee is not None:
        user = await lookup_user(context, params.assignee)
        if isinstance(user, ToolResult):
            return user
        tasks = [t for t in tasks if t.assignee_id == user.entity.id]
        filters.append(f"assigned to {user.entity.name}")
    if params.priority is not None:
        priority = normalize_priority(params.priority)
        tasks = [t for t in tasks if t.priority == priority]
        filters.append(f"with {priority} priority")
    if params.project is not None:
        project = await lookup_project(context, params.project)
        if isinstance(project, ToolResult):
            return project
        tasks = [t for t in tasks if t.project_id == project.entity.id]
        filters.append(f"in project {project.entity.name}")

    shown = tasks[: params.limit]
    header = f"Found {len(tasks)} task(s)" + (f" {' '.join(filters)}" if filters else "")
    if len(shown) < len(tasks):
        header += f", showing the first {len(shown)}"
    body = bullet_list([_task_line(t, workflow) for t in shown], "No tasks match.")
    return ToolResult.ok(f"{header}:\n{body}", data={"tasks": [dump(t) for t in shown], "count": len(tasks)})


class SearchTasksParameters(ToolParameters):
    query: str = Field(description="Text to look for in titles, descriptions and tags")
    limit: int = Field(default=20, ge=1, le=200, description="Maximum number of results")


@tool(parameter_type=SearchTasksParameters, category="tasks")
async def search_tasks(params: SearchTasksParameters, context: ToolExecutionContext) -> ToolResult:
    """Search tasks by text."""
    needle = params.query.strip().lower()
    if not needle:
        return invalid("A search query is required")
    workflow = await context.active_workflow()
    tasks = await context.store.list_tasks()
    hits = [
        t
        for t in tasks
        if needle in t.title.lower() or needle in t.description.lower() or any(needle in tag.lower() for tag in t.tags)
    ]
    shown = hits[: params.limit]
    body = bullet_list([_task_line(t, workflow) for t in shown], "No tasks match.")
    return ToolResult.ok(
        f"Found {len(hits)} task(s) matching '{params.query.strip()}':\n{body}",
        data={"tasks": [dump(t) for t in shown], "count": len(hits)},
    )


class GetTaskDetailsParameters(ToolParameters):
    task: str = Field(description="Task title or id")


@tool(parameter_type=GetTaskDetailsParameters, category="tasks")
async def get_task_details(params: GetTaskDetailsParameters, context: ToolExecutionContext) -> ToolResult:
    """Show a task with its comments, links, subtasks and blockers."""
    match = await lookup_task(context, params.task, include_archived=True)
    if isinstance(match, ToolResult):
        return match
    task = match.entity
    workflow = await context.active_workflow()

    all_tasks = await context.store.list_tasks(include_archived=True)
    by_id = {t.id: t for t in all_tasks}
    subtasks = [t for t in all_tasks if t.parent_id == task.id]
    blockers = [by_id[b] for b in task.blocked_by if b in by_id]
    comments = await context.store.list_comments("task", task.id)
    links = await context.store.list_links("task", task.id)
    assignee = await context.store.get_user(task.assignee_id) if task.assignee_id else None

    column = workflow.get_column(task.status)
    lines = [
        f"{task.title} ({task.id})",
        f"Status: {column.title if column else task.status}",
        f"Priority: {task.priority}",
        f"Assignee: {assignee.name if assignee else 'unassigned'}",
        f"Due: {format_date(task.due_date)}",
    ]
    if task.tags:
        lines.append(f"Tags: {', '.join(task.tags)}")
    if task.description:
        lines.append(f"Description: {task.description}")
    if subtasks:
        lines.append(f"Subtasks: {', '.join(t.title for t in subtasks)}")
    if blockers:
        lines.append(f"Blocked by: {', '.join(t.title for t in blockers)}")
    if comments:
        lines.append(f"Comments: {len(comments)}")

    return ToolResult.ok(
        "\n".join(lines) + ambiguity_note(match, lambda t: t.title),
        data={
            "task": dump(task),
            "subtasks": [dump(t) for t in subtasks],
            "blockers": [dump(t) for t in blockers],
            "comments": [dump(c) for c in comments],
            "links": [dump(link) for link in links],
            "otherMatches": other_ids(match),
        },
    )


# -- bulk -----------------------------------------------------------------


class ArchiveCompletedTasksParameters(ToolParameters):
    project: Optional[str] = Field(default=None, description="Only archive tasks of this project")


@tool(parameter_type=ArchiveCompletedTasksParameters, category="tasks", mutating=True, requires_confirmation=True)
async def archive_completed_tasks(params: ArchiveCompletedTasksParameters, context: ToolExecutionContext) -> ToolResult:
    """Archive every task sitting in a done column."""
    workflow = await context.active_workflow()
    done_ids = set(workflow.done_column_ids())
    tasks = [t for t in await context.store.list_tasks() if t.status in done_ids]

    if params.project is not None:
        project = await lookup_project(context, params.project)
        if isinstance(project, ToolResult):
            return project
        tasks = [t for t in tasks if t.project_id == project.entity.id]

    if not tasks:
        return ToolResult.unchanged("There are no completed tasks to archive.", data={"archived": 0, "taskIds": []})

    ids = [t.id for t in tasks]
    count = await context.store.archive_tasks(ids)
    for task_id in ids:
        await record_activity(context, "task", task_id, "archived")
    return ToolResult.ok(f"Archived {count} completed task(s).", data={"archived": count, "taskIds": ids})


# -- triage ---------------------------------------------------------------

TRIAGE_PRIORITY_KEYWORDS: Tuple[Tuple[Priority, Tuple[str, ...]], ...] = (
    ("urgent", ("outage", "down", "crash", "security", "breach", "urgent", "asap", "production", "data loss")),
    ("high", ("bug", "error", "broken", "fail", "failing", "regression", "customer", "blocker")),
    ("low", ("typo", "docs", "documentation", "cosmetic", "nice to have", "minor", "cleanup", "refactor")),
)

TRIAGE_TAG_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "bug": ("bug", "error", "broken", "crash", "fail", "failing", "regression"),
    "security": ("security", "vulnerability", "breach", "xss", "injection", "auth"),
    "performance": ("slow", "performance", "latency", "timeout", "memory"),
    "ui": ("ui", "button", "layout", "css", "design", "screen"),
    "docs": ("docs", "documentation", "readme", "typo"),
    "backend": ("api", "database", "server", "endpoint", "migration"),
}


def _mentions(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def suggest_priority(text: str) -> Priority:
    """Priority suggested by keywords in ``text``; ``medium`` when none match."""
    lowered = text.lower()
    for priority, keywords in TRIAGE_PRIORITY_KEYWORDS:
        if any(_mentions(lowered, k) for k in keywords):
            return priority
    return "medium"


def suggest_tags(text: str) -> List[str]:
    lowered = text.lower()
    return [tag for tag, keywords in TRIAGE_TAG_KEYWORDS.items() if any(_mentions(lowered, k) for k in keywords)]


def least_loaded_user(users: Sequence[User], tasks: Sequence[Task], done_ids: Sequence[str]) -> Optional[User]:
    """User with the fewest open tasks; earlier users win ties."""
    if not users:
        return None
    load = {u.id: 0 for u in users}
    for task in tasks:
        if task.assignee_id in load and task.status not in done_ids:
            load[task.assignee_id] += 1
    return min(users, key=lambda u: load[u.id])


class TriageTaskParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    apply: bool = Field(default=False, description="Apply the suggestions instead of only reporting them")


@tool(parameter_type=TriageTaskParameters, category="tasks", mutating=True)
async def triage_task(params: TriageTaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Suggest priority, tags and an assignee for a task from its text."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity
    workflow = await context.active_workflow()

    text = f"{task.title} {task.description}"
    priority = suggest_priority(text)
    tags = suggest_tags(text)
    users = await context.store.list_users()
    tasks = await context.store.list_tasks()
    assignee = None if task.assignee_id else least_loaded_user(users, tasks, workflow.done_column_ids())

    summary = f"priority {priority}, tags {', '.join(tags) if tags else 'none'}"
    if assignee:
        summary += f", assignee {assignee.name}"
    data = {"priority": priority, "tags": tags, "assigneeId": assignee.id if assignee else None, "applied": False}

    if not params.apply:
        return ToolResult.unchanged(f"Triage suggestion for task {task_label(task)}: {summary}.", data=data)

    changes: Dict[str, Any] = {"priority": priority, "tags": task.tags + [t for t in tags if t not in task.tags]}
    if assignee:
        changes["assignee_id"] = assignee.id
    updated = await context.store.update_task(task.id, changes)
    if updated is None:
        return _vanished(task)
    await record_activity(context, "task", task.id, "triaged", priority=priority, tags=tags)

    return ToolResult.ok(
        f"Triaged task {task_label(task)}: {summary}.",
        data={**data, "applied": True, "task": dump(updated)},
        inverse=InverseCommand(
            tool_name="update_task",
            arguments={
                "task": task.id,
                "priority": task.priority,
                "tags": ", ".join(task.tags),
                "assignee": task.assignee_id or "none",
            },
            description=f"Restore priority, tags and assignee of task {task_label(task)}",
        ),
    )
