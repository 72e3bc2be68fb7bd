"""Relationship tools: links between records, blockers and parent tasks."""

from typing import Dict, Literal, Optional, Set

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.store.models import Task
from fluxcmd.tools.catalog.common import (
    CLEAR_WORDS,
    display_name,
    dump,
    invalid,
    lookup_entity,
    lookup_task,
    record_activity,
    task_label,
)
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult

LinkableType = Literal["task", "project", "incident", "email", "sprint"]


def _blocks_transitively(tasks: Dict[str, Task], start: str, target: str) -> bool:
    """True when ``start`` is (directly or indirectly) blocked by ``target``."""
    seen: Set[str] = set()
    stack = [start]
    while stack:
        current = stack.pop()
        if current == target:
            return True
        if current in seen or current not in tasks:
            continue
        seen.add(current)
        stack.extend(tasks[current].blocked_by)
    return False


def _is_ancestor(tasks: Dict[str, Task], candidate: str, task_id: str) -> bool:
    """True when ``candidate`` is ``task_id`` or one of its descendants."""
    current: Optional[str] = candidate
    seen: Set[str] = set()
    while current is not None and current not in seen:
        if current == task_id:
            return True
        seen.add(current)
        parent = tasks.get(current)
        current = parent.parent_id if parent else None
    return False


class LinkEntitiesParameters(ToolParameters):
    source_type: LinkableType = Field(default="task", description="Kind of the source record")
    source: str = Field(description="Source title, name or id")
    target_type: LinkableType = Field(default="task", description="Kind of the target record")
    target: str = Field(description="Target title, name or id")
    relation: str = Field(default="relates_to", description="Relation name, e.g. relates_to or duplicates")


@tool(parameter_type=LinkEntitiesParameters, category="relationships", mutating=True)
async def link_entities(params: LinkEntitiesParameters, context: ToolExecutionContext) -> ToolResult:
    """Link two records, e.g. a task to an incident."""
    source = await lookup_entity(context, params.source_type, params.source)
    if isinstance(source, ToolResult):
        return source
    target = await lookup_entity(context, params.target_type, params.target)
    if isinstance(target, ToolResult):
        return target
    if params.source_type == params.target_type and source.entity.id == target.entity.id:
        return invalid("A record cannot be linked to itself")

    relation = params.relation.strip() or "relates_to"
    link = await context.store.link_entities(
        params.source_type, source.entity.id, params.target_type, target.entity.id, relation
    )
    await record_activity(context, params.source_type, source.entity.id, "linked", target=target.entity.id)

    return ToolResult.ok(
        f"Linked {params.source_type} '{display_name(source.entity)}' to {params.target_type} "
        f"'{display_name(target.entity)}' ({relation}).",
        data=dump(link),
        inverse=InverseCommand(
            tool_name="unlink_entities",
            arguments={
                "source_type": params.source_type,
                "source": source.entity.id,
                "target_type": params.target_type,
                "target": target.entity.id,
                "relation": relation,
            },
            description="Remove the link",
        ),
    )


class UnlinkEntitiesParameters(ToolParameters):
    source_type: LinkableType = Field(default="task", description="Kind of the source record")
    source: str = Field(description="Source title, name or id")
    target_type: LinkableType = Field(default="task", description="Kind of the target record")
    target: str = Field(description="Target title, name or id")
    relation: Optional[str] = Field(default=None, description="Only remove links with this relation")


@tool(parameter_type=UnlinkEntitiesParameters, category="relationships", mutating=True)
async def unlink_entities(params: UnlinkEntitiesParameters, context: ToolExecutionContext) -> ToolResult:
    """Remove the link between two records."""
    source = await lookup_entity(context, params.source_type, params.source)
    if isinstance(source, ToolResult):
        return source
    target = await lookup_entity(context, params.target_type, params.target)
    if isinstance(target, ToolResult):
        return target

    removed = await context.store.unlink_entities(
        params.source_type, source.entity.id, params.target_type, target.entity.id, params.relation
    )
    if not removed:
        return ToolResult.failure(
            ErrorKind.NOT_FOUND,
            f"'{display_name(source.entity)}' and '{display_name(target.entity)}' are not linked",
        )
    await record_activity(context, params.source_type, source.entity.id, "unlinked", target=target.entity.id)

    inverse = None
    if params.relation:
        inverse = InverseCommand(
            tool_name="link_entities",
            arguments={
                "source_type": params.source_type,
                "source": source.entity.id,
                "target_type": params.target_type,
                "target": target.entity.id,
                "relation": params.relation,
            },
            description="Restore the link",
        )
    return ToolResult.ok(
        f"Unlinked '{display_name(source.entity)}' from '{display_name(target.entity)}'.", inverse=inverse
    )


class AddBlockerParameters(ToolParameters):
    task: str = Field(description="Task that is blocked")
    blocked_by: str = Field(description="Task that blocks it")


@tool(parameter_type=AddBlockerParameters, category="relationships", mutating=True)
async def add_blocker(params: AddBlockerParameters, context: ToolExecutionContext) -> ToolResult:
    """Mark a task as blocked by another task."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    blocker = await lookup_task(context, params.blocked_by)
    if isinstance(blocker, ToolResult):
        return blocker
    task, blocking = match.entity, blocker.entity

    if task.id == blocking.id:
        return invalid("A task cannot block itself")
    if blocking.id in task.blocked_by:
        return ToolResult.unchanged(f"Task {task_label(task)} is already blocked by {task_label(blocking)}.")
    tasks = {t.id: t for t in await context.store.list_tasks(include_archived=True)}
    if _blocks_transitively(tasks, blocking.id, task.id):
        return invalid(f"Task {task_label(blocking)} already depends on {task_label(task)}; that would be a cycle")

    updated = await context.store.update_task(task.id, {"blocked_by": task.blocked_by + [blocking.id]})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Task {task_label(task)} no longer exists")
    await record_activity(context, "task", task.id, "blocker_added", blocker=blocking.id)

    return ToolResult.ok(
        f"Task {task_label(task)} is now blocked by {task_label(blocking)}.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="remove_blocker",
            arguments={"task": task.id, "blocker": blocking.id},
            description=f"Unblock task {task_label(task)}",
        ),
    )


class RemoveBlockerParameters(ToolParameters):
    task: str = Field(description="Task that is blocked")
    blocker: str = Field(description="Blocking task to remove")


@tool(parameter_type=RemoveBlockerParameters, category="relationships", mutating=True)
async def remove_blocker(params: RemoveBlockerParameters, context: ToolExecutionContext) -> ToolResult:
    """Remove a blocker from a task."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity

    all_tasks = await context.store.list_tasks(include_archived=True)
    blockers = [t for t in all_tasks if t.id in task.blocked_by]
    if not blockers:
        return ToolResult.failure(ErrorKind.PRECONDITION, f"Task {task_label(task)} has no blockers")
    blocker = await lookup_task(context, params.blocker, include_archived=True)
    if isinstance(blocker, ToolResult) or blocker.entity.id not in task.blocked_by:
        return ToolResult.failure(
            ErrorKind.NOT_FOUND,
            f"Task {task_label(task)} is not blocked by '{params.blocker}'. "
            f"Current blockers: {', '.join(task_label(b) for b in blockers)}",
            alternatives=[b.title for b in blockers],
        )

    remaining = [b for b in task.blocked_by if b != blocker.entity.id]
    updated = await context.store.update_task(task.id, {"blocked_by": remaining})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Task {task_label(task)} no longer exists")
    await record_activity(context, "task", task.id, "blocker_removed", blocker=blocker.entity.id)

    return ToolResult.ok(
        f"Task {task_label(task)} is no longer blocked by {task_label(blocker.entity)}.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="add_blocker",
            arguments={"task": task.id, "blocked_by": blocker.entity.id},
            description=f"Block task {task_label(task)} again",
        ),
    )


class SetParentTaskParameters(ToolParameters):
    task: str = Field(description="Child task title or id")
    parent: str = Field(description="Parent task title or id; 'none' detaches the task")


@tool(parameter_type=SetParentTaskParameters, category="relationships", mutating=True)
async def set_parent_task(params: SetParentTaskParameters, context: ToolExecutionContext) -> ToolResult:
    """Make a task the child of another task, or detach it."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity

    parent_id: Optional[str] = None
    parent_label = "no parent"
    if params.parent.strip().lower() not in CLEAR_WORDS:
        parent = await lookup_task(context, params.parent)
        if isinstance(parent, ToolResult):
            return parent
        tasks = {t.id: t for t in await context.store.list_tasks(include_archived=True)}
        if _is_ancestor(tasks, parent.entity.id, task.id):
            return invalid(f"Task {task_label(parent.entity)} is {task_label(task)} or one of its subtasks")
        parent_id = parent.entity.id
        parent_label = task_label(parent.entity)

    if task.parent_id == parent_id:
        return ToolResult.unchanged(f"Task {task_label(task)} already has {parent_label} as parent.")

    updated = await context.store.update_task(task.id, {"parent_id": parent_id})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Task {task_label(task)} no longer exists")
    await record_activity(context, "task", task.id, "parent_changed", previous=task.parent_id, parent=parent_id)

    message = (
        f"Task {task_label(task)} is now a subtask of {parent_label}."
        if parent_id
        else f"Task {task_label(task)} no longer has a parent."
    )
    return ToolResult.ok(
        message,
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="set_parent_task",
            arguments={"task": task.id, "parent": task.parent_id or "none"},
            description=f"Restore the previous parent of task {task_label(task)}",
        ),
    )
