"""Helpers shared by the tool bodies.

Each lookup returns either the resolved value or a failed ``ToolResult`` the
body can hand straight back, so bodies read as a short sequence of checks.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.normalizers.dates import DATE_FORMAT_HELP, UNPARSEABLE, parse_natural_date
from fluxcmd.resolution.models import ColumnMatch, ColumnRejection, EntityMatch, NotFound
from fluxcmd.resolution.resolver import find_entity, resolve_column, resolve_user
from fluxcmd.store.models import Email, EntityType, Incident, Project, Sprint, Task, User
from fluxcmd.tools.models import ErrorKind, ToolResult
from fluxcmd.workflows.models import WorkflowConfig

# Values that clear an optional field
CLEAR_WORDS = frozenset({"none", "clear", "null", "remove", "unset", ""})

Lookup = Union[EntityMatch[Any], ToolResult]


def not_found(rejection: NotFound) -> ToolResult:
    return ToolResult.failure(ErrorKind.NOT_FOUND, rejection.message, alternatives=rejection.suggestions)


def invalid(message: str, alternatives: Optional[List[str]] = None) -> ToolResult:
    return ToolResult.failure(ErrorKind.VALIDATION, message, alternatives=alternatives)


def _finish(result: Union[EntityMatch[Any], NotFound]) -> Lookup:
    return not_found(result) if isinstance(result, NotFound) else result


def task_label(task: Task) -> str:
    return f"'{task.title}' ({task.id})"


def ambiguity_note(match: EntityMatch[Any], key: Callable[[Any], str]) -> str:
    """Sentence naming the other matches, or an empty string."""
    if not match.candidates:
        return ""
    others = ", ".join(f"'{key(c)}'" for c in match.candidates[:5])
    return f" Note: the name also matched {others}; use an id to pick a different one."


def other_ids(match: EntityMatch[Any]) -> List[str]:
    return [c.id for c in match.candidates]


def dump(entity: Any) -> Dict[str, Any]:
    return entity.model_dump(mode="json")


async def lookup_task(context: ToolExecutionContext, fragment: str, include_archived: bool = False) -> Lookup:
    tasks = await context.store.list_tasks(include_archived=include_archived)
    return _finish(find_entity(fragment, tasks, key=lambda t: t.title, label="task"))


async def lookup_user(context: ToolExecutionContext, fragment: str) -> Lookup:
    users = await context.store.list_users()
    return _finish(resolve_user(fragment, users, context.user_id))


async def lookup_project(context: ToolExecutionContext, fragment: str) -> Lookup:
    projects = await context.store.list_projects()
    return _finish(find_entity(fragment, projects, key=lambda p: p.name, label="project"))


async def lookup_incident(context: ToolExecutionContext, fragment: str) -> Lookup:
    incidents = await context.store.list_incidents()
    return _finish(find_entity(fragment, incidents, key=lambda i: i.title, label="incident"))


async def lookup_email(context: ToolExecutionContext, fragment: str) -> Lookup:
    emails = await context.store.list_emails()
    return _finish(find_entity(fragment, emails, key=lambda e: (e.subject, e.sender), label="email"))


async def lookup_sprint(context: ToolExecutionContext, fragment: Optional[str]) -> Lookup:
    """Resolve a sprint; empty input, ``current`` or ``active`` mean the active sprint."""
    sprints = await context.store.list_sprints()
    text = (fragment or "").strip().lower()
    if text in ("", "current", "active", "this sprint", "current sprint"):
        for sprint in sprints:
            if sprint.status == "active":
                return EntityMatch(entity=sprint)
        return ToolResult.failure(
            ErrorKind.NOT_FOUND,
            "There is no active sprint",
            alternatives=[s.name for s in sprints],
        )
    return _finish(find_entity(fragment, sprints, key=lambda s: s.name, label="sprint"))


async def lookup_entity(context: ToolExecutionContext, entity_type: EntityType, fragment: str) -> Lookup:
    """Resolve any linkable entity by type."""
    if entity_type == "task":
        return await lookup_task(context, fragment, include_archived=True)
    if entity_type == "project":
        return await lookup_project(context, fragment)
    if entity_type == "incident":
        return await lookup_incident(context, fragment)
    if entity_type == "email":
        return await lookup_email(context, fragment)
    if entity_type == "sprint":
        return await lookup_sprint(context, fragment)
    return await lookup_user(context, fragment)


def display_name(entity: Union[Task, Project, Incident, Email, Sprint, User]) -> str:
    for attr in ("title", "name", "subject"):
        value = getattr(entity, attr, None)
        if value:
            return value
    return entity.id


def check_status(raw: Optional[str], workflow: WorkflowConfig) -> Union[ColumnMatch, ToolResult]:
    """Validate a status against the workflow; every status write goes through here."""
    outcome = resolve_column(raw, workflow)
    if isinstance(outcome, ColumnRejection):
        return invalid(outcome.message, alternatives=outcome.valid_columns)
    return outcome


def check_date(
    raw: Optional[str], context: ToolExecutionContext, field: str = "date", allow_clear: bool = False
) -> Union[datetime, None, ToolResult]:
    """Parse a natural-language date argument.

    Returns None when ``allow_clear`` is set and the input asks to clear the
    value, otherwise the parsed datetime or a validation failure.
    """
    text = (raw or "").strip()
    if allow_clear and text.lower() in CLEAR_WORDS:
        return None
    parsed = parse_natural_date(text, reference=context.now())
    if parsed is UNPARSEABLE:
        return invalid(f"Could not understand the {field} '{text}'. {DATE_FORMAT_HELP}")
    return parsed


def split_list(raw: Optional[str]) -> List[str]:
    """Split a comma separated argument, dropping blanks and duplicates."""
    if not raw:
        return []
    items: List[str] = []
    for part in raw.split(","):
        item = part.strip()
        if item and item not in items:
            items.append(item)
    return items


def format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "none"


def bullet_list(lines: Sequence[str], empty: str) -> str:
    if not lines:
        return empty
    return "\n".join(f"- {line}" for line in lines)


async def record_activity(
    context: ToolExecutionContext,
    entity_type: EntityType,
    entity_id: str,
    action: str,
    **details: Any,
) -> None:
    await context.store.log_activity(entity_type, entity_id, action, context.user_id, details)
