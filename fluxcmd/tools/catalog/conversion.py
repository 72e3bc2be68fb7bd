"""Tools that turn one kind of entity into another.

Every conversion records an entity mapping: a ``converted_to`` link from the
source to the entity created from it.
"""

import logging
import re
from typing import Any, Dict, Optional

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.normalizers.aliases import Priority, Severity, normalize_priority, normalize_severity
from fluxcmd.store.models import Email, EntityType
from fluxcmd.tools.catalog.common import (
    check_status,
    dump,
    lookup_email,
    lookup_incident,
    lookup_user,
    record_activity,
    task_label,
)
from fluxcmd.tools.catalog.incidents import SEVERITY_HELP, sla_deadline
from fluxcmd.tools.catalog.tasks import PRIORITY_HELP, suggest_priority
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import InverseCommand, ToolParameters, ToolResult, column_field

logger = logging.getLogger(__name__)

CONVERTED_TO = "converted_to"

SEVERITY_TO_PRIORITY: Dict[Severity, Priority] = {
    "critical": "urgent",
    "high": "high",
    "medium": "medium",
    "low": "low",
}

# Checked in order, first hit wins
SEVERITY_KEYWORDS = (
    ("critical", ("outage", "down", "unavailable", "data loss", "breach", "sev1", "emergency")),
    ("high", ("error", "fail", "failed", "failing", "broken", "crash", "urgent")),
    ("low", ("question", "request", "how do i", "feature", "cosmetic")),
)

_REPLY_PREFIX = re.compile(r"^\s*((re|fw|fwd)\s*:\s*)+", re.IGNORECASE)


def clean_subject(subject: str) -> str:
    """Subject without leading ``Re:``/``Fwd:`` markers."""
    return _REPLY_PREFIX.sub("", subject).strip() or "(no subject)"


def suggest_severity(text: str) -> Severity:
    """Severity suggested by keywords in ``text``; ``medium`` when none match."""
    lowered = text.lower()
    for severity, keywords in SEVERITY_KEYWORDS:
        if any(re.search(rf"\b{re.escape(k)}", lowered) for k in keywords):
            return severity
    return "medium"


def _email_description(email: Email) -> str:
    return f"From: {email.sender}\n\n{email.body}".strip()


async def _record_mapping(
    context: ToolExecutionContext,
    source_type: EntityType,
    source_id: str,
    target_type: EntityType,
    target_id: str,
) -> None:
    await context.store.link_entities(source_type, source_id, target_type, target_id, CONVERTED_TO)
    await record_activity(context, source_type, source_id, "converted", target_type=target_type, target_id=target_id)
    logger.info(f"Converted {source_type} {source_id} to {target_type} {target_id}")


class CreateTaskFromEmailParameters(ToolParameters):
    email: str = Field(description="Email subject, sender or id")
    status: Optional[str] = column_field("Column for the new task (defaults to the first column)", default=None)
    priority: Optional[str] = Field(default=None, description=PRIORITY_HELP + "; suggested from the email when omitted")
    assignee: Optional[str] = Field(default=None, description="Assignee name, email or 'me'")


@tool(parameter_type=CreateTaskFromEmailParameters, category="conversion", mutating=True)
async def create_task_from_email(params: CreateTaskFromEmailParameters, context: ToolExecutionContext) -> ToolResult:
    """Create a task from an email, using its subject as title and body as description."""
    match = await lookup_email(context, params.email)
    if isinstance(match, ToolResult):
        return match
    email = match.entity
    workflow = await context.active_workflow()
    if params.status is not None:
        column_match = check_status(params.status, workflow)
        if isinstance(column_match, ToolResult):
            return column_match
        column = column_match.column
    else:
        column = workflow.initial_column()

    text = f"{email.subject} {email.body}"
    fields: Dict[str, Any] = {
        "description": _email_description(email),
        "priority": normalize_priority(params.priority) if params.priority else suggest_priority(text),
        "project_id": (await context.store.get_workspace()).current_project_id,
    }
    if params.assignee:
        user = await lookup_user(context, params.assignee)
        if isinstance(user, ToolResult):
            return user
        fields["assignee_id"] = user.entity.id
    if column.category == "done":
        fields["completed_at"] = context.now()

    task = await context.store.create_task(clean_subject(email.subject), column.id, **fields)
    await record_activity(context, "task", task.id, "created", status=column.id, source_email=email.id)
    await _record_mapping(context, "email", email.id, "task", task.id)

    return ToolResult.ok(
        f"Created task {task_label(task)} in {column.title} from email '{email.subject}'.",
        data={**dump(task), "sourceEmailId": email.id},
        inverse=InverseCommand(
            tool_name="delete_task", arguments={"task": task.id}, description=f"Delete task {task_label(task)}"
        ),
    )


class CreateTaskFromIncidentParameters(ToolParameters):
    incident: str = Field(description="Incident title or id")
    status: Optional[str] = column_field("Column for the new task (defaults to the first column)", default=None)
    assignee: Optional[str] = Field(
        default=None, description="Assignee name, email or 'me' (defaults to the incident's responder)"
    )


@tool(parameter_type=CreateTaskFromIncidentParameters, category="conversion", mutating=True)
async def create_task_from_incident(
    params: CreateTaskFromIncidentParameters, context: ToolExecutionContext
) -> ToolResult:
    """Create a follow-up task from an incident; priority follows the incident severity."""
    match = await lookup_incident(context, params.incident)
    if isinstance(match, ToolResult):
        return match
    incident = match.entity
    workflow = await context.active_workflow()
    if params.status is not None:
        column_match = check_status(params.status, workflow)
        if isinstance(column_match, ToolResult):
            return column_match
        column = column_match.column
    else:
        column = workflow.initial_column()

    fields: Dict[str, Any] = {
        "description": incident.description,
        "priority": SEVERITY_TO_PRIORITY[incident.severity],
        "tags": ["incident"],
        "assignee_id": incident.assignee_id,
        "project_id": (await context.store.get_workspace()).current_project_id,
    }
    if params.assignee:
        user = await lookup_user(context, params.assignee)
        if isinstance(user, ToolResult):
            return user
        fields["assignee_id"] = user.entity.id
    if column.category == "done":
        fields["completed_at"] = context.now()

    task = await context.store.create_task(incident.title, column.id, **fields)
    await record_activity(context, "task", task.id, "created", status=column.id, source_incident=incident.id)
    await _record_mapping(context, "incident", incident.id, "task", task.id)

    return ToolResult.ok(
        f"Created {task.priority} task {task_label(task)} from {incident.severity} incident '{incident.title}'.",
        data={**dump(task), "sourceIncidentId": incident.id},
        inverse=InverseCommand(
            tool_name="delete_task", arguments={"task": task.id}, description=f"Delete task {task_label(task)}"
        ),
    )


class CreateIncidentFromEmailParameters(ToolParameters):
    email: str = Field(description="Email subject, sender or id")
    severity: Optional[str] = Field(
        default=None, description=SEVERITY_HELP + "; suggested from the email text when omitted"
    )


@tool(parameter_type=CreateIncidentFromEmailParameters, category="conversion", mutating=True)
async def create_incident_from_email(
    params: CreateIncidentFromEmailParameters, context: ToolExecutionContext
) -> ToolResult:
    """Open an incident from an email, suggesting a severity from its text."""
    match = await lookup_email(context, params.email)
    if isinstance(match, ToolResult):
        return match
    email = match.entity
    title = clean_subject(email.subject)

    suggested = suggest_severity(f"{email.subject} {email.body}")
    severity = normalize_severity(params.severity) if params.severity else suggested
    incident = await context.store.create_incident(title, description=_email_description(email), severity=severity)
    await record_activity(context, "incident", incident.id, "created", severity=severity, source_email=email.id)
    await _record_mapping(context, "email", email.id, "incident", incident.id)

    origin = "chosen" if params.severity else "suggested from the email"
    return ToolResult.ok(
        f"Opened {severity} incident '{incident.title}' ({incident.id}) from email '{email.subject}' "
        f"(severity {origin}). SLA deadline {sla_deadline(incident):%Y-%m-%d %H:%M}.",
        data={**dump(incident), "sourceEmailId": email.id, "suggestedSeverity": suggested},
    )
