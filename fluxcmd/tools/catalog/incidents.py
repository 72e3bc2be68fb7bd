"""Incident tools.

Incident statuses follow their own fixed lifecycle, which is validated the
same way task statuses are validated against the board workflow.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.normalizers.aliases import SEVERITY_LEVELS, Severity, normalize_severity
from fluxcmd.store.models import Incident
from fluxcmd.tools.catalog.common import (
    CLEAR_WORDS,
    bullet_list,
    check_status,
    dump,
    invalid,
    lookup_incident,
    lookup_user,
    record_activity,
)
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult
from fluxcmd.workflows.models import WorkflowColumn, WorkflowConfig

logger = logging.getLogger(__name__)

INCIDENT_LIFECYCLE = WorkflowConfig(
    id="incident",
    name="Incident",
    description="Incident lifecycle",
    columns=[
        WorkflowColumn(id="open", title="Open", category="backlog"),
        WorkflowColumn(id="investigating", title="Investigating", category="active"),
        WorkflowColumn(id="resolved", title="Resolved", category="done"),
        WorkflowColumn(id="closed", title="Closed", category="done"),
    ],
)

# Resolution targets per severity
SLA_TARGETS: Dict[Severity, timedelta] = {
    "critical": timedelta(hours=4),
    "high": timedelta(hours=8),
    "medium": timedelta(hours=24),
    "low": timedelta(hours=72),
}

# Share of the target left below which an open incident is at risk
SLA_AT_RISK_FRACTION = 0.25

SEVERITY_HELP = "Severity: low, medium, high or critical (aliases such as sev1 or outage are accepted)"


def sla_deadline(incident: Incident) -> datetime:
    return incident.created_at + SLA_TARGETS[incident.severity]


def sla_state(incident: Incident, now: datetime) -> str:
    """One of ``met``, ``breached``, ``at_risk`` or ``on_track``."""
    deadline = sla_deadline(incident)
    if incident.resolved_at is not None:
        return "met" if incident.resolved_at <= deadline else "breached"
    if now > deadline:
        return "breached"
    remaining = deadline - now
    if remaining < SLA_TARGETS[incident.severity] * SLA_AT_RISK_FRACTION:
        return "at_risk"
    return "on_track"


def is_open(incident: Incident) -> bool:
    return incident.status in ("open", "investigating")


def _incident_line(incident: Incident, now: datetime) -> str:
    line = f"{incident.title} ({incident.id}) [{incident.severity}, {incident.status}]"
    if is_open(incident):
        line += f" SLA {sla_state(incident, now).replace('_', ' ')}"
    return line


class CreateIncidentParameters(ToolParameters):
    title: str = Field(description="Short summary of the incident")
    description: str = Field(default="", description="What is happening")
    severity: Optional[str] = Field(default=None, description=SEVERITY_HELP)
    assignee: Optional[str] = Field(default=None, description="Responder name, email or 'me'")


@tool(parameter_type=CreateIncidentParameters, category="incidents", mutating=True)
async def create_incident(params: CreateIncidentParameters, context: ToolExecutionContext) -> ToolResult:
    """Open a new incident."""
    title = params.title.strip()
    if not title:
        return invalid("An incident title is required")
    fields: Dict[str, Any] = {"description": params.description, "severity": normalize_severity(params.severity)}
    if params.assignee:
        user = await lookup_user(context, params.assignee)
        if isinstance(user, ToolResult):
            return user
        fields["assignee_id"] = user.entity.id

    incident = await context.store.create_incident(title, **fields)
    await record_activity(context, "incident", incident.id, "created", severity=incident.severity)
    logger.info(f"Opened incident {incident.id} ({incident.severity})")
    return ToolResult.ok(
        f"Opened {incident.severity} incident '{incident.title}' ({incident.id}). "
        f"SLA deadline {sla_deadline(incident):%Y-%m-%d %H:%M}.",
        data={**dump(incident), "slaDeadline": sla_deadline(incident).isoformat()},
    )


class UpdateIncidentParameters(ToolParameters):
    incident: str = Field(description="Incident title or id")
    status: Optional[str] = Field(default=None, description="New status: open, investigating, resolved or closed")
    severity: Optional[str] = Field(default=None, description=SEVERITY_HELP)
    assignee: Optional[str] = Field(default=None, description="Responder name, email or 'me'; 'none' unassigns")
    description: Optional[str] = Field(default=None, description="New description")
    resolution: Optional[str] = Field(default=None, description="How it was fixed; 'none' clears it")


@tool(parameter_type=UpdateIncidentParameters, category="incidents", mutating=True)
async def update_incident(params: UpdateIncidentParameters, context: ToolExecutionContext) -> ToolResult:
    """Change the status, severity, assignee, description or resolution of an incident."""
    match = await lookup_incident(context, params.incident)
    if isinstance(match, ToolResult):
        return match
    incident = match.entity

    changes: Dict[str, Any] = {}
    previous: Dict[str, Any] = {}
    if params.status is not None:
        column = check_status(params.status, INCIDENT_LIFECYCLE)
        if isinstance(column, ToolResult):
            return column
        changes["status"] = column.column_id
        if column.column.category == "done":
            changes["resolved_at"] = incident.resolved_at or context.now()
        else:
            # Reopened incidents lose their resolution
            changes["resolved_at"] = None
            changes["resolution"] = None
            if incident.resolution:
                previous["resolution"] = incident.resolution
        previous["status"] = incident.status
    if params.severity is not None:
        changes["severity"] = normalize_severity(params.severity)
        previous["severity"] = incident.severity
    if params.assignee is not None:
        if params.assignee.strip().lower() in CLEAR_WORDS:
            changes["assignee_id"] = None
        else:
            user = await lookup_user(context, params.assignee)
            if isinstance(user, ToolResult):
                return user
            changes["assignee_id"] = user.entity.id
        previous["assignee"] = incident.assignee_id or "none"
    if params.description is not None:
        changes["description"] = params.description
        previous["description"] = incident.description
    if params.resolution is not None:
        text = params.resolution.strip()
        changes["resolution"] = None if text.lower() in CLEAR_WORDS else text
        previous["resolution"] = incident.resolution or "none"

    if not changes:
        return invalid(
            "Nothing to update: provide at least one of status, severity, assignee, description or resolution"
        )

    updated = await context.store.update_incident(incident.id, changes)
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Incident '{incident.title}' no longer exists")
    await record_activity(context, "incident", incident.id, "updated", fields=sorted(changes))

    return ToolResult.ok(
        f"Updated {', '.join(sorted(previous))} of incident '{updated.title}'.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="update_incident",
            arguments={"incident": incident.id, **previous},
            description=f"Restore the previous {', '.join(sorted(previous))} of incident '{incident.title}'",
        ),
    )


class ResolveIncidentParameters(ToolParameters):
    incident: str = Field(description="Incident title or id")
    resolution: str = Field(default="", description="How it was fixed")


@tool(parameter_type=ResolveIncidentParameters, category="incidents", mutating=True)
async def resolve_incident(params: ResolveIncidentParameters, context: ToolExecutionContext) -> ToolResult:
    """Mark an incident as resolved."""
    match = await lookup_incident(context, params.incident)
    if isinstance(match, ToolResult):
        return match
    incident = match.entity
    if not is_open(incident):
        return ToolResult.failure(
            ErrorKind.PRECONDITION, f"Incident '{incident.title}' is already {incident.status}"
        )

    now = context.now()
    updated = await context.store.update_incident(
        incident.id, {"status": "resolved", "resolved_at": now, "resolution": params.resolution or None}
    )
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Incident '{incident.title}' no longer exists")
    await record_activity(context, "incident", incident.id, "resolved")

    state = sla_state(updated, now)
    return ToolResult.ok(
        f"Resolved incident '{incident.title}' after {(now - incident.created_at).total_seconds() / 3600:.1f} hours "
        f"(SLA {state}).",
        data={**dump(updated), "sla": state},
        inverse=InverseCommand(
            tool_name="update_incident",
            arguments={
                "incident": incident.id,
                "status": incident.status,
                "resolution": incident.resolution or "none",
            },
            description=f"Reopen incident '{incident.title}'",
        ),
    )


class ListIncidentsParameters(ToolParameters):
    status: Optional[str] = Field(default=None, description="Only incidents with this status")
    severity: Optional[str] = Field(default=None, description="Only incidents with this severity")
    open_only: bool = Field(default=False, description="Only open or investigating incidents")


@tool(parameter_type=ListIncidentsParameters, category="incidents")
async def list_incidents(params: ListIncidentsParameters, context: ToolExecutionContext) -> ToolResult:
    """List incidents with their SLA state."""
    incidents: List[Incident] = await context.store.list_incidents()
    if params.status is not None:
        column = check_status(params.status, INCIDENT_LIFECYCLE)
        if isinstance(column, ToolResult):
            return column
        incidents = [i for i in incidents if i.status == column.column_id]
    if params.severity is not None:
        severity = normalize_severity(params.severity)
        incidents = [i for i in incidents if i.severity == severity]
    if params.open_only:
        incidents = [i for i in incidents if is_open(i)]

    # Most severe first, then oldest
    rank = {s: n for n, s in enumerate(reversed(SEVERITY_LEVELS))}
    incidents.sort(key=lambda i: (rank[i.severity], i.created_at))
    now = context.now()
    return ToolResult.ok(
        f"{len(incidents)} incident(s):\n"
        + bullet_list([_incident_line(i, now) for i in incidents], "No incidents match."),
        data={"incidents": [dump(i) for i in incidents], "count": len(incidents)},
    )
