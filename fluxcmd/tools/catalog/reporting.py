"""Reporting tools: project summaries, cycle and resolution times, exports."""

import csv
import io
import json
import statistics
from datetime import timedelta
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.normalizers.aliases import PRIORITY_LEVELS, SEVERITY_LEVELS, normalize_severity
from fluxcmd.store.models import Task
from fluxcmd.tools.catalog.common import check_status, dump, format_date, lookup_project
from fluxcmd.tools.catalog.incidents import SLA_TARGETS, sla_state
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ToolParameters, ToolResult, column_field
from fluxcmd.workflows.models import WorkflowConfig

EXPORT_COLUMNS = ("id", "title", "status", "priority", "assignee_id", "due_date", "tags", "project_id")


async def _project_tasks(
    context: ToolExecutionContext, project: Optional[str]
) -> "tuple[List[Task], Optional[str]] | ToolResult":
    """Tasks of the named project, else of the current project, else all."""
    tasks = await context.store.list_tasks()
    if project:
        match = await lookup_project(context, project)
        if isinstance(match, ToolResult):
            return match
        return [t for t in tasks if t.project_id == match.entity.id], match.entity.name
    workspace = await context.store.get_workspace()
    if workspace.current_project_id:
        current = await context.store.get_project(workspace.current_project_id)
        if current is not None:
            return [t for t in tasks if t.project_id == current.id], current.name
    return tasks, None


def _hours(delta: timedelta) -> float:
    return round(delta.total_seconds() / 3600, 1)


def _duration_stats(durations: Sequence[timedelta]) -> Dict[str, Any]:
    if not durations:
        return {"count": 0, "averageHours": None, "medianHours": None, "minHours": None, "maxHours": None}
    hours = [d.total_seconds() / 3600 for d in durations]
    return {
        "count": len(hours),
        "averageHours": round(statistics.mean(hours), 1),
        "medianHours": round(statistics.median(hours), 1),
        "minHours": round(min(hours), 1),
        "maxHours": round(max(hours), 1),
    }


class SummarizeProjectParameters(ToolParameters):
    project: Optional[str] = Field(default=None, description="Project name (defaults to the current project)")


@tool(parameter_type=SummarizeProjectParameters, category="reporting")
async def summarize_project(params: SummarizeProjectParameters, context: ToolExecutionContext) -> ToolResult:
    """Summarize a project's tasks by column and priority, with overdue and blocked counts."""
    scoped = await _project_tasks(context, params.project)
    if isinstance(scoped, ToolResult):
        return scoped
    tasks, project_name = scoped
    workflow = await context.active_workflow()
    now = context.now()
    done_ids = set(workflow.done_column_ids())

    by_column = {c.id: 0 for c in workflow.columns}
    for task in tasks:
        by_column[task.status] = by_column.get(task.status, 0) + 1
    by_priority = {p: sum(1 for t in tasks if t.priority == p) for p in PRIORITY_LEVELS}
    open_tasks = [t for t in tasks if t.status not in done_ids]
    overdue = [t for t in open_tasks if t.due_date is not None and t.due_date < now]
    unassigned = [t for t in open_tasks if t.assignee_id is None]
    blocked = [t for t in open_tasks if t.blocked_by]
    done = len(tasks) - len(open_tasks)
    completion = round(100 * done / len(tasks)) if tasks else 0

    scope = f"Project '{project_name}'" if project_name else "All projects"
    column_text = ", ".join(f"{c.title} {by_column[c.id]}" for c in workflow.columns)
    lines = [
        f"{scope}: {len(tasks)} task(s), {completion}% done",
        f"By column: {column_text}",
        f"By priority: {', '.join(f'{p} {n}' for p, n in by_priority.items())}",
        f"Overdue: {len(overdue)}, unassigned: {len(unassigned)}, blocked: {len(blocked)}",
    ]
    return ToolResult.ok(
        "\n".join(lines),
        data={
            "project": project_name,
            "total": len(tasks),
            "completionPercent": completion,
            "byColumn": by_column,
            "byPriority": by_priority,
            "overdue": [t.id for t in overdue],
            "unassigned": [t.id for t in unassigned],
            "blocked": [t.id for t in blocked],
        },
    )


class GetCycleTimeMetricsParameters(ToolParameters):
    project: Optional[str] = Field(default=None, description="Project name (defaults to the current project)")
    days: int = Field(default=30, ge=1, le=365, description="Look back this many days")


@tool(parameter_type=GetCycleTimeMetricsParameters, category="reporting")
async def get_cycle_time_metrics(params: GetCycleTimeMetricsParameters, context: ToolExecutionContext) -> ToolResult:
    """Report how long completed tasks took from creation to done."""
    scoped = await _project_tasks(context, params.project)
    if isinstance(scoped, ToolResult):
        return scoped
    tasks, project_name = scoped
    # Archived tasks still count towards throughput
    archived = [t for t in await context.store.list_tasks(include_archived=True) if t.archived]
    if project_name is not None:
        project_ids = {t.project_id for t in tasks}
        archived = [t for t in archived if t.project_id in project_ids]

    since = context.now() - timedelta(days=params.days)
    completed = [t for t in tasks + archived if t.completed_at is not None and t.completed_at >= since]
    stats = _duration_stats([t.completed_at - t.created_at for t in completed])
    by_priority = {
        p: _duration_stats([t.completed_at - t.created_at for t in completed if t.priority == p])
        for p in PRIORITY_LEVELS
    }

    if not completed:
        message = f"No tasks were completed in the last {params.days} days."
    else:
        message = (
            f"{stats['count']} task(s) completed in the last {params.days} days. "
            f"Average cycle time {stats['averageHours']}h, median {stats['medianHours']}h "
            f"(fastest {stats['minHours']}h, slowest {stats['maxHours']}h)."
        )
    return ToolResult.ok(message, data={"overall": stats, "byPriority": by_priority, "days": params.days})


class GetResolutionTimeMetricsParameters(ToolParameters):
    severity: Optional[str] = Field(default=None, description="Only incidents of this severity")


@tool(parameter_type=GetResolutionTimeMetricsParameters, category="reporting")
async def get_resolution_time_metrics(
    params: GetResolutionTimeMetricsParameters, context: ToolExecutionContext
) -> ToolResult:
    """Report incident resolution times and SLA breaches per severity."""
    incidents = await context.store.list_incidents()
    severities = list(SEVERITY_LEVELS)
    if params.severity is not None:
        severity = normalize_severity(params.severity)
        incidents = [i for i in incidents if i.severity == severity]
        severities = [severity]

    now = context.now()
    report: Dict[str, Any] = {}
    lines: List[str] = []
    for severity in reversed(severities):
        group = [i for i in incidents if i.severity == severity]
        resolved = [i for i in group if i.resolved_at is not None]
        states = [sla_state(i, now) for i in group]
        stats = _duration_stats([i.resolved_at - i.created_at for i in resolved])
        entry = {
            **stats,
            "targetHours": _hours(SLA_TARGETS[severity]),
            "breached": states.count("breached"),
            "atRisk": states.count("at_risk"),
            "open": len(group) - len(resolved),
        }
        report[severity] = entry
        if group:
            average = f"avg {stats['averageHours']}h" if stats["count"] else "none resolved"
            lines.append(
                f"{severity}: {len(group)} incident(s), {average} (target {entry['targetHours']}h), "
                f"{entry['breached']} breached, {entry['atRisk']} at risk"
            )

    breached = sum(e["breached"] for e in report.values())
    at_risk = sum(e["atRisk"] for e in report.values())
    header = f"{len(incidents)} incident(s): {breached} SLA breach(es), {at_risk} at risk."
    return ToolResult.ok(
        header + ("\n" + "\n".join(lines) if lines else ""),
        data={"bySeverity": report, "breached": breached, "atRisk": at_risk},
    )


def _export_row(task: Task) -> Dict[str, str]:
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "assignee_id": task.assignee_id or "",
        "due_date": format_date(task.due_date) if task.due_date else "",
        "tags": ", ".join(task.tags),
        "project_id": task.project_id or "",
    }


def render_export(tasks: Sequence[Task], fmt: str, workflow: WorkflowConfig) -> str:
    """Render tasks as CSV, JSON or a Markdown table."""
    if fmt == "json":
        return json.dumps([dump(t) for t in tasks], indent=2)
    rows = [_export_row(t) for t in tasks]
    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()

    def cell(value: str) -> str:
        return value.replace("|", "\\|")

    header = "| Title | Status | Priority | Due | Tags |"
    divider = "| --- | --- | --- | --- | --- |"
    body = []
    for row in rows:
        column = workflow.get_column(row["status"])
        status = column.title if column else row["status"]
        body.append(
            f"| {cell(row['title'])} | {status} | {row['priority']} | {row['due_date'] or '-'} | {cell(row['tags'])} |"
        )
    return "\n".join([header, divider, *body])


class ExportTasksParameters(ToolParameters):
    format: Literal["csv", "json", "markdown"] = Field(default="csv", description="Output format")
    status: Optional[str] = column_field("Only tasks in this column", default=None)
    project: Optional[str] = Field(default=None, description="Project name (defaults to all projects)")


@tool(parameter_type=ExportTasksParameters, category="reporting")
async def export_tasks(params: ExportTasksParameters, context: ToolExecutionContext) -> ToolResult:
    """Export tasks as CSV, JSON or Markdown."""
    workflow = await context.active_workflow()
    tasks = await context.store.list_tasks()
    if params.project:
        project = await lookup_project(context, params.project)
        if isinstance(project, ToolResult):
            return project
        tasks = [t for t in tasks if t.project_id == project.entity.id]
    if params.status is not None:
        column = check_status(params.status, workflow)
        if isinstance(column, ToolResult):
            return column
        tasks = [t for t in tasks if t.status == column.column_id]

    content = render_export(tasks, params.format, workflow)
    return ToolResult.ok(
        f"Exported {len(tasks)} task(s) as {params.format}.",
        data={"format": params.format, "count": len(tasks), "content": content},
    )
