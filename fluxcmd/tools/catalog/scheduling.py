"""Scheduling tools: due dates, reminders and meetings."""

import logging
from datetime import timedelta
from typing import List, Optional

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.normalizers.dates import TIME_FORMAT_HELP, combine_date_time, parse_duration, parse_time_of_day
from fluxcmd.tools.catalog.common import (
    check_date,
    dump,
    format_date,
    invalid,
    lookup_task,
    lookup_user,
    record_activity,
    split_list,
    task_label,
)
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_TIME = (9, 0)
MAX_MEETING_DURATION = timedelta(hours=8)


class SetDueDateParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    due_date: str = Field(description="Due date such as 'tomorrow', 'in 3 days' or '2025-12-24'; 'none' clears it")


@tool(parameter_type=SetDueDateParameters, category="scheduling", mutating=True)
async def set_due_date(params: SetDueDateParameters, context: ToolExecutionContext) -> ToolResult:
    """Set or clear the due date of a task."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity

    due = check_date(params.due_date, context, "due date", allow_clear=True)
    if isinstance(due, ToolResult):
        return due

    updated = await context.store.update_task(task.id, {"due_date": due})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Task {task_label(task)} no longer exists")
    await record_activity(
        context, "task", task.id, "due_date_changed", previous=format_date(task.due_date), due=format_date(due)
    )

    message = (
        f"Task {task_label(task)} is now due {format_date(due)}."
        if due
        else f"Cleared the due date of task {task_label(task)}."
    )
    return ToolResult.ok(
        message,
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="set_due_date",
            arguments={"task": task.id, "due_date": format_date(task.due_date)},
            description=f"Restore the previous due date of task {task_label(task)}",
        ),
    )


class SetReminderParameters(ToolParameters):
    task: str = Field(description="Task title or id")
    date: str = Field(description="Day of the reminder, e.g. 'tomorrow' or 'next monday'")
    time: Optional[str] = Field(default=None, description="Time of day, e.g. '14:30' or '3pm' (defaults to 9am)")
    note: str = Field(default="", description="Reminder text")


@tool(parameter_type=SetReminderParameters, category="scheduling", mutating=True)
async def set_reminder(params: SetReminderParameters, context: ToolExecutionContext) -> ToolResult:
    """Set a reminder about a task."""
    match = await lookup_task(context, params.task)
    if isinstance(match, ToolResult):
        return match
    task = match.entity

    day = check_date(params.date, context, "reminder date")
    if isinstance(day, ToolResult):
        return day
    time_of_day = DEFAULT_REMINDER_TIME
    if params.time:
        parsed = parse_time_of_day(params.time)
        if parsed is None:
            return invalid(f"Could not understand the time '{params.time}'. {TIME_FORMAT_HELP}")
        time_of_day = parsed
    remind_at = combine_date_time(day, time_of_day)
    if remind_at < context.now():
        return invalid(f"The reminder time {remind_at:%Y-%m-%d %H:%M} is in the past")

    reminder = await context.store.create_reminder("task", task.id, remind_at, context.user_id, params.note)
    await record_activity(context, "task", task.id, "reminder_set", remind_at=remind_at.isoformat())
    return ToolResult.ok(
        f"I'll remind you about task {task_label(task)} on {remind_at:%Y-%m-%d at %H:%M}.",
        data=dump(reminder),
    )


class ScheduleMeetingParameters(ToolParameters):
    title: str = Field(description="Meeting title")
    date: str = Field(description="Day of the meeting, e.g. 'friday' or '2025-12-24'")
    time: str = Field(description="Start time, e.g. '10:00' or '2:30pm'")
    duration: str = Field(default="30m", description="Length such as '30m', '1h' or '1h30m'")
    attendees: Optional[str] = Field(default=None, description="Comma separated attendee names or emails")
    task: Optional[str] = Field(default=None, description="Task the meeting is about")


@tool(parameter_type=ScheduleMeetingParameters, category="scheduling", mutating=True)
async def schedule_meeting(params: ScheduleMeetingParameters, context: ToolExecutionContext) -> ToolResult:
    """Schedule a meeting, optionally about a task."""
    title = params.title.strip()
    if not title:
        return invalid("A meeting title is required")
    day = check_date(params.date, context, "meeting date")
    if isinstance(day, ToolResult):
        return day
    start_time = parse_time_of_day(params.time)
    if start_time is None:
        return invalid(f"Could not understand the time '{params.time}'. {TIME_FORMAT_HELP}")
    duration = parse_duration(params.duration)
    if duration is None or duration > MAX_MEETING_DURATION:
        return invalid(f"Could not use the duration '{params.duration}'. Use e.g. 30m, 1h or 1h30m (at most 8 hours)")

    attendee_ids: List[str] = []
    names: List[str] = []
    for fragment in split_list(params.attendees):
        user = await lookup_user(context, fragment)
        if isinstance(user, ToolResult):
            return user
        if user.entity.id not in attendee_ids:
            attendee_ids.append(user.entity.id)
            names.append(user.entity.name)

    task_id = None
    if params.task:
        match = await lookup_task(context, params.task)
        if isinstance(match, ToolResult):
            return match
        task_id = match.entity.id

    start = combine_date_time(day, start_time)
    meeting = await context.store.create_meeting(title, start, start + duration, attendee_ids, task_id)
    if task_id:
        await record_activity(context, "task", task_id, "meeting_scheduled", meeting_id=meeting.id)

    with_text = f" with {', '.join(names)}" if names else ""
    minutes = int(duration.total_seconds() // 60)
    return ToolResult.ok(
        f"Scheduled '{title}' on {start:%Y-%m-%d at %H:%M} for {minutes} minutes{with_text}.",
        data=dump(meeting),
    )
