"""Notification tools."""

from typing import Literal

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.tools.catalog.common import invalid, split_list
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import InverseCommand, ToolParameters, ToolResult


class GetUnreadCountParameters(ToolParameters):
    pass


@tool(parameter_type=GetUnreadCountParameters, category="notifications")
async def get_unread_count(params: GetUnreadCountParameters, context: ToolExecutionContext) -> ToolResult:
    """Count unread notifications."""
    unread = [n for n in await context.store.list_notifications() if not n.is_read]
    if not unread:
        return ToolResult.ok("Your inbox is clear!", data={"unreadCount": 0})
    lines = "\n".join(f"- {n.title}" for n in sorted(unread, key=lambda n: n.created_at, reverse=True))
    return ToolResult.ok(
        f"You have {len(unread)} unread notification(s):\n{lines}",
        data={"unreadCount": len(unread)},
    )


class ClearNotificationsParameters(ToolParameters):
    action: Literal["mark_read", "delete_all"] = Field(
        default="mark_read", description="mark_read keeps the notifications, delete_all removes them"
    )


@tool(parameter_type=ClearNotificationsParameters, category="notifications", mutating=True)
async def clear_notifications(params: ClearNotificationsParameters, context: ToolExecutionContext) -> ToolResult:
    """Mark every notification as read, or delete them all.

    Marking as read can be undone; deleting cannot.
    """
    notifications = await context.store.list_notifications()
    if params.action == "delete_all":
        if not notifications:
            return ToolResult.unchanged("There are no notifications to clear.", data={"deleted": 0})
        deleted = await context.store.delete_notifications()
        return ToolResult.ok(f"Cleared all {deleted} notification(s).", data={"deleted": deleted})

    unread_ids = [n.id for n in notifications if not n.is_read]
    if not unread_ids:
        return ToolResult.unchanged("All notifications are already read.", data={"marked": 0, "ids": []})
    marked = await context.store.mark_notifications(unread_ids, read=True)
    return ToolResult.ok(
        f"Marked {marked} notification(s) as read.",
        data={"marked": marked, "ids": unread_ids},
        inverse=InverseCommand(
            tool_name="mark_notifications",
            arguments={"notifications": ", ".join(unread_ids), "read": False},
            description=f"Mark {marked} notification(s) as unread again",
        ),
    )


class MarkNotificationsParameters(ToolParameters):
    notifications: str = Field(description="Comma separated notification ids")
    read: bool = Field(default=True, description="True to mark read, False to mark unread")


@tool(parameter_type=MarkNotificationsParameters, category="notifications", mutating=True)
async def mark_notifications(params: MarkNotificationsParameters, context: ToolExecutionContext) -> ToolResult:
    """Mark specific notifications as read or unread."""
    ids = split_list(params.notifications)
    if not ids:
        return invalid("Provide at least one notification id")
    notifications = {n.id: n for n in await context.store.list_notifications()}
    missing = [i for i in ids if i not in notifications]
    if missing:
        return invalid(f"Unknown notification id(s): {', '.join(missing)}", alternatives=list(notifications))

    state = "read" if params.read else "unread"
    flipped = [i for i in ids if notifications[i].is_read != params.read]
    if not flipped:
        return ToolResult.unchanged(f"Those notifications are already {state}.", data={"marked": 0, "ids": []})
    marked = await context.store.mark_notifications(flipped, read=params.read)
    return ToolResult.ok(
        f"Marked {marked} notification(s) as {state}.",
        data={"marked": marked, "ids": flipped},
        inverse=InverseCommand(
            tool_name="mark_notifications",
            arguments={"notifications": ", ".join(flipped), "read": not params.read},
            description=f"Mark {marked} notification(s) as {'unread' if params.read else 'read'} again",
        ),
    )
