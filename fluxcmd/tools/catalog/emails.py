"""Inbox tools."""

from typing import List, Literal

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.store.models import Email
from fluxcmd.tools.catalog.common import bullet_list, dump, invalid, lookup_email
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ErrorKind, InverseCommand, ToolParameters, ToolResult


def _email_line(email: Email) -> str:
    flags = ("" if email.is_read else "[unread] ") + ("[starred] " if email.is_starred else "")
    return f"{flags}{email.subject} from {email.sender} ({email.id})"


def _email_label(email: Email) -> str:
    return f"'{email.subject}' from {email.sender}"


class ListEmailsParameters(ToolParameters):
    folder: Literal["inbox", "sent", "drafts", "spam", "trash"] = Field(default="inbox", description="Mail folder")
    unread_only: bool = Field(default=False, description="Only unread emails")
    starred_only: bool = Field(default=False, description="Only starred emails")
    limit: int = Field(default=20, ge=1, le=200, description="Maximum number of emails")


@tool(parameter_type=ListEmailsParameters, category="emails")
async def list_emails(params: ListEmailsParameters, context: ToolExecutionContext) -> ToolResult:
    """List emails in a folder, newest first."""
    emails = [e for e in await context.store.list_emails() if e.folder == params.folder and not e.is_archived]
    if params.unread_only:
        emails = [e for e in emails if not e.is_read]
    if params.starred_only:
        emails = [e for e in emails if e.is_starred]
    emails.sort(key=lambda e: e.received_at, reverse=True)
    shown = emails[: params.limit]
    unread = sum(1 for e in emails if not e.is_read)
    return ToolResult.ok(
        f"{len(emails)} email(s) in {params.folder}, {unread} unread:\n"
        + bullet_list([_email_line(e) for e in shown], "No emails."),
        data={"emails": [dump(e) for e in shown], "count": len(emails), "unread": unread},
    )


class SearchEmailsParameters(ToolParameters):
    query: str = Field(description="Text to look for in sender, subject and body")
    limit: int = Field(default=20, ge=1, le=200, description="Maximum number of results")


@tool(parameter_type=SearchEmailsParameters, category="emails")
async def search_emails(params: SearchEmailsParameters, context: ToolExecutionContext) -> ToolResult:
    """Search emails by sender, subject or body."""
    needle = params.query.strip().lower()
    if not needle:
        return invalid("A search query is required")
    hits: List[Email] = [
        e
        for e in await context.store.list_emails()
        if needle in e.subject.lower() or needle in e.sender.lower() or needle in e.body.lower()
    ]
    shown = hits[: params.limit]
    return ToolResult.ok(
        f"Found {len(hits)} email(s) matching '{params.query.strip()}':\n"
        + bullet_list([_email_line(e) for e in shown], "No emails match."),
        data={"emails": [dump(e) for e in shown], "count": len(hits)},
    )


class MarkEmailReadParameters(ToolParameters):
    email: str = Field(description="Email subject, sender or id")
    read: bool = Field(default=True, description="True to mark read, False to mark unread")


@tool(parameter_type=MarkEmailReadParameters, category="emails", mutating=True)
async def mark_email_read(params: MarkEmailReadParameters, context: ToolExecutionContext) -> ToolResult:
    """Mark an email as read or unread."""
    match = await lookup_email(context, params.email)
    if isinstance(match, ToolResult):
        return match
    email = match.entity
    state = "read" if params.read else "unread"
    if email.is_read == params.read:
        return ToolResult.unchanged(f"Email {_email_label(email)} is already {state}.", data=dump(email))

    updated = await context.store.update_email(email.id, {"is_read": params.read})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Email {_email_label(email)} no longer exists")
    return ToolResult.ok(
        f"Marked email {_email_label(email)} as {state}.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="mark_email_read",
            arguments={"email": email.id, "read": email.is_read},
            description=f"Mark email {_email_label(email)} as {'read' if email.is_read else 'unread'} again",
        ),
    )


class StarEmailParameters(ToolParameters):
    email: str = Field(description="Email subject, sender or id")
    starred: bool = Field(default=True, description="True to star, False to unstar")


@tool(parameter_type=StarEmailParameters, category="emails", mutating=True)
async def star_email(params: StarEmailParameters, context: ToolExecutionContext) -> ToolResult:
    """Star or unstar an email."""
    match = await lookup_email(context, params.email)
    if isinstance(match, ToolResult):
        return match
    email = match.entity
    state = "starred" if params.starred else "unstarred"
    if email.is_starred == params.starred:
        return ToolResult.unchanged(f"Email {_email_label(email)} is already {state}.", data=dump(email))

    updated = await context.store.update_email(email.id, {"is_starred": params.starred})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Email {_email_label(email)} no longer exists")
    return ToolResult.ok(
        f"Email {_email_label(email)} is now {state}.",
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="star_email",
            arguments={"email": email.id, "starred": email.is_starred},
            description=f"Restore the star on email {_email_label(email)}",
        ),
    )


class ArchiveEmailParameters(ToolParameters):
    email: str = Field(description="Email subject, sender or id")
    archived: bool = Field(default=True, description="True to archive, False to move back to the folder")


@tool(parameter_type=ArchiveEmailParameters, category="emails", mutating=True)
async def archive_email(params: ArchiveEmailParameters, context: ToolExecutionContext) -> ToolResult:
    """Archive an email."""
    match = await lookup_email(context, params.email)
    if isinstance(match, ToolResult):
        return match
    email = match.entity
    if email.is_archived == params.archived:
        state = "archived" if params.archived else "not archived"
        return ToolResult.unchanged(f"Email {_email_label(email)} is already {state}.", data=dump(email))

    updated = await context.store.update_email(email.id, {"is_archived": params.archived})
    if updated is None:
        return ToolResult.failure(ErrorKind.NOT_FOUND, f"Email {_email_label(email)} no longer exists")
    message = (
        f"Archived email {_email_label(email)}."
        if params.archived
        else f"Moved email {_email_label(email)} back to {email.folder}."
    )
    return ToolResult.ok(
        message,
        data=dump(updated),
        inverse=InverseCommand(
            tool_name="archive_email",
            arguments={"email": email.id, "archived": email.is_archived},
            description=f"Undo archiving of email {_email_label(email)}",
        ),
    )
