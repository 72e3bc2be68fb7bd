"""Collaboration tools: comments and the activity feed."""

from typing import Literal, Optional

from pydantic import Field

from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.tools.catalog.common import bullet_list, display_name, dump, invalid, lookup_entity, record_activity
from fluxcmd.tools.decorators import tool
from fluxcmd.tools.models import ToolParameters, ToolResult

CommentableType = Literal["task", "project", "incident"]


class AddCommentParameters(ToolParameters):
    entity_type: CommentableType = Field(default="task", description="Kind of record to comment on")
    entity: str = Field(description="Title, name or id of the record")
    comment: str = Field(description="Comment text")


@tool(parameter_type=AddCommentParameters, category="collaboration", mutating=True)
async def add_comment(params: AddCommentParameters, context: ToolExecutionContext) -> ToolResult:
    """Add a comment or note to a task, project or incident."""
    text = params.comment.strip()
    if not text:
        return invalid("The comment text cannot be empty")
    match = await lookup_entity(context, params.entity_type, params.entity)
    if isinstance(match, ToolResult):
        return match

    comment = await context.store.add_comment(params.entity_type, match.entity.id, text, context.user_id)
    await record_activity(context, params.entity_type, match.entity.id, "commented", comment_id=comment.id)
    return ToolResult.ok(
        f"Added a comment to {params.entity_type} '{display_name(match.entity)}'.", data=dump(comment)
    )


class GetActivityFeedParameters(ToolParameters):
    entity_type: Optional[CommentableType] = Field(default=None, description="Only activity on this kind of record")
    entity: Optional[str] = Field(default=None, description="Only activity on this record (needs entity_type)")
    limit: int = Field(default=20, ge=1, le=200, description="Number of entries to return")


@tool(parameter_type=GetActivityFeedParameters, category="collaboration")
async def get_activity_feed(params: GetActivityFeedParameters, context: ToolExecutionContext) -> ToolResult:
    """Show recent activity, newest first."""
    entity_type = params.entity_type
    entity_id = None
    scope = "the workspace"
    if params.entity:
        entity_type = entity_type or "task"
        match = await lookup_entity(context, entity_type, params.entity)
        if isinstance(match, ToolResult):
            return match
        entity_id = match.entity.id
        scope = f"{entity_type} '{display_name(match.entity)}'"

    entries = await context.store.list_activity(entity_type, entity_id, params.limit)
    lines = [
        f"{e.created_at:%Y-%m-%d %H:%M} {e.action} on {e.entity_type} {e.entity_id}"
        + (f" by {e.user_id}" if e.user_id else "")
        for e in entries
    ]
    return ToolResult.ok(
        f"Recent activity for {scope}:\n{bullet_list(lines, 'No activity yet.')}",
        data={"entries": [dump(e) for e in entries]},
    )
