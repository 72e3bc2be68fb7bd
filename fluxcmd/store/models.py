"""Domain entities owned by the store.

Entities are frozen; stores produce updated copies with ``model_copy``.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from fluxcmd.core.models import StrictBaseModel
from fluxcmd.normalizers.aliases import Priority, Severity, Theme

EntityType = Literal["task", "project", "incident", "email", "sprint", "user"]
IncidentStatus = Literal["open", "investigating", "resolved", "closed"]
SprintStatus = Literal["planning", "active", "completed"]
EmailFolder = Literal["inbox", "sent", "drafts", "spam", "trash"]
NotificationKind = Literal["info", "success", "warning", "error"]


class User(StrictBaseModel):
    id: str
    name: str
    email: str = ""
    role: str = "member"


class Project(StrictBaseModel):
    id: str
    name: str
    description: str = ""
    color: str = ""
    owner_id: Optional[str] = None
    created_at: datetime
    archived: bool = False


class Task(StrictBaseModel):
    """A work item on the board."""

    id: str
    title: str
    description: str = ""
    status: str = Field(description="Column id of the active workflow")
    priority: Priority = "medium"
    assignee_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    due_date: Optional[datetime] = None
    project_id: Optional[str] = None
    parent_id: Optional[str] = None
    sprint_id: Optional[str] = None
    blocked_by: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    archived: bool = False


class Incident(StrictBaseModel):
    id: str
    title: str
    description: str = ""
    severity: Severity = "medium"
    status: IncidentStatus = "open"
    assignee_id: Optional[str] = None
    resolution: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None


class Email(StrictBaseModel):
    id: str
    sender: str
    subject: str
    body: str = ""
    folder: EmailFolder = "inbox"
    received_at: datetime
    is_read: bool = False
    is_starred: bool = False
    is_archived: bool = False


class Sprint(StrictBaseModel):
    id: str
    name: str
    goal: str = ""
    status: SprintStatus = "planning"
    start_date: datetime
    end_date: datetime


class Notification(StrictBaseModel):
    id: str
    title: str
    description: str = ""
    kind: NotificationKind = "info"
    is_read: bool = False
    created_at: datetime
    link_to: Optional[str] = None


class Comment(StrictBaseModel):
    id: str
    entity_type: EntityType
    entity_id: str
    author_id: Optional[str] = None
    body: str
    created_at: datetime


class ActivityEntry(StrictBaseModel):
    """One line of an entity's activity feed."""

    id: str
    entity_type: EntityType
    entity_id: str
    action: str
    user_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class EntityLink(StrictBaseModel):
    """A typed relation between two records.

    Conversions such as email to task are recorded with relation
    ``"converted_to"`` from the source to the record derived from it.
    """

    id: str
    source_type: EntityType
    source_id: str
    target_type: EntityType
    target_id: str
    relation: str = "relates_to"
    created_at: datetime


class Reminder(StrictBaseModel):
    id: str
    entity_type: EntityType
    entity_id: str
    user_id: Optional[str] = None
    remind_at: datetime
    note: str = ""


class Meeting(StrictBaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    attendee_ids: List[str] = Field(default_factory=list)
    task_id: Optional[str] = None


class WorkspaceState(StrictBaseModel):
    """UI-facing workspace preferences the tools can change."""

    theme: Theme = "system"
    current_page: str = "dashboard"
    workflow_mode: str = "agile"
    current_project_id: Optional[str] = None
    sidebar_collapsed: bool = False
