"""Store interface consumed by the tool catalog.

Any persistence adapter (local, remote backend) implements ``Store``. Lookups
return None and deletions return False when the record does not exist;
adapters raise ``StoreError`` only when the backend itself fails.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from fluxcmd.store.models import (
    ActivityEntry,
    Comment,
    Email,
    EntityLink,
    EntityType,
    Incident,
    Meeting,
    Notification,
    Project,
    Reminder,
    Sprint,
    Task,
    User,
    WorkspaceState,
)

# Methods that change store state; everything else is a read
MUTATING_METHODS = (
    "create_task",
    "update_task",
    "delete_task",
    "archive_tasks",
    "create_project",
    "update_project",
    "create_incident",
    "update_incident",
    "update_email",
    "create_sprint",
    "update_sprint",
    "delete_sprint",
    "mark_notifications",
    "delete_notifications",
    "add_comment",
    "log_activity",
    "link_entities",
    "unlink_entities",
    "create_reminder",
    "create_meeting",
    "update_workspace",
)


@runtime_checkable
class Store(Protocol):
    """Asynchronous application state API."""

    # Tasks
    async def list_tasks(self, include_archived: bool = False) -> List[Task]: ...

    async def get_task(self, task_id: str) -> Optional[Task]: ...

    async def create_task(self, title: str, status: str, **fields: Any) -> Task: ...

    async def update_task(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]: ...

    async def delete_task(self, task_id: str) -> bool: ...

    async def archive_tasks(self, task_ids: Sequence[str]) -> int: ...

    # Users and projects
    async def list_users(self) -> List[User]: ...

    async def get_user(self, user_id: str) -> Optional[User]: ...

    async def list_projects(self) -> List[Project]: ...

    async def get_project(self, project_id: str) -> Optional[Project]: ...

    async def create_project(self, name: str, **fields: Any) -> Project: ...

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> Optional[Project]: ...

    # Incidents
    async def list_incidents(self) -> List[Incident]: ...

    async def get_incident(self, incident_id: str) -> Optional[Incident]: ...

    async def create_incident(self, title: str, **fields: Any) -> Incident: ...

    async def update_incident(self, incident_id: str, changes: Dict[str, Any]) -> Optional[Incident]: ...

    # Emails
    async def list_emails(self) -> List[Email]: ...

    async def get_email(self, email_id: str) -> Optional[Email]: ...

    async def update_email(self, email_id: str, changes: Dict[str, Any]) -> Optional[Email]: ...

    # Sprints
    async def list_sprints(self) -> List[Sprint]: ...

    async def get_sprint(self, sprint_id: str) -> Optional[Sprint]: ...

    async def create_sprint(self, name: str, start_date: datetime, end_date: datetime, **fields: Any) -> Sprint: ...

    async def update_sprint(self, sprint_id: str, changes: Dict[str, Any]) -> Optional[Sprint]: ...

    async def delete_sprint(self, sprint_id: str) -> bool:
        """Delete a sprint; its tasks go back to the backlog."""
        ...

    # Notifications
    async def list_notifications(self) -> List[Notification]: ...

    async def mark_notifications(self, notification_ids: Sequence[str], read: bool) -> int:
        """Set the read flag and return how many notifications changed."""
        ...

    async def delete_notifications(self) -> int: ...

    # Collaboration
    async def add_comment(
        self, entity_type: EntityType, entity_id: str, body: str, author_id: Optional[str] = None
    ) -> Comment: ...

    async def list_comments(self, entity_type: EntityType, entity_id: str) -> List[Comment]: ...

    async def log_activity(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: str,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityEntry: ...

    async def list_activity(
        self, entity_type: Optional[EntityType] = None, entity_id: Optional[str] = None, limit: int = 20
    ) -> List[ActivityEntry]: ...

    # Relationships
    async def link_entities(
        self,
        source_type: EntityType,
        source_id: str,
        target_type: EntityType,
        target_id: str,
        relation: str = "relates_to",
    ) -> EntityLink: ...

    async def unlink_entities(
        self,
        source_type: EntityType,
        source_id: str,
        target_type: EntityType,
        target_id: str,
        relation: Optional[str] = None,
    ) -> bool: ...

    async def list_links(self, entity_type: EntityType, entity_id: str) -> List[EntityLink]: ...

    # Scheduling
    async def create_reminder(
        self,
        entity_type: EntityType,
        entity_id: str,
        remind_at: datetime,
        user_id: Optional[str] = None,
        note: str = "",
    ) -> Reminder: ...

    async def list_reminders(self) -> List[Reminder]: ...

    async def create_meeting(
        self,
        title: str,
        start: datetime,
        end: datetime,
        attendee_ids: Optional[List[str]] = None,
        task_id: Optional[str] = None,
    ) -> Meeting: ...

    async def list_meetings(self) -> List[Meeting]: ...

    # Workspace and session
    async def get_workspace(self) -> WorkspaceState: ...

    async def update_workspace(self, changes: Dict[str, Any]) -> WorkspaceState: ...

    async def is_session_valid(self) -> bool: ...
