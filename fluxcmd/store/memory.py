"""In-memory store implementation.

A complete ``Store`` that keeps every record in process memory, suitable for
local mode, development and tests. Records keep insertion order, which is the
iteration order the entity resolver relies on.

WARNING: All data is volatile and lost when the process terminates.
"""

import asyncio
import copy
import itertools
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from fluxcmd.core.errors.errors import StoreError
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

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class InMemoryStore:
    """Pure in-memory implementation of the ``Store`` protocol.

    All operations take a single ``asyncio.Lock`` so each call is atomic with
    respect to other coroutines. Nothing coordinates sequences of calls: two
    tools racing on the same task can still interleave their read and write.
    """

    def __init__(
        self,
        users: Iterable[User] = (),
        projects: Iterable[Project] = (),
        tasks: Iterable[Task] = (),
        incidents: Iterable[Incident] = (),
        emails: Iterable[Email] = (),
        sprints: Iterable[Sprint] = (),
        notifications: Iterable[Notification] = (),
        workspace: Optional[WorkspaceState] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._users: Dict[str, User] = {u.id: u for u in users}
        self._projects: Dict[str, Project] = {p.id: p for p in projects}
        self._tasks: Dict[str, Task] = {t.id: t for t in tasks}
        self._incidents: Dict[str, Incident] = {i.id: i for i in incidents}
        self._emails: Dict[str, Email] = {e.id: e for e in emails}
        self._sprints: Dict[str, Sprint] = {s.id: s for s in sprints}
        self._notifications: Dict[str, Notification] = {n.id: n for n in notifications}
        self._comments: List[Comment] = []
        self._activity: List[ActivityEntry] = []
        self._links: List[EntityLink] = []
        self._reminders: List[Reminder] = []
        self._meetings: List[Meeting] = []
        self._workspace = workspace or WorkspaceState()
        self._session_valid = True
        self._clock = clock
        self._counters: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

    # -- helpers ---------------------------------------------------------

    def _next_id(self, prefix: str, existing: Iterable[str] = ()) -> str:
        counter = self._counters.setdefault(prefix, itertools.count(1))
        taken = set(existing)
        while True:
            candidate = f"{prefix}-{next(counter)}"
            if candidate not in taken:
                return candidate

    @staticmethod
    def _build(model: type[M], data: Dict[str, Any], operation: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"]) or model.__name__
            raise StoreError(f"Invalid {model.__name__} data for '{field}': {first['msg']}", operation, cause=e) from e

    def _apply(self, record: M, changes: Dict[str, Any], operation: str) -> M:
        return self._build(type(record), {**record.model_dump(), **changes}, operation)

    @staticmethod
    def _copy(value: Any) -> Any:
        return copy.deepcopy(value)

    def set_session_valid(self, valid: bool) -> None:
        """Mark the session as live or expired."""
        self._session_valid = valid

    # -- tasks -----------------------------------------------------------

    async def list_tasks(self, include_archived: bool = False) -> List[Task]:
        async with self._lock:
            return [self._copy(t) for t in self._tasks.values() if include_archived or not t.archived]

    async def get_task(self, task_id: str) -> Optional[Task]:
        async with self._lock:
            task = self._tasks.get(task_id)
            return self._copy(task) if task else None

    async def create_task(self, title: str, status: str, **fields: Any) -> Task:
        async with self._lock:
            now = self._clock()
            data = {
                "id": self._next_id("task", self._tasks),
                "title": title,
                "status": status,
                "created_at": now,
                "updated_at": now,
                **fields,
            }
            task = self._build(Task, data, "create_task")
            self._tasks[task.id] = task
            logger.debug(f"Created task {task.id}: {task.title}")
            return self._copy(task)

    async def update_task(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        async with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            updated = self._apply(task, {**changes, "updated_at": self._clock()}, "update_task")
            self._tasks[task_id] = updated
            return self._copy(updated)

    async def delete_task(self, task_id: str) -> bool:
        async with self._lock:
            if task_id not in self._tasks:
                return False
            del self._tasks[task_id]
            # Drop dangling references to the deleted task
            for other_id, other in list(self._tasks.items()):
                changes: Dict[str, Any] = {}
                if task_id in other.blocked_by:
                    changes["blocked_by"] = [b for b in other.blocked_by if b != task_id]
                if other.parent_id == task_id:
                    changes["parent_id"] = None
                if changes:
                    self._tasks[other_id] = other.model_copy(update=changes)
            self._links = [
                link
                for link in self._links
                if not (
                    (link.source_type == "task" and link.source_id == task_id)
                    or (link.target_type == "task" and link.target_id == task_id)
                )
            ]
            logger.debug(f"Deleted task {task_id}")
            return True

    async def archive_tasks(self, task_ids: Sequence[str]) -> int:
        async with self._lock:
            now = self._clock()
            count = 0
            for task_id in task_ids:
                task = self._tasks.get(task_id)
                if task is None or task.archived:
                    continue
                self._tasks[task_id] = task.model_copy(update={"archived": True, "updated_at": now})
                count += 1
            return count

    # -- users and projects ----------------------------------------------

    async def list_users(self) -> List[User]:
        async with self._lock:
            return [self._copy(u) for u in self._users.values()]

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._lock:
            user = self._users.get(user_id)
            return self._copy(user) if user else None

    async def list_projects(self) -> List[Project]:
        async with self._lock:
            return [self._copy(p) for p in self._projects.values()]

    async def get_project(self, project_id: str) -> Optional[Project]:
        async with self._lock:
            project = self._projects.get(project_id)
            return self._copy(project) if project else None

    async def create_project(self, name: str, **fields: Any) -> Project:
        async with self._lock:
            data = {
                "id": self._next_id("project", self._projects),
                "name": name,
                "created_at": self._clock(),
                **fields,
            }
            project = self._build(Project, data, "create_project")
            self._projects[project.id] = project
            return self._copy(project)

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> Optional[Project]:
        async with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                return None
            updated = self._apply(project, changes, "update_project")
            self._projects[project_id] = updated
            return self._copy(updated)

    # -- incidents -------------------------------------------------------

    async def list_incidents(self) -> List[Incident]:
        async with self._lock:
            return [self._copy(i) for i in self._incidents.values()]

    async def get_incident(self, incident_id: str) -> Optional[Incident]:
        async with self._lock:
            incident = self._incidents.get(incident_id)
            return self._copy(incident) if incident else None

    async def create_incident(self, title: str, **fields: Any) -> Incident:
        async with self._lock:
            data = {
                "id": self._next_id("incident", self._incidents),
                "title": title,
                "created_at": self._clock(),
                **fields,
            }
            incident = self._build(Incident, data, "create_incident")
            self._incidents[incident.id] = incident
            return self._copy(incident)

    async def update_incident(self, incident_id: str, changes: Dict[str, Any]) -> Optional[Incident]:
        async with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                return None
            updated = self._apply(incident, changes, "update_incident")
            self._incidents[incident_id] = updated
            return self._copy(updated)

    # -- emails ----------------------------------------------------------

    async def list_emails(self) -> List[Email]:
        async with self._lock:
            return [self._copy(e) for e in self._emails.values()]

    async def get_email(self, email_id: str) -> Optional[Email]:
        async with self._lock:
            email = self._emails.get(email_id)
            return self._copy(email) if email else None

    async def update_email(self, email_id: str, changes: Dict[str, Any]) -> Optional[Email]:
        async with self._lock:
            email = self._emails.get(email_id)
            if email is None:
                return None
            updated = self._apply(email, changes, "update_email")
            self._emails[email_id] = updated
            return self._copy(updated)

    # -- sprints ---------------------------------------------------------

    async def list_sprints(self) -> List[Sprint]:
        async with self._lock:
            return [self._copy(s) for s in self._sprints.values()]

    async def get_sprint(self, sprint_id: str) -> Optional[Sprint]:
        async with self._lock:
            sprint = self._sprints.get(sprint_id)
            return self._copy(sprint) if sprint else None

    async def create_sprint(self, name: str, start_date: datetime, end_date: datetime, **fields: Any) -> Sprint:
        async with self._lock:
            data = {
                "id": self._next_id("sprint", self._sprints),
                "name": name,
                "start_date": start_date,
                "end_date": end_date,
                **fields,
            }
            sprint = self._build(Sprint, data, "create_sprint")
            self._sprints[sprint.id] = sprint
            logger.debug(f"Created sprint {sprint.id}: {sprint.name}")
            return self._copy(sprint)

    async def update_sprint(self, sprint_id: str, changes: Dict[str, Any]) -> Optional[Sprint]:
        async with self._lock:
            sprint = self._sprints.get(sprint_id)
            if sprint is None:
                return None
            updated = self._apply(sprint, changes, "update_sprint")
            self._sprints[sprint_id] = updated
            return self._copy(updated)

    async def delete_sprint(self, sprint_id: str) -> bool:
        async with self._lock:
            if sprint_id not in self._sprints:
                return False
            del self._sprints[sprint_id]
            now = self._clock()
            for task_id, task in list(self._tasks.items()):
                if task.sprint_id == sprint_id:
                    self._tasks[task_id] = task.model_copy(update={"sprint_id": None, "updated_at": now})
            logger.debug(f"Deleted sprint {sprint_id}")
            return True

    # -- notifications ---------------------------------------------------

    async def list_notifications(self) -> List[Notification]:
        async with self._lock:
            return [self._copy(n) for n in self._notifications.values()]

    async def mark_notifications(self, notification_ids: Sequence[str], read: bool) -> int:
        async with self._lock:
            count = 0
            for notification_id in notification_ids:
                notification = self._notifications.get(notification_id)
                if notification is None or notification.is_read == read:
                    continue
                self._notifications[notification_id] = notification.model_copy(update={"is_read": read})
                count += 1
            return count

    async def delete_notifications(self) -> int:
        async with self._lock:
            count = len(self._notifications)
            self._notifications.clear()
            return count

    # -- collaboration ---------------------------------------------------

    async def add_comment(
        self, entity_type: EntityType, entity_id: str, body: str, author_id: Optional[str] = None
    ) -> Comment:
        async with self._lock:
            comment = Comment(
                id=self._next_id("comment"),
                entity_type=entity_type,
                entity_id=entity_id,
                author_id=author_id,
                body=body,
                created_at=self._clock(),
            )
            self._comments.append(comment)
            return self._copy(comment)

    async def list_comments(self, entity_type: EntityType, entity_id: str) -> List[Comment]:
        async with self._lock:
            return [
                self._copy(c) for c in self._comments if c.entity_type == entity_type and c.entity_id == entity_id
            ]

    async def log_activity(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: str,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityEntry:
        async with self._lock:
            entry = ActivityEntry(
                id=self._next_id("activity"),
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                user_id=user_id,
                details=dict(details or {}),
                created_at=self._clock(),
            )
            self._activity.append(entry)
            return self._copy(entry)

    async def list_activity(
        self, entity_type: Optional[EntityType] = None, entity_id: Optional[str] = None, limit: int = 20
    ) -> List[ActivityEntry]:
        """Return the most recent activity first."""
        async with self._lock:
            matching = [
                a
                for a in self._activity
                if (entity_type is None or a.entity_type == entity_type)
                and (entity_id is None or a.entity_id == entity_id)
            ]
            return [self._copy(a) for a in reversed(matching[-limit:])] if limit > 0 else []

    # -- relationships ---------------------------------------------------

    async def link_entities(
        self,
        source_type: EntityType,
        source_id: str,
        target_type: EntityType,
        target_id: str,
        relation: str = "relates_to",
    ) -> EntityLink:
        async with self._lock:
            for existing in self._links:
                if (
                    existing.source_type == source_type
                    and existing.source_id == source_id
                    and existing.target_type == target_type
                    and existing.target_id == target_id
                    and existing.relation == relation
                ):
                    return self._copy(existing)
            link = EntityLink(
                id=self._next_id("link"),
                source_type=source_type,
                source_id=source_id,
                target_type=target_type,
                target_id=target_id,
                relation=relation,
                created_at=self._clock(),
            )
            self._links.append(link)
            return self._copy(link)

    async def unlink_entities(
        self,
        source_type: EntityType,
        source_id: str,
        target_type: EntityType,
        target_id: str,
        relation: Optional[str] = None,
    ) -> bool:
        async with self._lock:
            before = len(self._links)
            self._links = [
                link
                for link in self._links
                if not (
                    link.source_type == source_type
                    and link.source_id == source_id
                    and link.target_type == target_type
                    and link.target_id == target_id
                    and (relation is None or link.relation == relation)
                )
            ]
            return len(self._links) < before

    async def list_links(self, entity_type: EntityType, entity_id: str) -> List[EntityLink]:
        """Return links where the entity is either the source or the target."""
        async with self._lock:
            return [
                self._copy(link)
                for link in self._links
                if (link.source_type == entity_type and link.source_id == entity_id)
                or (link.target_type == entity_type and link.target_id == entity_id)
            ]

    # -- scheduling ------------------------------------------------------

    async def create_reminder(
        self,
        entity_type: EntityType,
        entity_id: str,
        remind_at: datetime,
        user_id: Optional[str] = None,
        note: str = "",
    ) -> Reminder:
        async with self._lock:
            reminder = Reminder(
                id=self._next_id("reminder"),
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                remind_at=remind_at,
                note=note,
            )
            self._reminders.append(reminder)
            return self._copy(reminder)

    async def list_reminders(self) -> List[Reminder]:
        async with self._lock:
            return [self._copy(r) for r in self._reminders]

    async def create_meeting(
        self,
        title: str,
        start: datetime,
        end: datetime,
        attendee_ids: Optional[List[str]] = None,
        task_id: Optional[str] = None,
    ) -> Meeting:
        async with self._lock:
            meeting = Meeting(
                id=self._next_id("meeting"),
                title=title,
                start=start,
                end=end,
                attendee_ids=list(attendee_ids or []),
                task_id=task_id,
            )
            self._meetings.append(meeting)
            return self._copy(meeting)

    async def list_meetings(self) -> List[Meeting]:
        async with self._lock:
            return [self._copy(m) for m in self._meetings]

    # -- workspace and session -------------------------------------------

    async def get_workspace(self) -> WorkspaceState:
        async with self._lock:
            return self._copy(self._workspace)

    async def update_workspace(self, changes: Dict[str, Any]) -> WorkspaceState:
        async with self._lock:
            self._workspace = self._apply(self._workspace, changes, "update_workspace")
            return self._copy(self._workspace)

    async def is_session_valid(self) -> bool:
        return self._session_valid
