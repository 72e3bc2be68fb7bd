"""Application state: entity models, the ``Store`` protocol and an in-memory store."""

from fluxcmd.store.base import MUTATING_METHODS, Store
from fluxcmd.store.memory import InMemoryStore
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

__all__ = [
    "Store",
    "InMemoryStore",
    "MUTATING_METHODS",
    "EntityType",
    "Task",
    "User",
    "Project",
    "Incident",
    "Email",
    "Sprint",
    "Notification",
    "Comment",
    "ActivityEntry",
    "EntityLink",
    "Reminder",
    "Meeting",
    "WorkspaceState",
]
