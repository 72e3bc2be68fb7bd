"""The built-in tool catalog.

Importing this package registers every built-in tool in ``tool_registry``.
"""

from fluxcmd.tools.catalog import (
    batch,
    collaboration,
    conversion,
    emails,
    incidents,
    notifications,
    projects,
    relations,
    reporting,
    scheduling,
    sprints,
    tasks,
    workspace,
)

__all__ = [
    "batch",
    "collaboration",
    "conversion",
    "emails",
    "incidents",
    "notifications",
    "projects",
    "relations",
    "reporting",
    "scheduling",
    "sprints",
    "tasks",
    "workspace",
]
