"""Shared fixtures: a seeded in-memory store, a fixed clock, engine and orchestrator."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from fluxcmd.batch.action_log import ActionLog
from fluxcmd.batch.orchestrator import CommandOrchestrator
from fluxcmd.core.settings.settings import FluxSettings
from fluxcmd.execution.context import ToolExecutionContext
from fluxcmd.execution.engine import ExecutionEngine
from fluxcmd.store.base import MUTATING_METHODS
from fluxcmd.store.memory import InMemoryStore
from fluxcmd.store.models import Email, Incident, Notification, Project, Sprint, Task, User, WorkspaceState

# Wednesday
NOW = datetime(2025, 3, 12, 10, 0)


def fixed_clock() -> datetime:
    return NOW


def seed_store(clock=fixed_clock) -> InMemoryStore:
    created = NOW - timedelta(days=5)
    users = [
        User(id="user-1", name="Alice Johnson", email="alice@example.com", role="admin"),
        User(id="user-2", name="Bob Smith", email="bob@example.com"),
        User(id="user-3", name="Carol Diaz", email="carol@example.com"),
    ]
    projects = [
        Project(id="project-1", name="Website Redesign", owner_id="user-1", created_at=created),
        Project(id="project-2", name="Mobile App", owner_id="user-2", created_at=created),
    ]
    tasks = [
        Task(
            id="task-1",
            title="Fix login bug",
            description="Users cannot log in with SSO",
            status="todo",
            priority="high",
            assignee_id="user-1",
            project_id="project-1",
            sprint_id="sprint-1",
            created_at=created,
            updated_at=created,
        ),
        Task(
            id="task-2",
            title="Bug triage meeting",
            status="backlog",
            project_id="project-1",
            created_at=created,
            updated_at=created,
        ),
        Task(
            id="task-3",
            title="Write release notes",
            status="done",
            priority="low",
            assignee_id="user-2",
            project_id="project-1",
            sprint_id="sprint-1",
            created_at=created,
            updated_at=created,
            completed_at=created + timedelta(hours=30),
        ),
        Task(
            id="task-4",
            title="Update dependencies",
            status="in-progress",
            assignee_id="user-2",
            project_id="project-2",
            due_date=NOW - timedelta(days=1),
            created_at=created,
            updated_at=created,
        ),
    ]
    incidents = [
        Incident(
            id="incident-1",
            title="Checkout service outage",
            severity="critical",
            created_at=NOW - timedelta(hours=2),
        ),
        Incident(
            id="incident-2",
            title="Slow search results",
            severity="low",
            status="resolved",
            created_at=NOW - timedelta(days=2),
            resolved_at=NOW - timedelta(days=1),
        ),
    ]
    emails = [
        Email(
            id="email-1",
            sender="dana@customer.com",
            subject="Re: Payment page is down",
            body="Our customers see an error on the payment page since this morning.",
            received_at=NOW - timedelta(hours=1),
        ),
        Email(
            id="email-2",
            sender="news@vendor.com",
            subject="Weekly newsletter",
            body="Product updates for this week.",
            received_at=NOW - timedelta(days=1),
            is_read=True,
        ),
    ]
    sprints = [
        Sprint(
            id="sprint-1",
            name="Sprint 12",
            goal="Ship SSO",
            status="active",
            start_date=NOW - timedelta(days=7),
            end_date=NOW + timedelta(days=7),
        ),
        Sprint(
            id="sprint-2",
            name="Sprint 13",
            start_date=NOW + timedelta(days=7),
            end_date=NOW + timedelta(days=21),
        ),
    ]
    notifications = [
        Notification(
            id="notification-1",
            title="Bob Smith commented on 'Fix login bug'",
            created_at=NOW - timedelta(hours=3),
        ),
        Notification(
            id="notification-2",
            title="Incident 'Checkout service outage' opened",
            kind="error",
            created_at=NOW - timedelta(hours=2),
        ),
        Notification(
            id="notification-3",
            title="Sprint 12 started",
            kind="success",
            is_read=True,
            created_at=NOW - timedelta(days=7),
        ),
    ]
    return InMemoryStore(
        users=users,
        projects=projects,
        tasks=tasks,
        incidents=incidents,
        emails=emails,
        sprints=sprints,
        notifications=notifications,
        workspace=WorkspaceState(current_project_id="project-1"),
        clock=clock,
    )


def spy_on_mutations(store: InMemoryStore) -> InMemoryStore:
    """Replace every mutating store method with a wrapping ``AsyncMock``."""
    for name in MUTATING_METHODS:
        setattr(store, name, AsyncMock(wraps=getattr(store, name)))
    return store


def mutation_count(store: InMemoryStore) -> int:
    return sum(getattr(store, name).await_count for name in MUTATING_METHODS)


@pytest.fixture
def store():
    """Seeded in-memory store."""
    return seed_store()


@pytest.fixture
def counting_store():
    """Seeded store whose mutating methods count their calls."""
    return spy_on_mutations(seed_store())


@pytest.fixture
def settings():
    return FluxSettings(tool_timeout_seconds=5.0, batch_max_operations=10, action_log_cap=1000)


@pytest.fixture
def context(store):
    return ToolExecutionContext(store=store, user_id="user-1", session_id="test", clock=fixed_clock)


@pytest.fixture
def engine(settings):
    return ExecutionEngine(settings=settings)


@pytest.fixture
def orchestrator(engine, settings):
    return CommandOrchestrator(engine=engine, action_log=ActionLog(cap=settings.action_log_cap), settings=settings)
