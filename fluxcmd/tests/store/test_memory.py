"""Tests for the in-memory store."""

from datetime import timedelta

import pytest

from fluxcmd.core.errors import StoreError
from fluxcmd.store import Store
from fluxcmd.tests.conftest import NOW


class TestTasks:
    """Task CRUD."""

    def test_implements_protocol(self, store):
        assert isinstance(store, Store)

    @pytest.mark.asyncio
    async def test_create_assigns_next_free_id(self, store):
        task = await store.create_task("Write docs", "backlog", priority="low")
        assert task.id == "task-5"
        assert task.created_at == NOW
        assert task.priority == "low"
        assert (await store.get_task("task-5")).title == "Write docs"

    @pytest.mark.asyncio
    async def test_create_with_invalid_field_raises_store_error(self, store):
        with pytest.raises(StoreError) as exc_info:
            await store.create_task("Bad", "backlog", priority="whenever")
        assert exc_info.value.operation == "create_task"
        assert "priority" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_update_returns_none_for_missing_task(self, store):
        assert await store.update_task("task-99", {"title": "x"}) is None

    @pytest.mark.asyncio
    async def test_update_changes_fields(self, store):
        updated = await store.update_task("task-2", {"status": "todo", "assignee_id": "user-3"})
        assert updated.status == "todo"
        assert updated.assignee_id == "user-3"
        assert updated.updated_at == NOW

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        task = await store.get_task("task-1")
        task.tags.append("mutated")
        assert (await store.get_task("task-1")).tags == []

    @pytest.mark.asyncio
    async def test_delete_drops_references(self, store):
        await store.update_task("task-2", {"blocked_by": ["task-1"]})
        await store.update_task("task-3", {"parent_id": "task-1"})
        await store.link_entities("task", "task-1", "incident", "incident-1")

        assert await store.delete_task("task-1") is True
        assert await store.get_task("task-1") is None
        assert (await store.get_task("task-2")).blocked_by == []
        assert (await store.get_task("task-3")).parent_id is None
        assert await store.list_links("incident", "incident-1") == []

    @pytest.mark.asyncio
    async def test_delete_missing_task(self, store):
        assert await store.delete_task("task-99") is False

    @pytest.mark.asyncio
    async def test_archive_hides_tasks_from_default_listing(self, store):
        assert await store.archive_tasks(["task-3", "task-99"]) == 1
        assert await store.archive_tasks(["task-3"]) == 0
        visible = [t.id for t in await store.list_tasks()]
        everything = [t.id for t in await store.list_tasks(include_archived=True)]
        assert "task-3" not in visible
        assert "task-3" in everything


class TestOtherRecords:
    """Incidents, emails, collaboration and workspace."""

    @pytest.mark.asyncio
    async def test_incident_lifecycle(self, store):
        incident = await store.create_incident("Disk full", severity="high")
        assert incident.id == "incident-3"
        resolved = await store.update_incident(incident.id, {"status": "resolved", "resolved_at": NOW})
        assert resolved.status == "resolved"

    @pytest.mark.asyncio
    async def test_email_update(self, store):
        email = await store.update_email("email-1", {"is_read": True})
        assert email.is_read

    @pytest.mark.asyncio
    async def test_activity_is_newest_first_and_limited(self, store):
        for n in range(3):
            await store.log_activity("task", "task-1", f"step-{n}")
        await store.log_activity("incident", "incident-1", "acknowledged")

        entries = await store.list_activity("task", "task-1", limit=2)
        assert [e.action for e in entries] == ["step-2", "step-1"]
        assert len(await store.list_activity()) == 4
        assert await store.list_activity(limit=0) == []

    @pytest.mark.asyncio
    async def test_link_entities_is_idempotent(self, store):
        first = await store.link_entities("task", "task-1", "task", "task-2", "blocks")
        second = await store.link_entities("task", "task-1", "task", "task-2", "blocks")
        assert first.id == second.id
        assert len(await store.list_links("task", "task-2")) == 1
        assert await store.unlink_entities("task", "task-1", "task", "task-2") is True
        assert await store.unlink_entities("task", "task-1", "task", "task-2") is False

    @pytest.mark.asyncio
    async def test_workspace_update_validates(self, store):
        state = await store.update_workspace({"theme": "dark"})
        assert state.theme == "dark"
        with pytest.raises(StoreError):
            await store.update_workspace({"theme": "sepia"})
        assert (await store.get_workspace()).theme == "dark"

    @pytest.mark.asyncio
    async def test_reminders_and_meetings(self, store):
        await store.create_reminder("task", "task-1", NOW + timedelta(days=1), user_id="user-1")
        await store.create_meeting("Sync", NOW, NOW + timedelta(minutes=30), ["user-1", "user-2"])
        assert len(await store.list_reminders()) == 1
        assert (await store.list_meetings())[0].attendee_ids == ["user-1", "user-2"]

    @pytest.mark.asyncio
    async def test_session_validity(self, store):
        assert await store.is_session_valid()
        store.set_session_valid(False)
        assert not await store.is_session_valid()


class TestSprintsProjectsAndNotifications:
    """Sprint, project and notification writes."""

    @pytest.mark.asyncio
    async def test_create_sprint_takes_next_free_id(self, store):
        sprint = await store.create_sprint("Sprint 14", NOW, NOW + timedelta(days=14), goal="Polish")
        assert (sprint.id, sprint.status, sprint.goal) == ("sprint-3", "planning", "Polish")

    @pytest.mark.asyncio
    async def test_delete_sprint_detaches_tasks(self, store):
        assert await store.delete_sprint("sprint-1") is True
        assert await store.get_sprint("sprint-1") is None
        assert (await store.get_task("task-1")).sprint_id is None
        assert (await store.get_task("task-3")).sprint_id is None
        assert await store.delete_sprint("sprint-1") is False

    @pytest.mark.asyncio
    async def test_update_sprint_validates(self, store):
        assert (await store.update_sprint("sprint-2", {"status": "active"})).status == "active"
        with pytest.raises(StoreError) as exc_info:
            await store.update_sprint("sprint-2", {"status": "paused"})
        assert exc_info.value.operation == "update_sprint"
        assert await store.update_sprint("sprint-9", {"goal": "x"}) is None

    @pytest.mark.asyncio
    async def test_update_project(self, store):
        updated = await store.update_project("project-2", {"archived": True, "color": "#ff0000"})
        assert (updated.archived, updated.color) == (True, "#ff0000")
        with pytest.raises(StoreError) as exc_info:
            await store.update_project("project-2", {"archived": "maybe"})
        assert exc_info.value.operation == "update_project"

    @pytest.mark.asyncio
    async def test_mark_notifications_counts_only_changes(self, store):
        assert await store.mark_notifications(["notification-1", "notification-3", "missing"], read=True) == 1
        assert [n.is_read for n in await store.list_notifications()] == [True, False, True]

    @pytest.mark.asyncio
    async def test_delete_notifications(self, store):
        assert await store.delete_notifications() == 3
        assert await store.list_notifications() == []
