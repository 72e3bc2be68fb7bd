"""Tests for the workspace tools."""

import pytest

from fluxcmd.normalizers.aliases import VALID_PAGES
from fluxcmd.tools import ErrorKind
from fluxcmd.tools.catalog.workspace import normalize_workflow_mode


class TestNavigation:
    """Pages, theme and sidebar."""

    @pytest.mark.asyncio
    async def test_navigate_by_alias(self, engine, context, store):
        result = await engine.run("navigate_to_page", {"page": "kanban"}, context=context)
        assert result.message == "Opened the board page."
        assert result.data == {"page": "board", "previousPage": "dashboard"}
        assert result.inverse.arguments == {"page": "dashboard"}
        assert (await store.get_workspace()).current_page == "board"

    @pytest.mark.asyncio
    async def test_navigate_to_dashed_page(self, engine, context):
        result = await engine.run("navigate_to_page", {"page": "Service Desk"}, context=context)
        assert result.data["page"] == "service-desk"

    @pytest.mark.asyncio
    async def test_unknown_page(self, engine, context):
        result = await engine.run("navigate_to_page", {"page": "moon"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert result.error.alternatives == list(VALID_PAGES)

    @pytest.mark.asyncio
    async def test_current_page_is_a_no_op(self, engine, context):
        result = await engine.run("navigate_to_page", {"page": "home"}, context=context)
        assert result.message == "Already on the dashboard page."
        assert result.inverse is None

    @pytest.mark.asyncio
    async def test_theme_round_trip(self, engine, context, store):
        result = await engine.run("set_theme", {"theme": "night mode"}, context=context)
        assert result.data == {"theme": "dark", "previousTheme": "system"}
        await engine.run(result.inverse.tool_name, result.inverse.arguments, context=context)
        assert (await store.get_workspace()).theme == "system"

    @pytest.mark.asyncio
    async def test_same_theme(self, engine, context):
        result = await engine.run("set_theme", {"theme": "auto"}, context=context)
        assert result.message == "The theme is already system."
        assert result.inverse is None

    @pytest.mark.asyncio
    async def test_toggle_sidebar(self, engine, context):
        result = await engine.run("toggle_sidebar", {}, context=context)
        assert result.data == {"collapsed": True}
        assert result.inverse.arguments == {"collapsed": False}

        again = await engine.run("toggle_sidebar", {"collapsed": True}, context=context)
        assert again.message == "The sidebar is already collapsed."


class TestWorkflowMode:
    """Switching and inspecting workflows."""

    @pytest.mark.parametrize(
        "raw, expected",
        [("Scrum", "agile"), ("service desk", "itsm"), ("Contact-Center", "ccaas"), ("waterfall", "waterfall")],
    )
    def test_normalize_workflow_mode(self, raw, expected):
        assert normalize_workflow_mode(raw) == expected

    @pytest.mark.asyncio
    async def test_change_remaps_tasks_by_category(self, engine, context, store):
        result = await engine.run("change_workflow", {"workflow": "service desk"}, context=context)
        assert result.success
        assert result.message.startswith("Switched to the IT Service Management workflow.")
        assert result.data["previousWorkflow"] == "agile"
        assert result.data["remapped"] == [
            {"taskId": "task-1", "from": "todo", "to": "new"},
            {"taskId": "task-2", "from": "backlog", "to": "new"},
            {"taskId": "task-3", "from": "done", "to": "resolved"},
            {"taskId": "task-4", "from": "in-progress", "to": "assigned"},
        ]
        assert result.inverse is None
        assert (await store.get_workspace()).workflow_mode == "itsm"

    @pytest.mark.asyncio
    async def test_columns_shared_with_target_are_kept(self, engine, context, store):
        result = await engine.run("change_workflow", {"workflow": "ccaas"}, context=context)
        assert [r["taskId"] for r in result.data["remapped"]] == ["task-1", "task-2", "task-3"]
        assert (await store.get_task("task-4")).status == "in-progress"

    @pytest.mark.asyncio
    async def test_change_without_remapping_is_reversible(self, engine, context, store):
        for task in await store.list_tasks(include_archived=True):
            await store.delete_task(task.id)
        result = await engine.run("change_workflow", {"workflow": "itsm"}, context=context)
        assert result.data["remapped"] == []
        assert result.inverse.arguments == {"workflow": "agile"}

    @pytest.mark.asyncio
    async def test_already_active(self, engine, context):
        result = await engine.run("change_workflow", {"workflow": "kanban"}, context=context)
        assert result.message == "The Agile Development workflow is already active."
        assert result.inverse is None

    @pytest.mark.asyncio
    async def test_unknown_workflow(self, engine, context, store):
        result = await engine.run("change_workflow", {"workflow": "waterfall"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert "agile" in result.error.alternatives
        assert (await store.get_workspace()).workflow_mode == "agile"

    @pytest.mark.asyncio
    async def test_columns_of_active_workflow(self, engine, context):
        result = await engine.run("get_workflow_columns", {}, context=context)
        assert result.data["workflow"] == "agile"
        assert len(result.data["columns"]) == 7
        assert "Sprint Backlog (todo)" in result.message

    @pytest.mark.asyncio
    async def test_columns_of_named_workflow(self, engine, context):
        result = await engine.run("get_workflow_columns", {"workflow": "contact center"}, context=context)
        assert result.data["workflow"] == "ccaas"
        assert result.data["columns"][-1]["id"] == "closed"

    @pytest.mark.asyncio
    async def test_columns_of_unknown_workflow(self, engine, context):
        result = await engine.run("get_workflow_columns", {"workflow": "waterfall"}, context=context)
        assert result.error_kind is ErrorKind.NOT_FOUND
