"""Tests for batches and undo."""

import json

import pytest

from fluxcmd.batch import ActionLog, BatchOperation, CommandOrchestrator, InMemoryActionLogBackend, parse_operations
from fluxcmd.core.errors import StoreError
from fluxcmd.execution import ToolExecutionContext
from fluxcmd.tests.conftest import fixed_clock, mutation_count
from fluxcmd.tools import ErrorKind


def batch(*operations) -> str:
    return json.dumps([{"toolName": name, "params": params} for name, params in operations])


class BrokenBackend(InMemoryActionLogBackend):
    async def append(self, entry):
        raise StoreError("disk full", operation="append_action")


class TestParseOperations:
    """Test parse_operations."""

    def test_accepts_synonyms_and_wrapped_lists(self):
        ops = parse_operations(
            {"operations": [{"tool": "create_task", "arguments": '{"title": "A"}'}, {"function": "list_tasks"}]}
        )
        assert ops == [
            BatchOperation(tool_name="create_task", params={"title": "A"}),
            BatchOperation(tool_name="list_tasks", params={}),
        ]

    @pytest.mark.parametrize(
        "raw, fragment",
        [
            ("[{", "not valid JSON"),
            ('{"toolName": "create_task"}', "must be a JSON list"),
            ("[42]", "operation 1 must be an object"),
            ('[{"params": {}}]', "operation 1 has no tool name"),
            ('[{"toolName": "list_tasks"}, {"toolName": "undo_last_action"}]', "operation 2 uses undo_last_action"),
            ('[{"toolName": "create_task", "params": [1]}]', "params must be an object"),
            ('[{"toolName": "create_task", "params": "{oops"}]', "params are not valid JSON"),
        ],
    )
    def test_rejects_malformed_input(self, raw, fragment):
        with pytest.raises(ValueError) as exc_info:
            parse_operations(raw)
        assert fragment in str(exc_info.value)


class TestBatches:
    """Preview and execution of batches."""

    @pytest.mark.asyncio
    async def test_preview_runs_nothing(self, orchestrator, counting_store):
        context = ToolExecutionContext(store=counting_store, user_id="user-1", session_id="test", clock=fixed_clock)
        operations = batch(
            ("create_task", {"title": "A"}),
            ("delete_task", {"task": "task-3"}),
            ("launch_rocket", {}),
        )
        result = await orchestrator.run("batch_operations", {"operations": operations}, context=context)
        assert result.success
        assert result.data["requiresConfirmation"] is True
        assert result.data["unknownTools"] == ["launch_rocket"]
        assert [op["known"] for op in result.data["operations"]] == [True, True, False]
        assert "2. delete_task(task='task-3') [destructive]" in result.message
        assert "3. launch_rocket() [unknown tool]" in result.message
        assert mutation_count(counting_store) == 0
        assert await orchestrator.action_log.entries("test") == []

    @pytest.mark.asyncio
    async def test_failed_operation_does_not_stop_the_batch(self, orchestrator, context, store):
        operations = batch(
            ("create_task", {"title": "First"}),
            ("update_task_status", {"task": "no such thing", "status": "done"}),
            ("create_task", {"title": "Third"}),
        )
        result = await orchestrator.run("batch_operations", {"operations": operations, "confirm": True}, context=context)
        assert not result.success
        assert result.error_kind is ErrorKind.NOT_FOUND
        assert result.data["succeeded"] == 2
        assert result.data["failed"] == 1
        assert [r["success"] for r in result.data["results"]] == [True, False, True]
        assert result.message.startswith("Batch finished: 2 succeeded, 1 failed.")
        assert (await store.get_task("task-6")).title == "Third"
        assert len(await orchestrator.action_log.entries("test")) == 3

    @pytest.mark.asyncio
    async def test_successful_batch(self, orchestrator, context):
        operations = batch(("set_theme", {"theme": "dark"}), ("toggle_sidebar", {}))
        result = await orchestrator.run("batch_operations", {"operations": operations, "confirm": True}, context=context)
        assert result.success
        assert result.data["succeeded"] == 2

    @pytest.mark.asyncio
    async def test_size_limits(self, orchestrator, context):
        too_many = batch(*[("list_tasks", {})] * 11)
        result = await orchestrator.run("batch_operations", {"operations": too_many}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert "at most 10" in result.message

        empty = await orchestrator.run("batch_operations", {"operations": "[]"}, context=context)
        assert empty.error_kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_malformed_operations(self, orchestrator, context):
        result = await orchestrator.run("batch_operations", {"operations": "not json"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert result.message.startswith("Invalid operations:")


class TestUndo:
    """Test undo of the newest logged action."""

    @pytest.mark.asyncio
    async def test_nothing_to_undo(self, orchestrator, context):
        result = await orchestrator.run("undo_last_action", {}, context=context)
        assert result.error_kind is ErrorKind.PRECONDITION
        assert result.message == "Nothing to undo"

    @pytest.mark.asyncio
    async def test_undo_create_deletes_only_the_newest(self, orchestrator, context, store):
        await orchestrator.run("update_task_status", {"task": "task-2", "status": "ready"}, context=context)
        await orchestrator.run("create_task", {"title": "Temporary"}, context=context)

        result = await orchestrator.run("undo_last_action", {}, context=context)
        assert result.success
        assert result.message.startswith("Undid create_task:")
        assert await store.get_task("task-5") is None
        assert (await store.get_task("task-2")).status == "ready"
        assert [e.action_type for e in await orchestrator.action_log.entries("test")] == ["update_task_status"]

    @pytest.mark.asyncio
    async def test_calls_that_change_nothing_do_not_hide_the_last_change(self, orchestrator, context, store):
        await orchestrator.run("create_task", {"title": "Temporary"}, context=context)
        suggestion = await orchestrator.run("triage_task", {"task": "task-2"}, context=context)
        same_column = await orchestrator.run("update_task_status", {"task": "task-1", "status": "todo"}, context=context)
        assert not suggestion.changed
        assert not same_column.changed

        result = await orchestrator.run("undo_last_action", {}, context=context)
        assert result.success
        assert result.message.startswith("Undid create_task:")
        assert await store.get_task("task-5") is None
        assert await orchestrator.action_log.entries("test") == []

    @pytest.mark.asyncio
    async def test_repeated_undo_walks_back(self, orchestrator, context, store):
        await orchestrator.run("update_task_status", {"task": "task-1", "status": "done"}, context=context)
        await orchestrator.run("assign_task", {"task": "task-1", "assignee": "carol"}, context=context)

        await orchestrator.run("undo_last_action", {}, context=context)
        task = await store.get_task("task-1")
        assert (task.assignee_id, task.status) == ("user-1", "done")

        await orchestrator.run("undo_last_action", {}, context=context)
        task = await store.get_task("task-1")
        assert (task.status, task.completed_at) == ("todo", None)
        assert await orchestrator.action_log.entries("test") == []

    @pytest.mark.asyncio
    async def test_undo_is_not_logged(self, orchestrator, context):
        await orchestrator.run("set_theme", {"theme": "dark"}, context=context)
        await orchestrator.run("undo_last_action", {}, context=context)
        second = await orchestrator.run("undo_last_action", {}, context=context)
        assert second.message == "Nothing to undo"

    @pytest.mark.asyncio
    async def test_irreversible_action(self, orchestrator, context):
        await orchestrator.run("delete_task", {"task": "task-3"}, context=context)
        result = await orchestrator.run("undo_last_action", {}, context=context)
        assert result.error_kind is ErrorKind.PRECONDITION
        assert "could not be fully reversed" in result.message
        assert await orchestrator.action_log.entries("test") == []

    @pytest.mark.asyncio
    async def test_failed_action_is_dropped(self, orchestrator, context):
        await orchestrator.run("update_task_status", {"task": "task-1", "status": "archived"}, context=context)
        result = await orchestrator.run("undo_last_action", {}, context=context)
        assert result.success
        assert "had failed, so there was nothing to reverse" in result.message
        assert await orchestrator.action_log.entries("test") == []

    @pytest.mark.asyncio
    async def test_failed_inverse_keeps_the_entry(self, orchestrator, context, store):
        await orchestrator.run("create_task", {"title": "Temporary"}, context=context)
        await store.delete_task("task-5")

        result = await orchestrator.run("undo_last_action", {}, context=context)
        assert result.error_kind is ErrorKind.NOT_FOUND
        assert result.message.startswith("Could not undo create_task:")
        assert len(await orchestrator.action_log.entries("test")) == 1

    @pytest.mark.asyncio
    async def test_sessions_undo_independently(self, orchestrator, context):
        await orchestrator.run("set_theme", {"theme": "dark"}, context=context)
        other = ToolExecutionContext(store=context.store, user_id="user-2", session_id="other", clock=fixed_clock)
        result = await orchestrator.run("undo_last_action", {}, context=other)
        assert result.message == "Nothing to undo"


class TestWithoutOrchestrator:
    """Orchestration tools called straight through the engine."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name, arguments", [("undo_last_action", {}), ("batch_operations", {"operations": "[]"})]
    )
    async def test_needs_orchestrator(self, engine, context, name, arguments):
        result = await engine.run(name, arguments, context=context)
        assert result.error_kind is ErrorKind.PRECONDITION
        assert "CommandOrchestrator" in result.message


class TestLogging:
    """What ends up in the action log."""

    @pytest.mark.asyncio
    async def test_read_only_calls_are_not_logged(self, orchestrator, context):
        await orchestrator.run("list_tasks", {}, context=context)
        await orchestrator.run("launch_rocket", {}, context=context)
        assert await orchestrator.action_log.entries("test") == []

    @pytest.mark.asyncio
    async def test_broken_log_does_not_fail_the_call(self, engine, settings, context, store):
        orchestrator = CommandOrchestrator(engine=engine, action_log=ActionLog(BrokenBackend()), settings=settings)
        result = await orchestrator.run("create_task", {"title": "Still created"}, context=context)
        assert result.success
        assert (await store.get_task("task-5")).title == "Still created"
