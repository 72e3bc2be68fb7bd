"""Tests for the execution engine."""

import asyncio

import pytest
from pydantic import Field

import fluxcmd  # noqa: F401
import fluxcmd.core.settings.settings as settings_module
from fluxcmd.core.errors import StoreError
from fluxcmd.execution import ExecutionEngine, ToolExecutionContext
from fluxcmd.tests.conftest import fixed_clock, mutation_count
from fluxcmd.tools import ErrorKind, ToolCall, ToolParameters, ToolRegistry, ToolResult, tool


class CountParameters(ToolParameters):
    label: str = Field(description="Label")
    count: int = Field(default=1, description="How many")


class EmptyParameters(ToolParameters):
    pass


@pytest.fixture
def registry():
    registry = ToolRegistry()

    @tool(parameter_type=CountParameters, registry=registry)
    async def count_things(params, context):
        """Echo the count."""
        return ToolResult.ok(f"{params.label}: {params.count}", data={"count": params.count})

    @tool(parameter_type=EmptyParameters, registry=registry)
    async def explode(params, context):
        raise RuntimeError("boom")

    @tool(parameter_type=EmptyParameters, registry=registry, max_execution_time=0.05)
    async def sleepy(params, context):
        await asyncio.sleep(1)
        return ToolResult.ok("woke up")

    @tool(parameter_type=EmptyParameters, registry=registry)
    async def backend_down(params, context):
        raise StoreError("connection refused", "list_tasks")

    @tool(parameter_type=EmptyParameters, registry=registry)
    async def wrong_return(params, context):
        return {"success": True}

    @tool(parameter_type=EmptyParameters, registry=registry, mutating=True)
    async def mutate(params, context):
        return ToolResult.ok("mutated")

    return registry


@pytest.fixture
def custom_engine(registry, settings):
    return ExecutionEngine(registry=registry, settings=settings)


class TestExecute:
    """Test ExecutionEngine.execute."""

    @pytest.mark.asyncio
    async def test_runs_tool_with_coerced_arguments(self, custom_engine, context):
        result = await custom_engine.execute(
            ToolCall(function="count_things", arguments={"label": "bugs", "count": "3"}), context
        )
        assert result.success
        assert result.message == "bugs: 3"
        assert result.data == {"count": 3}

    @pytest.mark.asyncio
    async def test_json_string_arguments(self, custom_engine, context):
        result = await custom_engine.execute(
            ToolCall(function="count_things", arguments='{"label": "x", "count": 2}'), context
        )
        assert result.message == "x: 2"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, custom_engine, context):
        result = await custom_engine.run("count_thing", {}, context=context)
        assert not result.success
        assert result.error_kind is ErrorKind.UNKNOWN_TOOL
        assert "Unknown tool: count_thing" in result.message
        assert result.error.alternatives == ["count_things"]

    @pytest.mark.asyncio
    async def test_malformed_json_arguments(self, custom_engine, context):
        result = await custom_engine.execute(ToolCall(function="count_things", arguments="{label: x"), context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert "not valid JSON" in result.message

    @pytest.mark.asyncio
    async def test_missing_and_unknown_parameters(self, custom_engine, context):
        result = await custom_engine.run("count_things", {"colour": "red"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert "missing required parameter(s): label" in result.message
        assert "unknown parameter(s): colour" in result.message
        assert result.data == {"missing": ["label"], "unknown": ["colour"]}

    @pytest.mark.asyncio
    async def test_bad_value(self, custom_engine, context):
        result = await custom_engine.run("count_things", {"label": "x", "count": "many"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert "'count'" in result.message

    @pytest.mark.asyncio
    async def test_exception_becomes_failure_naming_the_tool(self, custom_engine, context):
        result = await custom_engine.run("explode", context=context)
        assert not result.success
        assert result.error_kind is ErrorKind.UNEXPECTED
        assert result.message == "Error executing explode: boom"

    @pytest.mark.asyncio
    async def test_timeout(self, custom_engine, context):
        result = await custom_engine.run("sleepy", context=context)
        assert result.error_kind is ErrorKind.TIMEOUT
        assert "sleepy" in result.message

    @pytest.mark.asyncio
    async def test_store_error_is_upstream(self, custom_engine, context):
        result = await custom_engine.run("backend_down", context=context)
        assert result.error_kind is ErrorKind.UPSTREAM
        assert "connection refused" in result.message

    @pytest.mark.asyncio
    async def test_non_result_return_value(self, custom_engine, context):
        result = await custom_engine.run("wrong_return", context=context)
        assert result.error_kind is ErrorKind.UNEXPECTED
        assert "dict" in result.message

    @pytest.mark.asyncio
    async def test_invalid_environment_settings_become_a_failure(self, registry, context, monkeypatch):
        monkeypatch.setattr(settings_module, "_settings", None)
        monkeypatch.setenv("FLUX_LOG_LEVEL", "chatty")
        engine = ExecutionEngine(registry=registry)

        result = await engine.run("count_things", {"label": "x"}, context=context)
        assert result.error_kind is ErrorKind.UNEXPECTED
        assert result.message.startswith("Error executing count_things: Invalid configuration")

        timed = await engine.run("sleepy", context=context)
        assert timed.error_kind is ErrorKind.TIMEOUT


class TestSessionCheck:
    """Mutating tools need a live session."""

    @pytest.mark.asyncio
    async def test_expired_session_blocks_mutations(self, custom_engine, context, store):
        store.set_session_valid(False)
        result = await custom_engine.run("mutate", context=context)
        assert result.error_kind is ErrorKind.PRECONDITION
        assert "session has expired" in result.message

    @pytest.mark.asyncio
    async def test_expired_session_allows_reads(self, custom_engine, context, store):
        store.set_session_valid(False)
        result = await custom_engine.run("count_things", {"label": "x"}, context=context)
        assert result.success

    @pytest.mark.asyncio
    async def test_builtin_tool_is_blocked_without_writing(self, engine, counting_store):
        counting_store.set_session_valid(False)
        context = ToolExecutionContext(store=counting_store, user_id="user-1", clock=fixed_clock)
        result = await engine.run("create_task", {"title": "New"}, context=context)
        assert result.error_kind is ErrorKind.PRECONDITION
        assert mutation_count(counting_store) == 0
