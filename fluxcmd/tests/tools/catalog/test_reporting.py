"""Tests for the reporting tools."""

import csv
import io
import json

import pytest

from fluxcmd.tools import ErrorKind


class TestSummarizeProject:
    """Test summarize_project."""

    @pytest.mark.asyncio
    async def test_current_project(self, engine, context):
        result = await engine.run("summarize_project", {}, context=context)
        data = result.data
        assert data["project"] == "Website Redesign"
        assert data["total"] == 3
        assert data["completionPercent"] == 33
        assert data["byColumn"] == {
            "backlog": 1,
            "ready": 0,
            "todo": 1,
            "in-progress": 0,
            "code-review": 0,
            "testing": 0,
            "done": 1,
        }
        assert data["byPriority"] == {"low": 1, "medium": 1, "high": 1, "urgent": 0}
        assert data["unassigned"] == ["task-2"]
        assert data["overdue"] == []
        assert result.message.startswith("Project 'Website Redesign': 3 task(s), 33% done")

    @pytest.mark.asyncio
    async def test_overdue_tasks(self, engine, context):
        result = await engine.run("summarize_project", {"project": "mobile"}, context=context)
        assert result.data["overdue"] == ["task-4"]
        assert "Overdue: 1" in result.message

    @pytest.mark.asyncio
    async def test_unknown_project(self, engine, context):
        result = await engine.run("summarize_project", {"project": "Moon Base"}, context=context)
        assert result.error_kind is ErrorKind.NOT_FOUND


class TestMetrics:
    """Cycle time and incident resolution time."""

    @pytest.mark.asyncio
    async def test_cycle_time(self, engine, context):
        result = await engine.run("get_cycle_time_metrics", {}, context=context)
        overall = result.data["overall"]
        assert overall["count"] == 1
        assert overall["averageHours"] == 30.0
        assert result.data["byPriority"]["low"]["count"] == 1
        assert result.data["byPriority"]["high"]["count"] == 0

    @pytest.mark.asyncio
    async def test_cycle_time_counts_archived_tasks(self, engine, context):
        await engine.run("archive_completed_tasks", {}, context=context)
        result = await engine.run("get_cycle_time_metrics", {}, context=context)
        assert result.data["overall"]["count"] == 1

    @pytest.mark.asyncio
    async def test_cycle_time_window(self, engine, context):
        result = await engine.run("get_cycle_time_metrics", {"days": 3}, context=context)
        assert result.data["overall"]["count"] == 0
        assert result.message == "No tasks were completed in the last 3 days."

    @pytest.mark.asyncio
    async def test_window_is_bounded(self, engine, context):
        result = await engine.run("get_cycle_time_metrics", {"days": 0}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_resolution_time(self, engine, context):
        result = await engine.run("get_resolution_time_metrics", {}, context=context)
        by_severity = result.data["bySeverity"]
        assert list(by_severity) == ["critical", "high", "medium", "low"]
        assert by_severity["critical"]["open"] == 1
        assert by_severity["critical"]["targetHours"] == 4.0
        assert by_severity["low"]["averageHours"] == 24.0
        assert result.data["breached"] == 0

    @pytest.mark.asyncio
    async def test_resolution_time_for_one_severity(self, engine, context):
        result = await engine.run("get_resolution_time_metrics", {"severity": "sev1"}, context=context)
        assert list(result.data["bySeverity"]) == ["critical"]


class TestExportTasks:
    """Test export_tasks."""

    @pytest.mark.asyncio
    async def test_csv(self, engine, context):
        result = await engine.run("export_tasks", {}, context=context)
        rows = list(csv.DictReader(io.StringIO(result.data["content"])))
        assert result.data["count"] == 4
        assert [r["id"] for r in rows] == ["task-1", "task-2", "task-3", "task-4"]
        assert rows[3]["due_date"] == "2025-03-11"
        assert rows[1]["assignee_id"] == ""

    @pytest.mark.asyncio
    async def test_json(self, engine, context):
        result = await engine.run("export_tasks", {"format": "json", "project": "mobile"}, context=context)
        exported = json.loads(result.data["content"])
        assert [t["id"] for t in exported] == ["task-4"]

    @pytest.mark.asyncio
    async def test_markdown_filtered_by_status(self, engine, context):
        result = await engine.run("export_tasks", {"format": "markdown", "status": "done"}, context=context)
        lines = result.data["content"].splitlines()
        assert lines[0] == "| Title | Status | Priority | Due | Tags |"
        assert lines[2].startswith("| Write release notes | Done | low | - |")
        assert len(lines) == 3

    @pytest.mark.asyncio
    async def test_unsupported_format(self, engine, context):
        result = await engine.run("export_tasks", {"format": "xlsx"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
