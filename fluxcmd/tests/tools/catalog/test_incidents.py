"""Tests for the incident tools."""

from datetime import timedelta
from typing import Optional

import pytest

from fluxcmd.store.models import Incident
from fluxcmd.tests.conftest import NOW
from fluxcmd.tools import ErrorKind
from fluxcmd.tools.catalog.incidents import sla_deadline, sla_state


def critical_incident(age: timedelta, resolved_after: Optional[timedelta] = None) -> Incident:
    created = NOW - age
    return Incident(
        id="incident-x",
        title="x",
        severity="critical",
        status="resolved" if resolved_after else "open",
        created_at=created,
        resolved_at=created + resolved_after if resolved_after else None,
    )


class TestSla:
    """Test SLA classification."""

    def test_deadline_depends_on_severity(self):
        assert sla_deadline(critical_incident(timedelta(0))) == NOW + timedelta(hours=4)

    @pytest.mark.parametrize(
        "age, expected",
        [
            (timedelta(hours=1), "on_track"),
            (timedelta(hours=3, minutes=30), "at_risk"),
            (timedelta(hours=5), "breached"),
        ],
    )
    def test_open_incidents(self, age, expected):
        assert sla_state(critical_incident(age), NOW) == expected

    def test_resolved_incidents(self):
        assert sla_state(critical_incident(timedelta(days=1), timedelta(hours=3)), NOW) == "met"
        assert sla_state(critical_incident(timedelta(days=1), timedelta(hours=6)), NOW) == "breached"


class TestIncidentTools:
    """Create, update, resolve and list incidents."""

    @pytest.mark.asyncio
    async def test_create_normalizes_severity(self, engine, context):
        result = await engine.run(
            "create_incident", {"title": "VPN down", "severity": "sev1", "assignee": "bob"}, context=context
        )
        assert result.success
        assert result.data["id"] == "incident-3"
        assert result.data["severity"] == "critical"
        assert result.data["assignee_id"] == "user-2"
        assert result.data["slaDeadline"] == "2025-03-12T14:00:00"
        assert result.inverse is None

    @pytest.mark.asyncio
    async def test_update_status_and_severity(self, engine, context, store):
        result = await engine.run(
            "update_incident", {"incident": "outage", "status": "Investigating", "severity": "high"}, context=context
        )
        assert result.data["status"] == "investigating"
        assert result.data["severity"] == "high"
        assert result.inverse.arguments == {"incident": "incident-1", "status": "open", "severity": "critical"}

    @pytest.mark.asyncio
    async def test_closing_sets_resolved_at(self, engine, context):
        result = await engine.run("update_incident", {"incident": "incident-1", "status": "closed"}, context=context)
        assert result.data["resolved_at"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_invalid_status(self, engine, context):
        result = await engine.run("update_incident", {"incident": "incident-1", "status": "paused"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert "Open (open)" in result.message

    @pytest.mark.asyncio
    async def test_resolve(self, engine, context):
        result = await engine.run(
            "resolve_incident", {"incident": "checkout", "resolution": "Restarted the pods"}, context=context
        )
        assert result.message == "Resolved incident 'Checkout service outage' after 2.0 hours (SLA met)."
        assert result.data["resolution"] == "Restarted the pods"
        assert result.inverse.arguments == {"incident": "incident-1", "status": "open", "resolution": "none"}

    @pytest.mark.asyncio
    async def test_resolve_twice(self, engine, context):
        result = await engine.run("resolve_incident", {"incident": "Slow search"}, context=context)
        assert result.error_kind is ErrorKind.PRECONDITION
        assert "already resolved" in result.message

    @pytest.mark.asyncio
    async def test_undoing_a_resolution_reopens(self, engine, context, store):
        resolved = await engine.run(
            "resolve_incident", {"incident": "incident-1", "resolution": "Rolled back the deploy"}, context=context
        )
        inverse = resolved.inverse
        await engine.run(inverse.tool_name, inverse.arguments, context=context)
        incident = await store.get_incident("incident-1")
        assert incident.status == "open"
        assert incident.resolved_at is None
        assert incident.resolution is None

    @pytest.mark.asyncio
    async def test_reopening_clears_the_resolution(self, engine, context, store):
        await engine.run(
            "resolve_incident", {"incident": "incident-1", "resolution": "Restarted the pods"}, context=context
        )
        reopened = await engine.run(
            "update_incident", {"incident": "incident-1", "status": "investigating"}, context=context
        )
        assert reopened.data["resolution"] is None
        assert reopened.inverse.arguments == {
            "incident": "incident-1",
            "status": "resolved",
            "resolution": "Restarted the pods",
        }

        await engine.run(reopened.inverse.tool_name, reopened.inverse.arguments, context=context)
        incident = await store.get_incident("incident-1")
        assert (incident.status, incident.resolution) == ("resolved", "Restarted the pods")

    @pytest.mark.asyncio
    async def test_list_sorts_by_severity(self, engine, context):
        result = await engine.run("list_incidents", {}, context=context)
        assert [i["id"] for i in result.data["incidents"]] == ["incident-1", "incident-2"]
        assert "SLA on track" in result.message

    @pytest.mark.asyncio
    async def test_list_open_only(self, engine, context):
        result = await engine.run("list_incidents", {"open_only": True}, context=context)
        assert result.data["count"] == 1
