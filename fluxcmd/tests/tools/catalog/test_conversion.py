"""Tests for the conversion tools."""

import pytest

from fluxcmd.tools import ErrorKind
from fluxcmd.tools.catalog.conversion import CONVERTED_TO, clean_subject, suggest_severity


class TestHelpers:
    """Subject cleanup and severity suggestion."""

    @pytest.mark.parametrize(
        "subject, expected",
        [("Re: Fwd: Hello", "Hello"), ("FW: Budget", "Budget"), ("RE:", "(no subject)"), ("Regarding", "Regarding")],
    )
    def test_clean_subject(self, subject, expected):
        assert clean_subject(subject) == expected

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("The API is down for everyone", "critical"),
            ("Login failed with an error", "high"),
            ("How do I export a report?", "low"),
            ("Thanks for the update", "medium"),
        ],
    )
    def test_suggest_severity(self, text, expected):
        assert suggest_severity(text) == expected


class TestEmailToTask:
    """Test create_task_from_email."""

    @pytest.mark.asyncio
    async def test_creates_task_and_mapping(self, engine, context, store):
        result = await engine.run("create_task_from_email", {"email": "payment"}, context=context)
        task = result.data
        assert task["title"] == "Payment page is down"
        assert task["status"] == "backlog"
        assert task["priority"] == "urgent"
        assert task["description"].startswith("From: dana@customer.com\n\nOur customers")
        assert task["sourceEmailId"] == "email-1"
        assert result.inverse.arguments == {"task": task["id"]}

        links = await store.list_links("email", "email-1")
        assert [(link.relation, link.target_type, link.target_id) for link in links] == [
            (CONVERTED_TO, "task", task["id"])
        ]

    @pytest.mark.asyncio
    async def test_explicit_priority_and_status(self, engine, context):
        result = await engine.run(
            "create_task_from_email",
            {"email": "email-2", "priority": "minor", "status": "ready", "assignee": "me"},
            context=context,
        )
        assert result.data["priority"] == "low"
        assert result.data["status"] == "ready"
        assert result.data["assignee_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_invalid_status_creates_nothing(self, engine, context, store):
        result = await engine.run("create_task_from_email", {"email": "payment", "status": "inbox"}, context=context)
        assert result.error_kind is ErrorKind.VALIDATION
        assert len(await store.list_tasks()) == 4
        assert await store.list_links("email", "email-1") == []


class TestIncidentConversions:
    """Incident to task and email to incident."""

    @pytest.mark.asyncio
    async def test_task_from_incident(self, engine, context, store):
        result = await engine.run("create_task_from_incident", {"incident": "outage"}, context=context)
        task = result.data
        assert task["title"] == "Checkout service outage"
        assert task["priority"] == "urgent"
        assert task["tags"] == ["incident"]
        assert task["sourceIncidentId"] == "incident-1"
        assert (await store.list_links("task", task["id"]))[0].relation == CONVERTED_TO

    @pytest.mark.asyncio
    async def test_task_from_incident_keeps_responder(self, engine, context):
        await engine.run("update_incident", {"incident": "incident-2", "assignee": "carol"}, context=context)
        result = await engine.run("create_task_from_incident", {"incident": "incident-2"}, context=context)
        assert result.data["assignee_id"] == "user-3"
        assert result.data["priority"] == "low"

    @pytest.mark.asyncio
    async def test_incident_from_email_suggests_severity(self, engine, context):
        result = await engine.run("create_incident_from_email", {"email": "payment"}, context=context)
        assert result.data["title"] == "Payment page is down"
        assert result.data["severity"] == "critical"
        assert result.data["suggestedSeverity"] == "critical"
        assert "severity suggested from the email" in result.message
        assert result.inverse is None

    @pytest.mark.asyncio
    async def test_incident_from_email_with_chosen_severity(self, engine, context):
        result = await engine.run(
            "create_incident_from_email", {"email": "payment", "severity": "low"}, context=context
        )
        assert result.data["severity"] == "low"
        assert result.data["suggestedSeverity"] == "critical"
