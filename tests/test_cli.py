"""
Tests for the hazard-audit CLI.
"""

import json

import httpx
import pytest
from typer.testing import CliRunner

from hazard_audit import main
from hazard_audit.tracker.client import JiraClient
from tests.factories import FakeJiraClient, hazard_subtask_payload, issue_payload

runner = CliRunner()


@pytest.fixture
def jira(monkeypatch, settings):
    """Подменить Jira клиент и настройки в CLI."""
    fake = FakeJiraClient(settings)
    monkeypatch.setattr(main, "get_settings", lambda: settings)
    monkeypatch.setattr(main, "JiraClient", lambda settings: fake)
    return fake


def add_story(jira, key="PROJ-1", subtask_key="PROJ-2", **subtask_kwargs):
    subtask = jira.add_issue(hazard_subtask_payload(subtask_key, parent=key, **subtask_kwargs))
    jira.add_issue(issue_payload(key, subtasks=[subtask]))


def test_passing_audit_exits_zero(jira):
    add_story(jira)

    result = runner.invoke(main.app, ["audit", "PROJ-1"])

    assert result.exit_code == 0
    assert "PROJ-1" in result.stdout
    assert ("close",) in jira.calls


def test_failed_audit_exits_one(jira):
    add_story(jira, comments=[])

    result = runner.invoke(main.app, ["audit", "PROJ-1"])

    assert result.exit_code == main.EXIT_FAILED_AUDIT
    assert jira.mutations()


def test_tracker_error_wins_over_failed_audit(jira):
    add_story(jira, comments=[])

    result = runner.invoke(main.app, ["audit", "PROJ-1", "MISSING-1"])

    assert result.exit_code == main.EXIT_TRACKER_ERROR


def test_json_output(jira):
    add_story(jira)
    add_story(jira, key="PROJ-10", subtask_key="PROJ-11", comments=[])

    result = runner.invoke(main.app, ["audit", "PROJ-1", "PROJ-10", "--json"])

    rows = {row["key"]: row for row in json.loads(result.stdout)}
    assert rows["PROJ-1"]["status"] == "passed"
    assert rows["PROJ-10"]["status"] == "failed"
    assert rows["PROJ-10"]["audit"]["subject"] == "PROJ-11"
    assert result.exit_code == main.EXIT_FAILED_AUDIT


def test_dry_run_does_not_touch_jira(jira):
    add_story(jira, comments=[])

    result = runner.invoke(main.app, ["audit", "PROJ-1", "--dry-run"])

    assert result.exit_code == main.EXIT_FAILED_AUDIT
    assert jira.mutations() == []


def test_template_command():
    result = runner.invoke(main.app, ["template"])

    assert result.exit_code == 0
    assert "*Financial:* <yes or no. if yes, explain why>" in result.stdout
    assert "*Engineer:*" in result.stdout


def test_unreachable_jira_is_a_tracker_error(monkeypatch, settings):
    def refuse(request):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(main, "get_settings", lambda: settings)
    monkeypatch.setattr(
        main,
        "JiraClient",
        lambda settings: JiraClient(settings, transport=httpx.MockTransport(refuse)),
    )

    result = runner.invoke(main.app, ["audit", "PROJ-1", "PROJ-2", "--json"])

    assert result.exit_code == main.EXIT_TRACKER_ERROR
    rows = json.loads(result.stdout)
    assert [row["status"] for row in rows] == ["error", "error"]
    assert "ConnectError" in rows[0]["details"]
