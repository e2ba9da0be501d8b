"""
Tests for JiraTracker: snapshots, helpers and idempotent audit comments.
"""

import pytest

from hazard_audit.core.aggregate import failing_audit_names
from hazard_audit.core.models import AuditDetails, Comment, Issue
from hazard_audit.tracker import helpers
from hazard_audit.tracker.jira import JiraTracker
from tests.factories import (
    comment_payload,
    hazard_subtask_payload,
    issue_payload,
    link_payload,
    snapshot,
)

SIGNATURE = "[Hazard Analysis Auditor]"


def failing(name, key="PROJ-2", details="Something is wrong."):
    subject = Issue(key=key, parent_key="PROJ-1")
    return AuditDetails(name, subject).set_result(False, details)


# ═══════════════════════════════════════════════════════
# SNAPSHOTS
# ═══════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_fetch_issue_hydrates_subtasks(tracker, client):
    subtask = client.add_issue(hazard_subtask_payload())
    client.add_issue(issue_payload("PROJ-1", subtasks=[subtask]))

    issue = await tracker.fetch_issue("PROJ-1")

    assert issue.subtask_keys == ["PROJ-2"]
    assert issue.subtasks[0].description.startswith("*Financial:*")
    assert issue.subtasks[0].comments[0].author == "bob"
    assert [call for call in client.calls if call[0] == "get_issue"] == [
        ("get_issue", "PROJ-1"),
        ("get_issue", "PROJ-2"),
    ]


@pytest.mark.asyncio
async def test_get_issue_from_link(tracker, client):
    client.add_issue(hazard_subtask_payload("OTHER-2", parent="OTHER-1"))
    subtask = Issue.from_json(hazard_subtask_payload(links=[link_payload("OTHER-2")]))

    linked = await tracker.get_issue_from_link(subtask.links[0])

    assert linked.key == "OTHER-2"
    assert linked.parent_key == "OTHER-1"


# ═══════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════

def test_get_subtask_by_name_returns_first_match():
    first = hazard_subtask_payload("PROJ-2")
    second = hazard_subtask_payload("PROJ-3")
    issue = snapshot(issue_payload("PROJ-1", subtasks=[first, second]), [first, second])

    assert helpers.get_subtask_by_name(issue, "Hazard Analysis").key == "PROJ-2"
    assert helpers.get_subtask_by_name(issue, "Code Review") is None


def test_issue_has_resolution_is_case_insensitive():
    issue = Issue(key="PROJ-2", resolution="won't do")

    assert helpers.issue_has_resolution(issue, ["Won't Do"]) is True
    assert helpers.issue_has_resolution(Issue(key="PROJ-3"), ["Won't Do"]) is False


def test_issue_contains_any_label():
    issue = Issue(key="PROJ-1", labels=["backend", "IGNORE_HAZARD_ANALYSIS_AUDIT"])

    assert helpers.issue_contains_any_label(issue, ["IGNORE_HAZARD_ANALYSIS_AUDIT"]) is True
    assert helpers.issue_contains_any_label(issue, ["frontend"]) is False


@pytest.mark.parametrize(
    "body, counted",
    [
        ("+1", True),
        ("  +1 nice work", True),
        ("+1\nbut fix the typo", True),
        ("+10", False),
        ("I give this a +1", False),
        ("-1", False),
    ],
)
def test_plus_one_comment_forms(body, counted):
    issue = Issue(key="PROJ-2", assignee="alice", comments=[Comment("1", body, author="bob")])

    assert bool(helpers.find_plus_one_comments(issue)) is counted


def test_plus_one_by_reporter_counts_only_when_assigned_to_someone_else():
    comments = [Comment("1", "+1", author="carol")]

    assigned = Issue(key="PROJ-2", assignee="alice", reporter="carol", comments=comments)
    unassigned = Issue(key="PROJ-2", assignee=None, reporter="carol", comments=comments)

    assert len(helpers.find_plus_one_comments(assigned)) == 1
    assert helpers.find_plus_one_comments(unassigned) == []


# ═══════════════════════════════════════════════════════
# AUDIT COMMENTS
# ═══════════════════════════════════════════════════════

def test_render_failure_comment(tracker):
    audit = failing("Hazard Analysis Completed")

    assert tracker.render_failure_comment(audit) == (
        f"{SIGNATURE} Audit failure: Hazard Analysis Completed\nSomething is wrong."
    )
    assert tracker.render_failure_comment(audit, distinguish_subtask=True) == (
        f"{SIGNATURE} Sub-task audit failure: Hazard Analysis Completed\n"
        "_Sub-task PROJ-2 of PROJ-1_\n"
        "Something is wrong."
    )


def test_audit_name_of_ignores_foreign_comments(tracker):
    assert tracker.audit_name_of(Comment("1", f"{SIGNATURE} Audit failure: Assignee Indicated\nx")) == "Assignee Indicated"
    assert tracker.audit_name_of(Comment("2", "Audit failure: Assignee Indicated")) is None
    assert tracker.audit_name_of(Comment("3", f"quoting {SIGNATURE} Audit failure: X")) is None


@pytest.mark.asyncio
async def test_post_is_idempotent(tracker, client):
    audit = failing("Assignee Indicated")

    await tracker.post_issue_audit_failure_comment(audit.subject, audit)
    await tracker.post_issue_audit_failure_comment(audit.subject, audit)

    assert len(client.comments["PROJ-2"]) == 1
    assert client.mutations() == [("add_comment", "PROJ-2")]


@pytest.mark.asyncio
async def test_post_updates_changed_comment_in_place(tracker, client):
    await tracker.post_issue_audit_failure_comment(Issue(key="PROJ-2"), failing("Assignee Indicated", details="old"))
    original_id = client.comments["PROJ-2"][0].id

    await tracker.post_issue_audit_failure_comment(Issue(key="PROJ-2"), failing("Assignee Indicated", details="new"))

    [comment] = client.comments["PROJ-2"]
    assert comment.id == original_id
    assert comment.body.endswith("\nnew")


@pytest.mark.asyncio
async def test_post_removes_duplicates(tracker, client):
    body = f"{SIGNATURE} Audit failure: Assignee Indicated\nSomething is wrong."
    await client.add_comment("PROJ-2", body)
    await client.add_comment("PROJ-2", body)
    await client.add_comment("PROJ-2", body)

    await tracker.post_issue_audit_failure_comment(Issue(key="PROJ-2"), failing("Assignee Indicated"))

    assert len(client.comments["PROJ-2"]) == 1


@pytest.mark.asyncio
async def test_remove_by_name_keeps_other_comments(tracker, client):
    await client.add_comment("PROJ-2", "+1 from a human")
    await tracker.post_issue_audit_failure_comment(Issue(key="PROJ-2"), failing("Assignee Indicated"))
    await tracker.post_issue_audit_failure_comment(Issue(key="PROJ-2"), failing("Sub-Task Closed"))

    await tracker.remove_issue_audit_failure_comment_by_name(Issue(key="PROJ-2"), "Assignee Indicated")

    bodies = [comment.body for comment in client.comments["PROJ-2"]]
    assert bodies[0] == "+1 from a human"
    assert len(bodies) == 2
    assert "Sub-Task Closed" in bodies[1]


@pytest.mark.asyncio
async def test_remove_all_only_touches_signed_comments(tracker, client):
    await client.add_comment("PROJ-2", "+1 from a human")
    await tracker.post_issue_audit_failure_comment(Issue(key="PROJ-2"), failing("Assignee Indicated"))

    await tracker.remove_all_audit_failure_comments(Issue(key="PROJ-2"))

    assert [comment.body for comment in client.comments["PROJ-2"]] == ["+1 from a human"]


# ═══════════════════════════════════════════════════════
# PASS / FAIL
# ═══════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_failure_adds_label_and_summary(tracker, client, settings):
    subtask = Issue(key="PROJ-2", parent_key="PROJ-1")
    audit = AuditDetails("Hazard Analysis Sub-Task Audit", subtask)
    audit.add_audit_results([failing("Assignee Indicated"), AuditDetails("Sub-Task Closed", subtask)])

    await tracker.handle_pass_fail_audit_results(subtask, audit)

    assert settings.audit_failure_label in client.labels["PROJ-2"]
    [comment] = client.comments["PROJ-2"]
    assert comment.body.startswith(f"{SIGNATURE} Audit failure: Hazard Analysis Sub-Task Audit")
    assert "* Assignee Indicated" in comment.body
    assert "Sub-Task Closed" not in comment.body


@pytest.mark.asyncio
async def test_failure_does_not_relabel_labelled_issue(tracker, client, settings):
    subtask = Issue(key="PROJ-2", labels=[settings.audit_failure_label])

    await tracker.handle_pass_fail_audit_results(subtask, failing("Hazard Analysis Sub-Task Audit"))

    assert ("update_labels", "PROJ-2") not in client.mutations()


@pytest.mark.asyncio
async def test_pass_removes_label_and_signed_comments(tracker, client, settings):
    client.labels["PROJ-2"].add(settings.audit_failure_label)
    await client.add_comment("PROJ-2", "+1")
    await tracker.post_issue_audit_failure_comment(Issue(key="PROJ-2"), failing("Assignee Indicated"))
    subtask = Issue(key="PROJ-2", labels=[settings.audit_failure_label])

    await tracker.handle_pass_fail_audit_results(subtask, AuditDetails("Hazard Analysis Sub-Task Audit", subtask))

    assert settings.audit_failure_label not in client.labels["PROJ-2"]
    assert [comment.body for comment in client.comments["PROJ-2"]] == ["+1"]


@pytest.mark.asyncio
async def test_dry_run_makes_no_changes(client, settings):
    tracker = JiraTracker(client, settings, dry_run=True)
    await client.add_comment("PROJ-2", f"{SIGNATURE} Audit failure: Sub-Task Closed\nold")
    client.calls.clear()

    await tracker.handle_pass_fail_audit_results(Issue(key="PROJ-2"), failing("Hazard Analysis Sub-Task Audit"))
    await tracker.remove_all_audit_failure_comments(Issue(key="PROJ-2"))

    assert client.mutations() == []
    assert len(client.comments["PROJ-2"]) == 1
    assert ("get_comments", "PROJ-2") in client.calls


def test_dry_run_defaults_to_settings(client, settings):
    assert JiraTracker(client, settings).dry_run is False
    assert JiraTracker(client, settings.model_copy(update={"dry_run": True})).dry_run is True


def test_comment_payload_author_parsing():
    comment = Comment.from_json(comment_payload("7", "+1", author="dave"))

    assert comment.id == "7"
    assert comment.author == "dave"


def test_nested_failures_are_listed_by_leaf_name():
    subtask = Issue(key="PROJ-2", parent_key="PROJ-1")
    linked = AuditDetails("Linked Hazard Analysis Sub-Task Audit", subtask)
    linked.add_audit_results([failing("Hazard Analysis Reviewed"), AuditDetails("Assignee Indicated", subtask)])
    audit = AuditDetails("Hazard Analysis Sub-Task Audit", subtask)
    audit.add_audit_results([AuditDetails("Sub-Task Closed", subtask), linked, failing("Hazard Analysis Completed")])

    assert [r.audit_name for r in audit.failing_results] == [
        "Linked Hazard Analysis Sub-Task Audit",
        "Hazard Analysis Completed",
    ]
    assert failing_audit_names(audit) == ["Hazard Analysis Reviewed", "Hazard Analysis Completed"]
