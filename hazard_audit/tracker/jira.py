"""
Jira tracker collaborator used by the audit.

Reads issue snapshots, finds sub-tasks/links/review comments and writes audit
results back to Jira as comments and labels. Failure comments are signed so
they can be found again by audit name; posting them is idempotent.
"""

import logging
import re
from typing import Iterable, List, Optional

from hazard_audit.config import Settings
from hazard_audit.core.aggregate import failing_audit_names
from hazard_audit.core.models import AuditDetails, Comment, Issue, IssueLink
from hazard_audit.tracker import helpers
from hazard_audit.tracker.client import JiraClient

logger = logging.getLogger(__name__)

DEFAULT_ISSUE_FIELDS = [
    "summary",
    "issuetype",
    "status",
    "resolution",
    "resolutiondate",
    "labels",
    "assignee",
    "reporter",
    "subtasks",
]

DEFAULT_SUBTASK_FIELDS = [
    "summary",
    "issuetype",
    "status",
    "resolution",
    "resolutiondate",
    "description",
    "labels",
    "assignee",
    "reporter",
    "parent",
    "issuelinks",
    "comment",
]


class JiraTracker:
    """Операции над трекером, которые нужны аудиту."""

    def __init__(self, client: JiraClient, settings: Optional[Settings] = None, dry_run: Optional[bool] = None):
        self.client = client
        self.settings = settings or client.settings
        self.dry_run = self.settings.dry_run if dry_run is None else dry_run
        self._marker = re.compile(
            rf"^{re.escape(self.settings.comment_signature)} (?:Sub-task audit|Audit) failure: (?P<name>.+?)\s*$"
        )

    # ==================== Snapshots ====================

    async def fetch_issue(self, key: str) -> Issue:
        """Загрузить задачу вместе с полностью загруженными sub-tasks."""
        payload = await self.client.get_issue(key, DEFAULT_ISSUE_FIELDS)

        # Sub-tasks загружаются последовательно
        subtasks = []
        for raw in (payload.get("fields") or {}).get("subtasks") or []:
            subtask_payload = await self.client.get_issue(raw["key"], DEFAULT_SUBTASK_FIELDS)
            subtasks.append(Issue.from_json(subtask_payload))

        issue = Issue.from_json(payload, subtasks=subtasks)
        logger.debug(f"Fetched {issue.key} with {len(subtasks)} sub-tasks")
        return issue

    async def get_issue_from_link(self, link: IssueLink, fields: Iterable[str] = DEFAULT_SUBTASK_FIELDS) -> Issue:
        """Загрузить задачу, на которую указывает связь (IssueFetchError если недоступна)."""
        payload = await self.client.get_issue(link.linked_key, fields)
        return Issue.from_json(payload)

    # ==================== Snapshot helpers ====================

    def get_subtask_by_name(self, issue: Issue, type_name: Optional[str] = None) -> Optional[Issue]:
        return helpers.get_subtask_by_name(issue, type_name or self.settings.hazard_analysis_subtask_name)

    def issue_contains_any_label(self, issue: Issue, labels: Iterable[str]) -> bool:
        return helpers.issue_contains_any_label(issue, labels)

    def issue_has_no_work_needed_resolution(self, issue: Issue) -> bool:
        return helpers.issue_has_resolution(issue, self.settings.no_work_needed_resolutions)

    def is_subtask_link_of_type(self, link: IssueLink, type_name: Optional[str] = None) -> bool:
        return helpers.is_subtask_link_of_type(link, type_name or self.settings.hazard_analysis_subtask_name)

    def find_plus_one_comments(self, issue: Issue) -> List[Comment]:
        return helpers.find_plus_one_comments(issue)

    # ==================== Audit comments ====================

    def render_failure_comment(self, audit: AuditDetails, distinguish_subtask: bool = False) -> str:
        """Текст комментария об ошибке аудита."""
        kind = "Sub-task audit" if distinguish_subtask else "Audit"
        lines = [f"{self.settings.comment_signature} {kind} failure: {audit.audit_name}"]
        if distinguish_subtask and audit.subject.parent_key:
            lines.append(f"_Sub-task {audit.subject.key} of {audit.subject.parent_key}_")
        lines.append(audit.audit_details)
        return "\n".join(lines)

    def audit_name_of(self, comment: Comment) -> Optional[str]:
        """Имя аудита из подписанного комментария, или None для чужих комментариев."""
        first_line = comment.body.split("\n", 1)[0]
        match = self._marker.match(first_line)
        return match.group("name") if match else None

    async def _audit_comments(self, key: str, audit_name: Optional[str] = None) -> List[Comment]:
        comments = await self.client.get_comments(key)
        found = []
        for comment in comments:
            name = self.audit_name_of(comment)
            if name is None:
                continue
            if audit_name is None or name == audit_name:
                found.append(comment)
        return found

    async def post_issue_audit_failure_comment(
        self,
        target: Issue,
        audit: AuditDetails,
        distinguish_subtask: bool = False,
    ) -> None:
        """Создать или обновить комментарий об ошибке аудита (без дублей)."""
        body = self.render_failure_comment(audit, distinguish_subtask)
        existing = await self._audit_comments(target.key, audit.audit_name)

        if not existing:
            await self._add_comment(target.key, body)
            return

        current, duplicates = existing[0], existing[1:]
        if current.body.strip() != body.strip():
            await self._update_comment(target.key, current.id, body)
        else:
            logger.debug(f"{target.key}: '{audit.audit_name}' comment is up to date")

        for duplicate in duplicates:
            await self._delete_comment(target.key, duplicate.id)

    async def remove_issue_audit_failure_comment(self, target: Issue, audit: AuditDetails) -> None:
        await self.remove_issue_audit_failure_comment_by_name(target, audit.audit_name)

    async def remove_issue_audit_failure_comment_by_name(self, target: Issue, audit_name: str) -> None:
        for comment in await self._audit_comments(target.key, audit_name):
            await self._delete_comment(target.key, comment.id)

    async def remove_all_audit_failure_comments(self, target: Issue) -> None:
        for comment in await self._audit_comments(target.key):
            await self._delete_comment(target.key, comment.id)

    # ==================== Pass/fail handling ====================

    async def handle_pass_fail_audit_results(self, target: Issue, audit: AuditDetails) -> None:
        """
        Отразить итог аудита на задаче.

        Успех: снять метку ошибки и все подписанные комментарии аудитора.
        Ошибка: поставить метку и создать/обновить сводный комментарий
        со списком упавших аудитов.
        """
        label = self.settings.audit_failure_label

        if audit.audit_passing:
            logger.info(f"{target.key}: '{audit.audit_name}' passed, clearing audit artifacts")
            if label in target.labels:
                await self._update_labels(target.key, remove=[label])
            await self.remove_all_audit_failure_comments(target)
            return

        names = failing_audit_names(audit) or [audit.audit_name]
        summary = "The following audits are failing:\n" + "\n".join(f"* {name}" for name in names)
        summary += f"\n\nThe {label} label and this comment are removed automatically once every audit passes."

        logger.info(f"{target.key}: '{audit.audit_name}' failed ({', '.join(names)})")
        if label not in target.labels:
            await self._update_labels(target.key, add=[label])
        await self.post_issue_audit_failure_comment(
            target,
            AuditDetails(audit.audit_name, target).set_result(False, summary),
        )

    # ==================== Mutations ====================

    async def _add_comment(self, key: str, body: str) -> None:
        if self.dry_run:
            logger.info(f"[dry-run] {key}: add comment '{body.splitlines()[0]}'")
            return
        await self.client.add_comment(key, body)

    async def _update_comment(self, key: str, comment_id: str, body: str) -> None:
        if self.dry_run:
            logger.info(f"[dry-run] {key}: update comment {comment_id}")
            return
        await self.client.update_comment(key, comment_id, body)

    async def _delete_comment(self, key: str, comment_id: str) -> None:
        if self.dry_run:
            logger.info(f"[dry-run] {key}: delete comment {comment_id}")
            return
        await self.client.delete_comment(key, comment_id)

    async def _update_labels(self, key: str, add: Iterable[str] = (), remove: Iterable[str] = ()) -> None:
        if self.dry_run:
            logger.info(f"[dry-run] {key}: labels add={list(add)} remove={list(remove)}")
            return
        await self.client.update_labels(key, add=add, remove=remove)
