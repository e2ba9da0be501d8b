"""
Checks shared by the sub-task audits: closed state, assignee, single link.
"""

from typing import Optional

from hazard_audit.core.base_check import BaseCheck
from hazard_audit.core.models import AuditDetails, Issue


class SubTaskClosed(BaseCheck):
    """Sub-task должен быть закрыт."""

    name = "Sub-Task Closed"

    async def _check(self, issue: Issue) -> AuditDetails:
        if issue.status_category == "done":
            return self.passed(issue, f"Sub-task is closed with status {issue.status}.")

        return self.failed(
            issue,
            f"Sub-task must be closed before the parent issue is resolved; current status is {issue.status or 'unknown'}.",
        )


class AssigneeIndicated(BaseCheck):
    """У задачи должен быть исполнитель."""

    name = "Assignee Indicated"

    async def _check(self, issue: Issue) -> AuditDetails:
        if issue.assignee:
            return self.passed(issue, "An assignee is indicated.")

        return self.failed(issue, "An assignee must be indicated for the person who performed this work.")


class HasOneSubTaskLink(BaseCheck):
    """Sub-task должен ссылаться ровно на один sub-task того же типа."""

    def __init__(self, tracker, type_name: Optional[str] = None):
        super().__init__(tracker)
        self.type_name = type_name or self.settings.hazard_analysis_subtask_name
        self.name = f"Sub-Task Has One Linked {self.type_name} Sub-Task"

    async def _check(self, issue: Issue) -> AuditDetails:
        linked_keys = [
            link.linked_key
            for link in issue.links
            if self.tracker.is_subtask_link_of_type(link, self.type_name)
        ]

        if len(linked_keys) == 1:
            return self.passed(issue, f"Sub-task is linked to the {self.type_name} sub-task {linked_keys[0]}.")

        return self.failed(
            issue,
            f"Sub-task is linked to {len(linked_keys)} {self.type_name} sub-tasks ({', '.join(linked_keys) or 'none'}). "
            f"Link to exactly one {self.type_name} sub-task so that it can be audited in place of this one.",
        )
