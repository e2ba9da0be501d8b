"""
Hazard Analysis sub-task checks: presence, "no work needed" resolution,
peer review, and the cleanse routine used when the audit is ignored.
"""

import logging
from typing import Optional

from hazard_audit.core.base_check import BaseCheck
from hazard_audit.core.models import AuditDetails, Issue

logger = logging.getLogger(__name__)


class HazardAnalysisSubTaskExists(BaseCheck):
    """У задачи должен быть Hazard Analysis sub-task. Комментарий пишется на родителя."""

    name = "Issue Requires A Hazard Analysis Sub-Task"

    async def _check(self, issue: Issue) -> AuditDetails:
        if self.tracker.get_subtask_by_name(issue) is None:
            return self.failed(
                issue,
                "A Hazard Analysis sub-task is required for all stories; please clone Jira stories from the "
                f"[Story and Defect template|{self.settings.template_link}].",
            )

        return self.passed(issue, "Hazard Analysis sub-task is required and present")


class NoWorkNeededResolution(BaseCheck):
    """
    Sub-task, закрытый как "no work needed", допустим только если родитель
    закрыт так же.
    """

    name = "Hazard Analysis No Work Needed Resolution Validation"

    async def run(self, issue: Issue, parent: Issue = None) -> Optional[AuditDetails]:
        """
        Returns:
            None, если sub-task закрыт не как "no work needed" (аудит продолжается),
            иначе окончательный AuditDetails
        """
        if not self.tracker.issue_has_no_work_needed_resolution(issue):
            await self.tracker.remove_issue_audit_failure_comment_by_name(issue, self.name)
            return None

        return await super().run(issue, parent=parent)

    async def _check(self, issue: Issue, parent: Issue = None) -> AuditDetails:
        if parent is not None and self.tracker.issue_has_no_work_needed_resolution(parent):
            return self.passed(
                issue,
                f"Hazard analysis resolution of {issue.resolution} is valid since the parent issue "
                f"was closed with a {parent.resolution} resolution.",
            )

        return self.failed(
            issue,
            "Hazard analysis is required for all stories. It is not valid to close this sub-task as not needing "
            "any work. If the hazard analysis has been created under another Hazard Analysis sub-task, please link "
            "directly to that sub-task via a _JIRA Issue_ link so it can be audited.",
        )


class HazardAnalysisReviewed(BaseCheck):
    """Анализ должен получить '+1' от ревьюера, который не является автором."""

    name = "Hazard Analysis Reviewed"

    async def _check(self, issue: Issue) -> AuditDetails:
        plus_ones = self.tracker.find_plus_one_comments(issue)

        if not plus_ones:
            return self.failed(
                issue,
                "Hazard Analysis must receive a '+1' comment from a reviewer other than the author "
                "before the sub-task can be closed.",
            )

        return self.passed(issue, "Hazard Analysis has received a '+1' comment from a reviewer other than the author.")


CLEANSE_AUDIT_NAME = "Hazard Analysis Sub-Task Cleanse"


async def cleanse_subtask_audits(tracker, issue: Issue) -> AuditDetails:
    """
    Убрать комментарии и метки аудитора с Hazard Analysis sub-task.

    Если sub-task нет, с родителя снимается комментарий о его отсутствии.
    """
    cleanse = AuditDetails(CLEANSE_AUDIT_NAME, issue).set_result(
        True, "All audit comments and labels will be removed from this sub-task"
    )

    subtask = tracker.get_subtask_by_name(issue)
    if subtask is not None:
        logger.info(f"{issue.key}: cleansing audit artifacts from {subtask.key}")
        await tracker.handle_pass_fail_audit_results(subtask, cleanse)
    else:
        await tracker.remove_issue_audit_failure_comment_by_name(issue, HazardAnalysisSubTaskExists.name)

    return cleanse
