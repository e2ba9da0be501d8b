"""
Hazard Analysis audit orchestrator.

Runs an ordered pipeline of named steps against one issue. Each step returns a
StepOutcome; the first PASS or FAIL stops the pipeline. Steps run strictly one
after another since later steps depend on what earlier ones found (which
sub-task to audit, whether it is delegated through a link).

Tracker errors are not handled here: they abort the run.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from hazard_audit.checks.common import AssigneeIndicated, HasOneSubTaskLink, SubTaskClosed
from hazard_audit.checks.hazard_analysis import (
    HazardAnalysisReviewed,
    HazardAnalysisSubTaskExists,
    NoWorkNeededResolution,
    cleanse_subtask_audits,
)
from hazard_audit.checks.template import HazardAnalysisCompleted
from hazard_audit.core.aggregate import fold_results
from hazard_audit.core.models import AuditDetails, Issue, StepOutcome


logger = logging.getLogger(__name__)

AUDIT_NAME = "Hazard Analysis Sub-Task Audit"
LINKED_AUDIT_NAME = "Linked Hazard Analysis Sub-Task Audit"


@dataclass
class AuditRun:
    """Состояние одного прогона аудита."""

    issue: Issue
    details: AuditDetails
    subtask: Optional[Issue] = None       # Найденный Hazard Analysis sub-task
    target: Optional[Issue] = None        # Задача, на которой идут основные проверки
    linked: bool = False                  # target получен по связи
    partial_results: List[AuditDetails] = field(default_factory=list)


Step = Callable[[AuditRun], Awaitable[StepOutcome]]


class HazardAnalysisAuditor:
    """Оркестратор аудита Hazard Analysis sub-task."""

    def __init__(self, tracker):
        """
        Args:
            tracker: JiraTracker (или совместимый объект)
        """
        self.tracker = tracker
        self.settings = tracker.settings

        self.subtask_exists = HazardAnalysisSubTaskExists(tracker)
        self.no_work_needed = NoWorkNeededResolution(tracker)
        self.one_link = HasOneSubTaskLink(tracker)
        self.subtask_closed = SubTaskClosed(tracker)
        self.assignee_indicated = AssigneeIndicated(tracker)
        self.completed = HazardAnalysisCompleted(tracker)
        self.reviewed = HazardAnalysisReviewed(tracker)

        self.steps: List[Tuple[str, Step]] = [
            ("grandfathered", self._check_grandfathered),
            ("ignored", self._check_ignored),
            ("subtask_exists", self._check_subtask_exists),
            ("no_work_needed", self._check_no_work_needed),
            ("linked_subtask", self._resolve_linked_subtask),
            ("core_checks", self._run_core_checks),
            ("aggregate", self._aggregate),
        ]

    async def run(self, issue: Issue) -> AuditDetails:
        """
        Запустить аудит задачи.

        Returns:
            Итоговый AuditDetails
        """
        subtask = self.tracker.get_subtask_by_name(issue)
        run = AuditRun(issue=issue, details=AuditDetails(AUDIT_NAME, subtask or issue))

        outcome = StepOutcome.CONTINUE
        for name, step in self.steps:
            outcome = await step(run)
            logger.debug(f"{issue.key}: step {name} -> {outcome.value}")
            if outcome.terminal:
                break

        # Итог отражается на исходном sub-task (а не на задаче по связи)
        if run.subtask is not None:
            await self.tracker.handle_pass_fail_audit_results(run.subtask, run.details)

        status = "✅ PASSED" if run.details.audit_passing else "❌ FAILED"
        logger.info(f"{issue.key}: {status} ({outcome.value} at step {name})")
        return run.details

    async def cleanse(self, issue: Issue) -> AuditDetails:
        return await cleanse_subtask_audits(self.tracker, issue)

    # ==================== Steps ====================

    async def _check_grandfathered(self, run: AuditRun) -> StepOutcome:
        cutoff = self.settings.grandfather_cutoff
        resolved = run.issue.resolution_date
        # Без даты резолюции задача считается закрытой до введения аудита
        if resolved is not None and resolved >= cutoff:
            return StepOutcome.CONTINUE

        run.details.set_result(
            True,
            "This audit is being ignored since the issue was resolved prior to the audit "
            f"introduction date of {cutoff:%B} {cutoff.day}, {cutoff.year}",
        )
        return StepOutcome.PASS

    async def _check_ignored(self, run: AuditRun) -> StepOutcome:
        if not self.tracker.issue_contains_any_label(run.issue, [self.settings.ignore_audit_label]):
            return StepOutcome.CONTINUE

        run.details.set_result(True, "Audit ignored")
        await self.cleanse(run.issue)
        return StepOutcome.PASS

    async def _check_subtask_exists(self, run: AuditRun) -> StepOutcome:
        result = await self.subtask_exists.run(run.issue)
        run.details.add_audit_results(result)
        if not result.audit_passing:
            return StepOutcome.FAIL

        run.subtask = run.target = self.tracker.get_subtask_by_name(run.issue)
        return StepOutcome.CONTINUE

    async def _check_no_work_needed(self, run: AuditRun) -> StepOutcome:
        result = await self.no_work_needed.run(run.subtask, parent=run.issue)
        if result is None:
            return StepOutcome.CONTINUE

        run.details.add_audit_results(result)
        return self._outcome_of(run.details)

    async def _resolve_linked_subtask(self, run: AuditRun) -> StepOutcome:
        links = [link for link in run.subtask.links if self.tracker.is_subtask_link_of_type(link)]
        if not links:
            run.partial_results.append(await self.subtask_closed.run(run.subtask))
            return StepOutcome.CONTINUE

        result = await self.one_link.run(run.subtask)
        run.details.add_audit_results(result)
        if not result.audit_passing:
            # Несколько связей: непонятно, какой sub-task проверять
            return StepOutcome.FAIL

        run.linked = True
        run.target = await self.tracker.get_issue_from_link(links[0])
        logger.info(f"{run.issue.key}: auditing linked sub-task {run.target.key} in place of {run.subtask.key}")

        # Исходный sub-task всё равно должен быть закрыт и иметь исполнителя
        run.details.add_audit_results(await self.subtask_closed.run(run.subtask))
        run.details.add_audit_results(await self.assignee_indicated.run(run.subtask))
        return StepOutcome.CONTINUE

    async def _run_core_checks(self, run: AuditRun) -> StepOutcome:
        run.partial_results.append(await self.assignee_indicated.run(run.target))

        completed = await self.completed.run(run.target)
        run.partial_results.append(completed)
        if completed.audit_passing:
            run.partial_results.append(await self.reviewed.run(run.target))

        return StepOutcome.CONTINUE

    async def _aggregate(self, run: AuditRun) -> StepOutcome:
        if run.linked:
            linked = fold_results(
                LINKED_AUDIT_NAME,
                run.subtask,
                run.partial_results,
                failing_preamble=(
                    "The audit details below are currently failing for the linked sub-task "
                    f"{run.target.key} and transitively causing this sub-task audit failure:"
                ),
                passing_preamble=f"All audits for the linked Hazard Analysis sub-task {run.target.key} have passed successfully.",
            )
            if linked.audit_passing:
                await self.tracker.remove_issue_audit_failure_comment(run.subtask, linked)
            else:
                await self.tracker.post_issue_audit_failure_comment(run.subtask, linked, True)
            run.details.add_audit_results(linked)
        else:
            # Связь могла исчезнуть с прошлого прогона
            await self.tracker.remove_issue_audit_failure_comment_by_name(run.subtask, LINKED_AUDIT_NAME)
            run.details.add_audit_results(run.partial_results)

        return self._outcome_of(run.details)

    @staticmethod
    def _outcome_of(details: AuditDetails) -> StepOutcome:
        return StepOutcome.PASS if details.audit_passing else StepOutcome.FAIL


async def audit_issues(tracker, keys: Iterable[str]) -> List[Tuple[str, object]]:
    """
    Проверить несколько задач параллельно.

    У каждой задачи свой снимок и свой прогон; общего состояния нет.

    Returns:
        Пары (ключ, AuditDetails или исключение трекера)
    """
    keys = list(keys)
    auditor = HazardAnalysisAuditor(tracker)

    async def audit_one(key: str) -> AuditDetails:
        issue = await tracker.fetch_issue(key)
        return await auditor.run(issue)

    results = await asyncio.gather(*(audit_one(key) for key in keys), return_exceptions=True)
    return list(zip(keys, results))
