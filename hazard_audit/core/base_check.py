"""
Base class for audit checks.
"""

import logging
import time
from abc import ABC, abstractmethod

from hazard_audit.core.models import AuditDetails, Issue


class BaseCheck(ABC):
    """
    Базовый класс для всех проверок.

    Предоставляет:
    - Шаблон метода run()
    - Публикацию/удаление комментария об ошибке на проверяемой задаче
    - Логирование

    Ошибки трекера не перехватываются: они прерывают весь аудит.
    """

    #: Имя аудита (используется в комментариях и отчётах)
    name: str = ""

    #: Помечать комментарий как относящийся к sub-task
    distinguish_subtask: bool = False

    def __init__(self, tracker):
        """
        Args:
            tracker: JiraTracker (или совместимый объект)
        """
        self.tracker = tracker
        self.settings = tracker.settings
        self.logger = logging.getLogger(f"hazard_audit.{self.__class__.__name__}")

    async def run(self, issue: Issue, **context) -> AuditDetails:
        """
        Выполнить проверку и отразить результат на задаче.

        Args:
            issue: Проверяемая задача (на неё же пишется комментарий)
            **context: Дополнительные данные для _check (например, родитель)

        Returns:
            AuditDetails с результатом
        """
        self.logger.debug(f"Starting {self.name} on {issue.key}...")
        start_time = time.perf_counter()

        try:
            result = await self._check(issue, **context)
            await self.publish(issue, result)
        except Exception as e:
            self.logger.error(f"{self.name} failed on {issue.key}: {type(e).__name__}: {e}")
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        self.logger.info(
            f"Completed {self.name} on {issue.key}: "
            f"passed={result.audit_passing}, "
            f"duration={duration_ms:.2f}ms"
        )
        return result

    async def publish(self, issue: Issue, result: AuditDetails) -> None:
        """Опубликовать комментарий об ошибке или удалить устаревший."""
        if result.audit_passing:
            await self.tracker.remove_issue_audit_failure_comment(issue, result)
        else:
            await self.tracker.post_issue_audit_failure_comment(issue, result, self.distinguish_subtask)

    @abstractmethod
    async def _check(self, issue: Issue, **context) -> AuditDetails:
        """
        Выполнить проверку (должен быть реализован в подклассах).

        Returns:
            AuditDetails с установленным итогом
        """

    def passed(self, issue: Issue, details: str) -> AuditDetails:
        return AuditDetails(self.name, issue).set_result(True, details)

    def failed(self, issue: Issue, details: str) -> AuditDetails:
        return AuditDetails(self.name, issue).set_result(False, details)
