"""
Hazard Analysis Auditor - audits the Hazard Analysis sub-task of Jira issues.

Основные компоненты:
- HazardAnalysisAuditor: Конвейер проверок для одной задачи
- HazardAnalysisCompleted / evaluate_description: Проверка шаблона описания
- JiraTracker: Чтение задач и запись результатов (комментарии, метки)
- JiraClient: Асинхронный клиент Jira REST API
- AuditDetails: Результат аудита
"""

from hazard_audit.checks.template import HazardAnalysisCompleted, evaluate_description
from hazard_audit.config import Settings, get_settings
from hazard_audit.core.models import AuditDetails, Issue, StepOutcome
from hazard_audit.orchestrator import HazardAnalysisAuditor, audit_issues
from hazard_audit.tracker.client import IssueFetchError, JiraClient, JiraError
from hazard_audit.tracker.jira import JiraTracker

__version__ = "1.0.0"

__all__ = [
    # Основные классы
    "HazardAnalysisAuditor",
    "HazardAnalysisCompleted",
    "JiraTracker",
    "JiraClient",

    # Модели данных
    "AuditDetails",
    "Issue",
    "StepOutcome",

    # Ошибки
    "JiraError",
    "IssueFetchError",

    # Утилиты
    "Settings",
    "get_settings",
    "audit_issues",
    "evaluate_description",

    # Версия
    "__version__",
]
