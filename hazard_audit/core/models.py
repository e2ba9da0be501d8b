"""
Core data models for the Hazard Analysis audit.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union


JIRA_DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)


def parse_jira_datetime(value: Optional[str]) -> Optional[datetime]:
    """Разобрать дату Jira (``2019-04-21T10:15:00.000+0000``) в aware datetime."""
    if not value:
        return None

    for fmt in JIRA_DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _user_id(user: Optional[Dict[str, Any]]) -> Optional[str]:
    if not user:
        return None
    return user.get("accountId") or user.get("name") or user.get("key")


class StepOutcome(Enum):
    """Результат шага конвейера аудита."""

    CONTINUE = "continue"  # Переходим к следующему шагу
    PASS = "pass"          # Аудит завершён успешно
    FAIL = "fail"          # Аудит завершён с ошибкой

    @property
    def terminal(self) -> bool:
        return self is not StepOutcome.CONTINUE


@dataclass
class Comment:
    """Комментарий к задаче."""

    id: str
    body: str
    author: Optional[str] = None

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "Comment":
        return cls(
            id=str(payload.get("id", "")),
            body=payload.get("body") or "",
            author=_user_id(payload.get("author")),
        )


@dataclass
class IssueLink:
    """Связь задачи с другой задачей (issue link)."""

    id: str
    type_name: str
    direction: str  # "inward" или "outward"
    linked_key: str
    linked_issue_type: str = ""
    linked_is_subtask: bool = False

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "IssueLink":
        if "outwardIssue" in payload:
            direction, linked = "outward", payload["outwardIssue"]
        else:
            direction, linked = "inward", payload.get("inwardIssue") or {}

        issue_type = (linked.get("fields") or {}).get("issuetype") or {}
        return cls(
            id=str(payload.get("id", "")),
            type_name=(payload.get("type") or {}).get("name", ""),
            direction=direction,
            linked_key=linked.get("key", ""),
            linked_issue_type=issue_type.get("name", ""),
            linked_is_subtask=bool(issue_type.get("subtask", False)),
        )


@dataclass
class Issue:
    """
    Снимок задачи Jira.

    Аудит только читает снимок; все изменения в трекере идут через JiraTracker.
    """

    key: str
    issue_type: str = ""
    is_subtask: bool = False
    summary: str = ""
    description: Optional[str] = None
    status: str = ""
    status_category: str = ""
    resolution: Optional[str] = None
    resolution_date: Optional[datetime] = None
    labels: List[str] = field(default_factory=list)
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    parent_key: Optional[str] = None
    links: List[IssueLink] = field(default_factory=list)
    subtasks: List["Issue"] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: Dict[str, Any], subtasks: Optional[List["Issue"]] = None) -> "Issue":
        """
        Построить снимок из ответа Jira REST API v2.

        Args:
            payload: JSON задачи (``{"key": ..., "fields": {...}}``)
            subtasks: Полностью загруженные sub-tasks; если не переданы,
                используются краткие записи из ``fields.subtasks``
        """
        fields = payload.get("fields") or {}
        issue_type = fields.get("issuetype") or {}
        status = fields.get("status") or {}
        resolution = fields.get("resolution") or {}
        parent = fields.get("parent") or {}

        if subtasks is None:
            subtasks = [cls.from_json(raw) for raw in fields.get("subtasks") or []]

        return cls(
            key=payload.get("key", ""),
            issue_type=issue_type.get("name", ""),
            is_subtask=bool(issue_type.get("subtask", False)),
            summary=fields.get("summary") or "",
            description=fields.get("description"),
            status=status.get("name", ""),
            status_category=(status.get("statusCategory") or {}).get("key", ""),
            resolution=resolution.get("name"),
            resolution_date=parse_jira_datetime(fields.get("resolutiondate")),
            labels=list(fields.get("labels") or []),
            assignee=_user_id(fields.get("assignee")),
            reporter=_user_id(fields.get("reporter")),
            parent_key=parent.get("key"),
            links=[IssueLink.from_json(raw) for raw in fields.get("issuelinks") or []],
            subtasks=subtasks,
            comments=[Comment.from_json(raw) for raw in (fields.get("comment") or {}).get("comments") or []],
        )

    @property
    def subtask_keys(self) -> List[str]:
        return [subtask.key for subtask in self.subtasks]


@dataclass
class AuditDetails:
    """
    Результат одного аудита (или агрегат нескольких).

    Флаг ``audit_passing`` и текст ``audit_details`` всегда меняются вместе:
    через ``set_result`` или ``add_audit_results``.
    """

    audit_name: str
    subject: Issue
    audit_passing: bool = True
    audit_details: str = ""
    audit_results: List["AuditDetails"] = field(default_factory=list)

    def set_result(self, passing: bool, details: str) -> "AuditDetails":
        """Установить итог аудита."""
        self.audit_passing = passing
        self.audit_details = details
        return self

    def add_audit_results(self, results: Union["AuditDetails", Iterable["AuditDetails"]]) -> "AuditDetails":
        """
        Добавить результаты в агрегат.

        Агрегат проходит, только если проходят все вложенные результаты;
        текст агрегата собирается из текстов упавших аудитов.
        """
        if isinstance(results, AuditDetails):
            results = [results]
        self.audit_results.extend(results)

        passing = all(result.audit_passing for result in self.audit_results)
        if passing:
            details = f"All {len(self.audit_results)} audits passed."
        else:
            details = "The audits below are failing:\n\n" + quote_failing(self.audit_results)
        return self.set_result(passing, details)

    @property
    def failing_results(self) -> List["AuditDetails"]:
        return [result for result in self.audit_results if not result.audit_passing]

    def comment_text(self) -> str:
        """Текст аудита для комментария Jira (wiki markup)."""
        icon = "(/)" if self.audit_passing else "(x)"
        return f"{icon} *{self.audit_name}*\n{self.audit_details}"

    def to_dict(self) -> Dict[str, Any]:
        """Преобразовать в словарь для JSON."""
        return {
            "audit_name": self.audit_name,
            "subject": self.subject.key,
            "audit_passing": self.audit_passing,
            "audit_details": self.audit_details,
            "audit_results": [result.to_dict() for result in self.audit_results],
        }


def quote_failing(results: Iterable[AuditDetails]) -> str:
    """Склеить тексты упавших аудитов в блок ``{quote}``."""
    body = "\n\n".join(result.comment_text() for result in results if not result.audit_passing)
    if not body:
        return ""
    return f"{{quote}}\n{body}\n{{quote}}"
