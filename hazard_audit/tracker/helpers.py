"""
Pure helpers over issue snapshots. No tracker calls happen here.
"""

import re
from typing import Iterable, List, Optional

from hazard_audit.core.models import Comment, Issue, IssueLink

PLUS_ONE_PATTERN = re.compile(r"^\s*\+1(?!\d)")


def get_subtask_by_name(issue: Issue, type_name: str) -> Optional[Issue]:
    """Найти sub-task по имени типа (первый найденный)."""
    for subtask in issue.subtasks:
        if subtask.issue_type == type_name:
            return subtask
    return None


def issue_contains_any_label(issue: Issue, labels: Iterable[str]) -> bool:
    wanted = set(labels)
    return any(label in wanted for label in issue.labels)


def issue_has_resolution(issue: Issue, resolutions: Iterable[str]) -> bool:
    """Закрыта ли задача одной из резолюций (без учёта регистра)."""
    if not issue.resolution:
        return False
    names = {name.lower() for name in resolutions}
    return issue.resolution.lower() in names


def is_subtask_link_of_type(link: IssueLink, type_name: str) -> bool:
    """Ведёт ли связь на sub-task заданного типа."""
    return link.linked_is_subtask and link.linked_issue_type == type_name


def find_plus_one_comments(issue: Issue) -> List[Comment]:
    """
    Комментарии-ревью вида ``+1 ...`` от кого-то кроме автора.

    Автором анализа считается исполнитель задачи, а если его нет, то автор задачи.
    """
    author = issue.assignee or issue.reporter
    return [
        comment
        for comment in issue.comments
        if PLUS_ONE_PATTERN.match(comment.body) and (author is None or comment.author != author)
    ]
