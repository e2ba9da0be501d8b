"""
Jira tracker integration: REST client and the collaborator used by the audit.
"""

from hazard_audit.tracker.client import IssueFetchError, JiraClient, JiraError
from hazard_audit.tracker.jira import DEFAULT_ISSUE_FIELDS, DEFAULT_SUBTASK_FIELDS, JiraTracker

__all__ = [
    "JiraClient",
    "JiraTracker",
    "JiraError",
    "IssueFetchError",
    "DEFAULT_ISSUE_FIELDS",
    "DEFAULT_SUBTASK_FIELDS",
]
