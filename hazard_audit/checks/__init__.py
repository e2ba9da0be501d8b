"""
Audit checks.

Contains:
- Shared sub-task checks (closed, assignee, single link)
- Hazard Analysis checks (presence, no work needed, review, cleanse)
- Template validation of the Hazard Analysis description
"""

from hazard_audit.checks.common import AssigneeIndicated, HasOneSubTaskLink, SubTaskClosed
from hazard_audit.checks.hazard_analysis import (
    HazardAnalysisReviewed,
    HazardAnalysisSubTaskExists,
    NoWorkNeededResolution,
    cleanse_subtask_audits,
)
from hazard_audit.checks.template import HazardAnalysisCompleted, evaluate_description, render_blank_template

__all__ = [
    "AssigneeIndicated",
    "HasOneSubTaskLink",
    "SubTaskClosed",
    "HazardAnalysisCompleted",
    "HazardAnalysisReviewed",
    "HazardAnalysisSubTaskExists",
    "NoWorkNeededResolution",
    "cleanse_subtask_audits",
    "evaluate_description",
    "render_blank_template",
]
