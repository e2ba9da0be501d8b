"""
Hazard Analysis description template validation.

The description of a Hazard Analysis sub-task must follow a five question
template. Each question is located by its header and the header of the next
question; the last one runs to the end of the text (minus the trailing
"Engineer" signature block). Then the placeholder answers are stripped and
whatever is left must contain text.

A question that cannot be located means the template itself was altered
(MISSING); a located but empty question means it was not answered
(UNANSWERED). They produce different guidance.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from hazard_audit.core.base_check import BaseCheck
from hazard_audit.core.models import AuditDetails, Issue

FLAGS = re.IGNORECASE | re.DOTALL

PLACEHOLDER_PATTERN = re.compile(
    r"\s*<\s*yes\s+or\s+no\.\s*if\s+yes,\s*explain\s+why\s*>\s*|\s*<\s*yes\s*/\s*no\s*>\s*",
    FLAGS,
)
SIGNATURE_PATTERN = re.compile(r"\**\s*\bEngineer.+", FLAGS)
PLACEHOLDER = "<yes or no. if yes, explain why>"


class SectionStatus(Enum):
    """Состояние вопроса шаблона."""

    ANSWERED = "answered"
    UNANSWERED = "unanswered"  # Вопрос найден, но ответа нет
    MISSING = "missing"        # Вопрос не найден: шаблон изменён


@dataclass(frozen=True)
class TemplateSection:
    """Вопрос шаблона: заголовок и заголовок следующего вопроса."""

    header: str
    next_header: Optional[str] = None
    pattern: re.Pattern = field(init=False, repr=False, compare=False)
    header_pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        head = re.escape(self.header)
        if self.next_header is None:
            pattern = rf"{head}:\*?(?P<answer>.+)"
        else:
            pattern = rf"{head}:\*?(?P<answer>.+?>?)\W*{re.escape(self.next_header)}"
        object.__setattr__(self, "pattern", re.compile(pattern, FLAGS))
        object.__setattr__(self, "header_pattern", re.compile(rf"{head}:", FLAGS))

    @property
    def label(self) -> str:
        return self.header.lower()

    def header_present(self, description: str) -> bool:
        return self.header_pattern.search(description) is not None

    def extract(self, description: str) -> Optional[str]:
        """Сырой ответ на вопрос или None, если вопрос не найден."""
        match = self.pattern.search(description)
        if match is None:
            return None

        answer = match.group("answer")
        if self.next_header is None:
            answer = SIGNATURE_PATTERN.sub("", answer)
        # Плейсхолдеры вырезаются только после выделения ответа
        return PLACEHOLDER_PATTERN.sub("", answer)


def build_template(headers: List[str]) -> List[TemplateSection]:
    """Связать заголовки в цепочку (заголовок, следующий заголовок)."""
    return [
        TemplateSection(header, headers[i + 1] if i + 1 < len(headers) else None)
        for i, header in enumerate(headers)
    ]


HAZARD_ANALYSIS_TEMPLATE = build_template([
    "Financial",
    "Legal/Regulatory",
    "Data Integrity",
    "Patient Safety",
    "CyberSecurity/Information Security",
])


@dataclass
class SectionFinding:
    section: TemplateSection
    status: SectionStatus
    answer: str = ""


def evaluate_description(
    description: Optional[str],
    sections: List[TemplateSection] = HAZARD_ANALYSIS_TEMPLATE,
) -> List[SectionFinding]:
    """
    Проверить вопросы по порядку.

    Останавливается на первом вопросе, который не найден или не отвечен:
    последним в списке будет именно он. Если ответ не выделился потому, что
    пропал заголовок следующего вопроса, MISSING относится к следующему вопросу.
    """
    description = description or ""
    findings = []

    for index, section in enumerate(sections):
        answer = section.extract(description)
        if answer is None:
            culprit = section
            following = sections[index + 1] if index + 1 < len(sections) else None
            if (
                following is not None
                and section.header_present(description)
                and not following.header_present(description)
            ):
                culprit = following
            findings.append(SectionFinding(culprit, SectionStatus.MISSING))
            break

        answer = answer.strip()
        if not answer:
            findings.append(SectionFinding(section, SectionStatus.UNANSWERED))
            break

        findings.append(SectionFinding(section, SectionStatus.ANSWERED, answer))

    return findings


def render_blank_template(sections: List[TemplateSection] = HAZARD_ANALYSIS_TEMPLATE) -> str:
    """Пустой шаблон описания Hazard Analysis."""
    lines = [f"*{section.header}:* {PLACEHOLDER}" for section in sections]
    lines.extend(["", "*Engineer:* "])
    return "\n".join(lines)


class HazardAnalysisCompleted(BaseCheck):
    """Все вопросы шаблона Hazard Analysis должны быть отвечены."""

    name = "Hazard Analysis Completed"
    distinguish_subtask = True

    async def _check(self, issue: Issue) -> AuditDetails:
        findings = evaluate_description(issue.description)
        last = findings[-1]

        if last.status is SectionStatus.MISSING:
            return self.failed(
                issue,
                f"{last.section.header} description does not match expected description for Hazard Analysis. "
                f"You can copy the description directly from the Perform Hazard Analysis sub-task found in the "
                f"Story and Defect template; please clone Jira stories from the "
                f"[Story and Defect template|{self.settings.template_link}].",
            )

        if last.status is SectionStatus.UNANSWERED:
            return self.failed(issue, f"The {last.section.label} question of the Hazard analysis must be answered.")

        return self.passed(issue, "Hazard analysis has been completed for this sub-task.")
