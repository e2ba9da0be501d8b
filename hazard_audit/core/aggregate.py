"""
Combinators for folding partial audit results into one result.
"""

from typing import Iterable, List

from hazard_audit.core.models import AuditDetails, Issue, quote_failing


def fold_results(
    audit_name: str,
    subject: Issue,
    results: Iterable[AuditDetails],
    failing_preamble: str,
    passing_preamble: str,
) -> AuditDetails:
    """
    Свернуть частичные результаты в один новый AuditDetails.

    Итог проходит, только если проходят все результаты. Текст: преамбула
    и блок ``{quote}`` с упавшими аудитами.

    Args:
        audit_name: Имя итогового аудита
        subject: Задача, к которой относится итог
        results: Частичные результаты
        failing_preamble: Текст перед списком упавших аудитов
        passing_preamble: Текст для успешного итога
    """
    results = list(results)
    folded = AuditDetails(audit_name, subject, audit_results=results)

    if all(result.audit_passing for result in results):
        return folded.set_result(True, passing_preamble)

    return folded.set_result(False, f"{failing_preamble}\n\n{quote_failing(results)}")


def failing_audit_names(audit: AuditDetails) -> List[str]:
    """Имена всех упавших листовых аудитов (вложенные агрегаты раскрываются)."""
    names = []
    for result in audit.failing_results:
        nested = failing_audit_names(result)
        names.extend(nested or [result.audit_name])
    return names
