"""
CLI interface for the Hazard Analysis auditor.

Usage:
    hazard-audit audit PROJ-1 PROJ-2           # Audit issues and update Jira
    hazard-audit audit PROJ-1 --dry-run        # Audit without touching Jira
    hazard-audit audit PROJ-1 --json           # JSON output
    hazard-audit template                      # Print the blank template
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import List

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.text import Text

from hazard_audit.checks.template import render_blank_template
from hazard_audit.config import Settings, get_settings
from hazard_audit.core.models import AuditDetails
from hazard_audit.orchestrator import audit_issues
from hazard_audit.tracker.client import JiraClient, JiraError
from hazard_audit.tracker.jira import JiraTracker

app = typer.Typer(
    name="hazard-audit",
    help="Hazard Analysis sub-task auditor for Jira",
)
console = Console()

logger = logging.getLogger(__name__)

EXIT_FAILED_AUDIT = 1
EXIT_TRACKER_ERROR = 2


def setup_logging(verbose: bool = False):
    """Настроить логирование."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@app.callback()
def main():
    """Загрузить .env до чтения настроек."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)


async def run_audits(settings: Settings, keys: List[str]):
    async with JiraClient(settings) as client:
        tracker = JiraTracker(client, settings)
        return await audit_issues(tracker, keys)


@app.command()
def audit(
    keys: List[str] = typer.Argument(..., help="Ключи задач Jira"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Не изменять Jira, только логировать"),
    output_json: bool = typer.Option(False, "--json", help="Вывести результат в JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Подробные логи"),
):
    """🔍 Проверить Hazard Analysis sub-tasks у задач."""
    setup_logging(verbose)

    settings = get_settings()
    if dry_run:
        settings = settings.model_copy(update={"dry_run": True})

    results = asyncio.run(run_audits(settings, keys))

    tracker_errors = 0
    failed = 0
    rows = []
    for key, result in results:
        if isinstance(result, JiraError):
            tracker_errors += 1
            logger.error(f"{key}: tracker error: {result}")
            rows.append({"key": key, "status": "error", "details": str(result)})
        elif isinstance(result, AuditDetails):
            failed += 0 if result.audit_passing else 1
            rows.append({
                "key": key,
                "status": "passed" if result.audit_passing else "failed",
                "details": result.audit_details,
                "audit": result.to_dict(),
            })
        else:
            raise result

    if output_json:
        console.print_json(json.dumps(rows))
    else:
        table = Table(title="🛡️ Hazard Analysis audit")
        table.add_column("Issue", style="cyan")
        table.add_column("Status")
        table.add_column("Details", style="dim")

        styles = {"passed": "[green]✅ passed[/]", "failed": "[red]❌ failed[/]", "error": "[yellow]⚠️ error[/]"}
        for row in rows:
            table.add_row(row["key"], styles[row["status"]], Text(row["details"]))
        console.print(table)

    if tracker_errors:
        raise typer.Exit(EXIT_TRACKER_ERROR)
    if failed:
        raise typer.Exit(EXIT_FAILED_AUDIT)


@app.command()
def template():
    """📄 Показать пустой шаблон описания Hazard Analysis."""
    console.print(render_blank_template(), markup=False, highlight=False)


if __name__ == "__main__":
    app()
