"""
Pytest configuration and fixtures.

Использование:
    pytest tests/ -v
"""

import os
import sys
from pathlib import Path

import pytest
from dotenv import load_dotenv

from hazard_audit.config import Settings
from hazard_audit.orchestrator import HazardAnalysisAuditor
from hazard_audit.tracker.jira import JiraTracker
from tests.factories import FakeJiraClient

# Загрузить .env файл
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def pytest_sessionstart(session):  # type: ignore[override]
    """Добавить корень проекта в sys.path перед запуском тестов."""
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


# ═══════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════

@pytest.fixture
def settings():
    """Настройки для тестов (без .env и без реальной Jira)."""
    return Settings(
        _env_file=None,
        jira_base_url="https://jira.test",
        template_link="https://jira.test/browse/TEMPLATE-1",
        max_retries=3,
        retry_base_delay_seconds=0.0,
    )


# ═══════════════════════════════════════════════════════
# MOCK FIXTURES
# ═══════════════════════════════════════════════════════

@pytest.fixture
def client(settings):
    """Jira в памяти."""
    return FakeJiraClient(settings)


@pytest.fixture
def tracker(client, settings):
    return JiraTracker(client, settings)


@pytest.fixture
def auditor(tracker):
    return HazardAnalysisAuditor(tracker)
