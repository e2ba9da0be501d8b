"""Конфигурация аудитора Hazard Analysis."""

from datetime import datetime, timezone
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Настройки аудитора."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="HAZARD_AUDIT_", extra="allow")

    # Jira
    jira_base_url: str = "https://jira.example.com"
    jira_user: str = ""
    jira_api_token: str = ""  # Должен быть установлен через HAZARD_AUDIT_JIRA_API_TOKEN
    request_timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_base_delay_seconds: float = 0.5
    requests_per_minute: int = 120
    dry_run: bool = False

    # Audit rules
    hazard_analysis_subtask_name: str = "Hazard Analysis"
    ignore_audit_label: str = "IGNORE_HAZARD_ANALYSIS_AUDIT"
    audit_failure_label: str = "HAZARD_ANALYSIS_AUDIT_FAILURE"
    grandfather_cutoff: datetime = datetime(2019, 4, 22, tzinfo=timezone.utc)
    template_link: str = "https://jira.example.com/browse/TEMPLATE-1"
    no_work_needed_resolutions: List[str] = ["No Work Needed", "Won't Do", "Won't Fix", "Duplicate"]

    # Подпись, по которой аудитор находит свои комментарии
    comment_signature: str = "[Hazard Analysis Auditor]"

    @field_validator("grandfather_cutoff")
    @classmethod
    def _cutoff_is_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("jira_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
