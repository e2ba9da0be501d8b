"""
Async Jira REST API v2 client.

Thin wrapper around httpx: issues, comments and labels. Transport errors and
throttling answers are retried with backoff; other HTTP errors are raised as
JiraError.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from hazard_audit.config import Settings
from hazard_audit.core.models import Comment
from hazard_audit.infrastructure.rate_limiter import RateLimiter, rate_limit
from hazard_audit.infrastructure.retry import (
    RETRYABLE_STATUS_CODES,
    RetryableResponse,
    parse_retry_after,
    retry_async,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/rest/api/2"


class JiraError(Exception):
    """Ошибка обращения к Jira."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IssueFetchError(JiraError):
    """Задача недоступна (нет прав или не существует)."""


class JiraClient:
    """
    Клиент Jira REST API.

    Использование:
        async with JiraClient(settings) as client:
            payload = await client.get_issue("PROJ-1", ["summary"])
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        limiter: Optional[RateLimiter] = None,
    ):
        self.settings = settings
        auth = None
        headers = {"Accept": "application/json"}
        if settings.jira_user:
            auth = httpx.BasicAuth(settings.jira_user, settings.jira_api_token)
        elif settings.jira_api_token:
            headers["Authorization"] = f"Bearer {settings.jira_api_token}"

        self._http = httpx.AsyncClient(
            base_url=settings.jira_base_url,
            auth=auth,
            headers=headers,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )
        self._limiter = limiter or RateLimiter.per_minute(settings.requests_per_minute)
        self._send = retry_async(
            max_attempts=settings.max_retries,
            base_delay=settings.retry_base_delay_seconds,
            exceptions=(httpx.TransportError, RetryableResponse),
            on_retry=self._on_retry,
        )(self._send_once)

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Закрыть HTTP соединение."""
        await self._http.aclose()

    async def _send_once(self, method: str, path: str, **kwargs) -> httpx.Response:
        async with rate_limit(self._limiter):
            response = await self._http.request(method, f"{API_PREFIX}{path}", **kwargs)

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableResponse(response, parse_retry_after(response.headers.get("Retry-After")))
        return response

    def _on_retry(self, exc: BaseException, delay: float) -> None:
        if isinstance(exc, RetryableResponse) and exc.status_code == 429:
            self._limiter.back_off(delay)

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._send(method, path, **kwargs)
        except RetryableResponse as exc:
            # Попытки кончились: дальше как с обычной ошибкой HTTP
            response = exc.response
        except httpx.TransportError as exc:
            raise JiraError(f"{method} {path} failed: {type(exc).__name__}: {exc}") from exc
        logger.debug(f"{method} {path} -> {response.status_code}")

        if response.is_error:
            raise JiraError(
                f"{method} {path} failed with {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ==================== Issues ====================

    async def get_issue(self, key: str, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Получить задачу; 401/403/404 превращаются в IssueFetchError."""
        params = {}
        if fields:
            params["fields"] = ",".join(fields)

        try:
            return await self._request("GET", f"/issue/{key}", params=params)
        except JiraError as exc:
            if exc.status_code in (401, 403, 404):
                raise IssueFetchError(f"Issue {key} is not accessible: {exc}", exc.status_code) from exc
            raise

    async def update_labels(
        self,
        key: str,
        add: Iterable[str] = (),
        remove: Iterable[str] = (),
    ) -> None:
        """Добавить/удалить метки (операции Jira над метками идемпотентны)."""
        operations = [{"add": label} for label in add] + [{"remove": label} for label in remove]
        if not operations:
            return
        await self._request("PUT", f"/issue/{key}", json={"update": {"labels": operations}})

    # ==================== Comments ====================

    async def get_comments(self, key: str) -> List[Comment]:
        """Текущие комментарии задачи (не из снимка)."""
        payload = await self._request("GET", f"/issue/{key}/comment", params={"maxResults": 1000})
        return [Comment.from_json(raw) for raw in (payload or {}).get("comments", [])]

    async def add_comment(self, key: str, body: str) -> Comment:
        payload = await self._request("POST", f"/issue/{key}/comment", json={"body": body})
        return Comment.from_json(payload or {})

    async def update_comment(self, key: str, comment_id: str, body: str) -> Comment:
        payload = await self._request("PUT", f"/issue/{key}/comment/{comment_id}", json={"body": body})
        return Comment.from_json(payload or {})

    async def delete_comment(self, key: str, comment_id: str) -> None:
        await self._request("DELETE", f"/issue/{key}/comment/{comment_id}")
