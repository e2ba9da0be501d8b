"""
Retries for transient Jira failures.

Connection problems and throttling or maintenance answers (429, 502-504) are
worth another attempt; everything else goes back to the caller at once.
"""

import asyncio
import logging
import random
from functools import wraps
from typing import Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


class RetryableResponse(Exception):
    """Ответ Jira, после которого запрос стоит повторить."""

    def __init__(self, response, retry_after: Optional[float] = None):
        super().__init__(f"Jira answered {response.status_code}")
        self.response = response
        self.status_code = response.status_code
        self.retry_after = retry_after


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Заголовок Retry-After в секундах (None, если его нет или он не числовой)."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def backoff_delay(attempt: int, base_delay: float, jitter: float, retry_after: Optional[float] = None) -> float:
    """Пауза перед попыткой attempt + 1; Retry-After от сервера важнее расчёта."""
    if retry_after is not None:
        return retry_after
    return base_delay * 2 ** (attempt - 1) + random.uniform(0, jitter)


def retry_async(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    jitter: float = 0.1,
    on_retry: Optional[Callable[[BaseException, float], None]] = None,
):
    """
    Асинхронный декоратор с экспоненциальной задержкой.

    Последняя неудачная попытка пробрасывает исключение вызывающему коду.

    Args:
        max_attempts: Максимум попыток (включая первую)
        base_delay: Задержка перед второй попыткой, дальше удваивается
        exceptions: Исключения, после которых повторяем
        jitter: Добавочный случайный шум
        on_retry: Вызывается с (исключение, пауза) перед каждым повтором
    """
    if max_attempts < 1:
        raise ValueError("max_attempts должен быть не меньше 1")

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as exc:
                    if attempt == max_attempts:
                        raise

                    delay = backoff_delay(attempt, base_delay, jitter, getattr(exc, "retry_after", None))
                    logger.warning(
                        f"{func.__name__}: {type(exc).__name__}: {exc} "
                        f"(attempt {attempt}/{max_attempts}), retrying in {delay:.2f}s"
                    )
                    if on_retry is not None:
                        on_retry(exc, delay)
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
