"""
Request throttling for the Jira REST API.

Keeps the auditor under its requests-per-minute budget. When Jira still
answers 429 the limiter is told to hold every request for the Retry-After
interval.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Optional


class RateLimiter:
    """
    Token bucket на rate запросов за per_seconds.

    Ёмкость равна rate: после простоя можно сделать rate запросов подряд.
    """

    def __init__(self, rate: int, per_seconds: float = 60.0):
        if rate <= 0 or per_seconds <= 0:
            raise ValueError("rate и per_seconds должны быть больше нуля")
        self.capacity = float(rate)
        self.tokens = self.capacity
        self.fill_rate = rate / per_seconds
        self.blocked_until = 0.0
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, requests_per_minute: int) -> "RateLimiter":
        return cls(requests_per_minute, 60.0)

    def _take(self, now: float) -> float:
        """Взять токен; вернуть 0 или сколько ждать до следующей попытки."""
        if now < self.blocked_until:
            return self.blocked_until - now

        self.tokens = min(self.capacity, self.tokens + (now - self._last_refill) * self.fill_rate)
        self._last_refill = now
        if self.tokens >= 1:
            self.tokens -= 1
            return 0.0
        return (1 - self.tokens) / self.fill_rate

    async def acquire(self) -> None:
        """Дождаться свободного токена."""
        while True:
            async with self._lock:
                wait = self._take(time.monotonic())
            if wait <= 0:
                return
            await asyncio.sleep(wait)

    def back_off(self, seconds: float) -> None:
        """Не пускать запросы seconds секунд (Jira ответила 429)."""
        now = time.monotonic()
        self.blocked_until = max(self.blocked_until, now + seconds)
        self.tokens = 0.0
        self._last_refill = now


@asynccontextmanager
async def rate_limit(limiter: Optional[RateLimiter]):
    """
    Обернуть один запрос:

        async with rate_limit(limiter):
            await http.request(...)

    Если limiter равен None, запрос проходит без ожидания.
    """
    if limiter is not None:
        await limiter.acquire()
    yield
