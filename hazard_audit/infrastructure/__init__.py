"""
Transport infrastructure for the Jira client: retries and request throttling.
"""

from hazard_audit.infrastructure.rate_limiter import RateLimiter, rate_limit
from hazard_audit.infrastructure.retry import retry_async

__all__ = ["RateLimiter", "rate_limit", "retry_async"]
