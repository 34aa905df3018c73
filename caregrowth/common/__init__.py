"""Shared helpers used across adapters."""

from .rate_limiter import RateLimiter
from .retry import retry_with_backoff

__all__ = ["RateLimiter", "retry_with_backoff"]
