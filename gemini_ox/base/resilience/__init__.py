"""Resilience primitives: retry/backoff policy and admission control."""

from .retry import RetryConfig, DEFAULT_RETRY_CONFIG, parse_retry_after
from .rate_limit import NoopLimiter, RateLimiter, TokenBucket

__all__ = [
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    "parse_retry_after",
    "NoopLimiter",
    "RateLimiter",
    "TokenBucket",
]
