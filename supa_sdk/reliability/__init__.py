"""Reliability layer for rate-limit retries.

This layer handles:
- Rate limit retry policy
- Exponential backoff with jitter
- Retry-After handling
- Rate limit headroom extraction
"""

from .rate_limiting import (
    DEFAULT_RATE_LIMIT_CONFIG,
    RateLimitConfig,
    RateLimitedResult,
    RateLimitRetryManager,
    compute_backoff_delay,
    extract_rate_limit_info,
)

__all__ = [
    "RateLimitConfig",
    "DEFAULT_RATE_LIMIT_CONFIG",
    "RateLimitedResult",
    "RateLimitRetryManager",
    "compute_backoff_delay",
    "extract_rate_limit_info",
]
