"""Data models shared across the SDK."""

from .rate_limit import RateLimitInfo

__all__ = ["RateLimitInfo"]
