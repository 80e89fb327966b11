"""Rate limit headroom reported by the backend."""

import math
from typing import Mapping, Optional

from pydantic import BaseModel, Field


RATE_LIMIT_REMAINING_HEADER = "x-ratelimit-remaining"
RATE_LIMIT_LIMIT_HEADER = "x-ratelimit-limit"
RATE_LIMIT_RESET_HEADER = "x-ratelimit-reset"


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)


class RateLimitInfo(BaseModel):
    """Headroom in the current rate limit window."""

    remaining: Optional[int] = Field(None, description="Requests remaining in the current window")
    limit: Optional[int] = Field(None, description="Total requests allowed in the window")
    reset_at: Optional[int] = Field(None, description="Unix timestamp (seconds) when the window resets")

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["RateLimitInfo"]:
        """
        Build headroom info from response headers.

        Returns None when none of the ``x-ratelimit-*`` headers are present.
        Lookups are case-insensitive when ``headers`` is an ``httpx.Headers``.
        """
        remaining = headers.get(RATE_LIMIT_REMAINING_HEADER)
        limit = headers.get(RATE_LIMIT_LIMIT_HEADER)
        reset = headers.get(RATE_LIMIT_RESET_HEADER)

        if not remaining and not limit and not reset:
            return None

        return cls(
            remaining=_parse_int(remaining),
            limit=_parse_int(limit),
            reset_at=_parse_int(reset),
        )
