from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Generic, Mapping, Optional, TypeVar

from ..core.errors import ConfigurationDetails, ConfigurationError, RateLimitError
from ..models.rate_limit import RateLimitInfo
from ..observability.logging import LogLevel

if TYPE_CHECKING:
    from ..observability.observability import Observability


T = TypeVar("T")


@dataclass(frozen=True)
class RateLimitConfig:
    """Retry policy for rate-limited calls. Delays are in seconds."""
    enable_retry: bool = True
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.1

    def __post_init__(self):
        problems = []
        if self.max_retries < 0:
            problems.append("max_retries must be >= 0")
        if self.base_delay < 0 or self.max_delay < 0:
            problems.append("delays must be >= 0")
        if not 0.0 <= self.jitter <= 1.0:
            problems.append("jitter must be within [0, 1]")
        if problems:
            raise ConfigurationError(
                f"Invalid rate limit configuration: {'; '.join(problems)}",
                details=ConfigurationDetails(setting="rate_limit", value=repr(self)),
            )


DEFAULT_RATE_LIMIT_CONFIG = RateLimitConfig()


@dataclass
class RateLimitedResult(Generic[T]):
    """Operation result plus any rate limit headroom seen while retrying."""
    result: T
    rate_limit: Optional[RateLimitInfo] = None
    attempts: int = 1


def extract_rate_limit_info(headers: Mapping[str, str]) -> Optional[RateLimitInfo]:
    """Parse ``x-ratelimit-*`` headers; None when none are present."""
    return RateLimitInfo.from_headers(headers)


def compute_backoff_delay(
    attempt: int,
    config: RateLimitConfig,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Backoff before retry ``attempt`` (1-indexed).

    ``min(base_delay * 2**(attempt-1), max_delay)`` scaled by a uniform
    jitter factor in ``[1 - jitter, 1 + jitter]``.
    """
    exp_delay = min(config.base_delay * (2 ** (attempt - 1)), config.max_delay)
    source = rng if rng is not None else random
    return exp_delay * source.uniform(1 - config.jitter, 1 + config.jitter)


class RateLimitRetryManager:
    """
    Manages retry logic for rate-limited operations.

    This class handles:
    - Retrying only rate-limit failures flagged as retryable
    - Exponential backoff with jitter
    - Respect for Retry-After headers
    - Maximum delay caps
    """

    def __init__(
        self,
        observability: Optional["Observability"] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            observability: Where retry decisions are logged
            sleep: Awaitable sleep used between attempts (defaults to asyncio.sleep)
            rng: Random source for jitter
        """
        self.observability = observability
        self._sleep = sleep if sleep is not None else asyncio.sleep
        self._rng = rng

    async def execute_with_retry(
        self,
        func: Callable[[], Awaitable[T]],
        config: Optional[RateLimitConfig] = None,
    ) -> RateLimitedResult[T]:
        """
        Execute an async function, retrying rate-limit failures.

        Args:
            func: Async function to execute
            config: Rate limit configuration

        Returns:
            RateLimitedResult wrapping the successful return value

        Raises:
            Any non rate-limit error immediately, or the last RateLimitError
            once retries are exhausted
        """
        config = config or DEFAULT_RATE_LIMIT_CONFIG
        attempt = 0
        last_error: Optional[RateLimitError] = None

        while True:
            try:
                result = await func()
            except RateLimitError as e:
                if not self._should_retry(e, attempt, config):
                    raise

                last_error = e
                attempt += 1
                delay = self._calculate_delay(e, attempt, config)

                if self.observability is not None:
                    self.observability.log(LogLevel.WARN, "Rate limited, retrying", {
                        "attempt": attempt,
                        "max_retries": config.max_retries,
                        "delay_s": round(delay, 3),
                        "retry_after": e.retry_after,
                    })

                await self._sleep(delay)
                continue

            return RateLimitedResult(
                result=result,
                rate_limit=last_error.rate_limit if last_error is not None else None,
                attempts=attempt + 1,
            )

    def _should_retry(self, error: RateLimitError, attempt: int, config: RateLimitConfig) -> bool:
        """Determine if a rate-limit error should be retried."""
        if not config.enable_retry:
            return False
        if attempt >= config.max_retries:
            return False
        return error.retryable

    def _calculate_delay(self, error: RateLimitError, attempt: int, config: RateLimitConfig) -> float:
        """Calculate retry delay, respecting Retry-After if present."""
        if error.retry_after:
            return error.retry_after
        return compute_backoff_delay(attempt, config, self._rng)
