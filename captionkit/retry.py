"""
Bounded retry policy shared by the RPC attach loop, media-error recovery
and the HTTP candidate probes.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration.

    Attributes:
        max_attempts: Total attempts including the first one (>= 1)
        delay: Delay in seconds before the second attempt
        backoff: Multiplier applied to the delay after each failed attempt
        retry_on: Exception types considered retryable by ``call``
    """
    max_attempts: int = 5
    delay: float = 0.2
    backoff: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay cannot be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        return self.delay * (self.backoff ** max(0, attempt - 1))

    def should_retry(self, attempt: int) -> bool:
        """Whether another attempt is allowed after ``attempt`` attempts were made."""
        return attempt < self.max_attempts

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, self.retry_on)

    def call(
        self,
        func: Callable[..., Any],
        *args: Any,
        sleep: Callable[[float], None] = time.sleep,
        **kwargs: Any,
    ) -> Any:
        """
        Call ``func`` until it succeeds or attempts run out.

        Non-retryable exceptions propagate immediately; the last retryable
        exception propagates once the policy is exhausted.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not self.is_retryable(e) or not self.should_retry(attempt):
                    raise
                wait = self.delay_for(attempt)
                logger.debug(f"Attempt {attempt}/{self.max_attempts} failed ({e}), retrying in {wait:.2f}s")
                sleep(wait)

    def wait_until(
        self,
        predicate: Callable[[], bool],
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """
        Poll ``predicate`` up to ``max_attempts`` times, sleeping ``delay_for``
        between polls. Returns the final predicate value.
        """
        for attempt in range(1, self.max_attempts + 1):
            if predicate():
                return True
            sleep(self.delay_for(attempt))
        return predicate()


NO_RETRY = RetryPolicy(max_attempts=1, delay=0.0)
