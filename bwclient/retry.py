"""
Bounded retry for backend calls.

Only TransportError (network failures, malformed envelopes) is retried.
Semantic failures surface on the first attempt. Once the attempt cap is
reached the last error is re-raised unchanged.

Retrying itself runs on tenacity's AsyncRetrying, so backoff sleeps are
asyncio sleeps and a cancelled task stops retrying immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import AsyncRetrying, RetryCallState, before_sleep_log, stop_after_attempt

from bwclient.errors import TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 0.5
DEFAULT_MAX_DELAY = 5.0


@dataclass(frozen=True)
class RetryPolicy:
    """Which errors to retry, how often, and how long to wait between tries."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Whether another attempt may follow attempt number ``attempt`` (1-based)."""
        if attempt >= self.max_attempts:
            return False
        return isinstance(error, TransportError)

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after attempt number ``attempt``. Doubles each time, capped."""
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=self._retry_predicate,
            stop=stop_after_attempt(max(self.max_attempts, 1)),
            wait=lambda state: self.backoff(state.attempt_number),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _retry_predicate(self, state: RetryCallState) -> bool:
        if state.outcome is None or not state.outcome.failed:
            return False
        error = state.outcome.exception()
        return error is not None and self.should_retry(error, state.attempt_number)


NO_RETRY = RetryPolicy(max_attempts=1)


async def run_with_retry(policy: RetryPolicy, fn: Callable[[], Awaitable[T]]) -> T:
    """Await ``fn()`` until it succeeds or ``policy`` gives up."""
    return await policy.retrying()(fn)
