"""Bounded-concurrency, retrying executor for remote calls.

A ``CallGovernor`` caps the number of operations in flight and retries a
failing operation with exponential backoff. It does not inspect the
failure: transport errors and non-success status errors are retried
alike, and once the budget is spent the last attempt's exception is
re-raised unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from repo_intake.config import GovernorSettings

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]

_DEFAULT_MAX_CONCURRENCY = 2
_DEFAULT_MAX_RETRIES = 2
_DEFAULT_BACKOFF_INITIAL_SECONDS = 1.0
_DEFAULT_BACKOFF_MAX_SECONDS = 10.0


class CallGovernor:
    """Run zero-argument coroutine factories under a concurrency cap and retry budget.

    The concurrency slot is held for the whole retry sequence of one
    submission, backoff sleeps included, so at most ``max_concurrency``
    submissions are ever active against the upstream service.

    Attributes:
        max_concurrency: Maximum number of submissions running at once.
        max_retries: Additional attempts after the first failure.
        backoff_initial_seconds: Delay before the first retry; doubles after.
        backoff_max_seconds: Upper bound for a single backoff delay.
    """

    def __init__(
        self,
        max_concurrency: int = _DEFAULT_MAX_CONCURRENCY,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        backoff_initial_seconds: float = _DEFAULT_BACKOFF_INITIAL_SECONDS,
        backoff_max_seconds: float = _DEFAULT_BACKOFF_MAX_SECONDS,
    ) -> None:
        if max_concurrency < 1:
            msg = f"max_concurrency must be >= 1, got {max_concurrency}"
            raise ValueError(msg)
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries}"
            raise ValueError(msg)

        self.max_concurrency = max_concurrency
        self.max_retries = max_retries
        self.backoff_initial_seconds = backoff_initial_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @classmethod
    def from_settings(cls, settings: GovernorSettings) -> CallGovernor:
        """Build a governor from config settings."""
        return cls(
            max_concurrency=settings.max_concurrency,
            max_retries=settings.max_retries,
            backoff_initial_seconds=settings.backoff_initial_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
        )

    async def execute(self, operation: Operation[T]) -> T:
        """Run ``operation`` once a slot is free, retrying on any exception.

        Args:
            operation: Zero-argument callable returning a fresh awaitable
                on every invocation.

        Returns:
            The operation's result from the first successful attempt.

        Raises:
            Exception: The exception raised by the final attempt.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(Exception),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.backoff_initial_seconds,
                max=self.backoff_max_seconds,
            ),
            before_sleep=_log_retry,
            reraise=True,
        )
        async with self._semaphore:
            return await retrying(operation)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "remote_call_retry",
        attempt=retry_state.attempt_number,
        wait_seconds=round(wait, 3),
        error=str(exc),
        error_type=type(exc).__name__,
    )
