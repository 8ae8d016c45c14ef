"""Bounded retry for idempotent upstream calls.

Operations never raise for HTTP failures; they return a classified
``UpstreamResponse``. Only ``RATE_LIMITED`` and ``TRANSIENT`` outcomes are
retried, using a fixed, non-decreasing backoff schedule. A ``PERMANENT``
outcome or an exhausted budget returns the last outcome unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt

from linkedin_import.logging_utils import structured_log
from linkedin_import.services.linkedin.types import FailureKind, UpstreamResponse
from linkedin_import.settings import parse_backoff_schedule, settings

logger = logging.getLogger(__name__)

RETRYABLE_FAILURES = frozenset({FailureKind.RATE_LIMITED, FailureKind.TRANSIENT})

Operation = Callable[[], Awaitable[UpstreamResponse]]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_schedule: tuple[float, ...] = (2.0, 4.0)

    @classmethod
    def from_settings(cls) -> RetryPolicy:
        return cls(
            max_attempts=max(int(settings.linkedin_retry_max_attempts), 1),
            backoff_schedule=parse_backoff_schedule(settings.linkedin_retry_backoff_seconds),
        )


def default_is_retryable(failure: FailureKind) -> bool:
    return failure in RETRYABLE_FAILURES


def backoff_delay(schedule: Sequence[float], attempt_index: int) -> float:
    if not schedule:
        return 0.0
    return float(schedule[min(attempt_index, len(schedule) - 1)])


async def invoke(
    operation: Operation,
    *,
    max_attempts: int,
    is_retryable: Callable[[FailureKind], bool] = default_is_retryable,
    backoff_schedule: Sequence[float] = (),
    sleep: SleepFn = asyncio.sleep,
    label: str = "upstream",
) -> UpstreamResponse:
    attempts_allowed = max(int(max_attempts), 1)
    attempt_number = 0

    async def _attempt() -> UpstreamResponse:
        nonlocal attempt_number
        attempt_number += 1
        response = await operation()
        structured_log(
            logger,
            "debug" if response.ok else "warning",
            "linkedin.retry_attempt",
            label=label,
            attempt_number=attempt_number,
            max_attempts=attempts_allowed,
            status_code=response.status_code,
            classification=str(response.failure) if response.failure else "success",
        )
        return response

    def _should_retry(response: UpstreamResponse) -> bool:
        # Permanent failures are never retried, whatever the predicate says.
        return response.failure in RETRYABLE_FAILURES and is_retryable(response.failure)

    def _wait(retry_state: RetryCallState) -> float:
        return backoff_delay(backoff_schedule, retry_state.attempt_number - 1)

    def _before_sleep(retry_state: RetryCallState) -> None:
        structured_log(
            logger,
            "info",
            "linkedin.retry_scheduled",
            label=label,
            attempt_number=retry_state.attempt_number,
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )

    def _give_up(retry_state: RetryCallState) -> UpstreamResponse:
        response = retry_state.outcome.result()
        structured_log(
            logger,
            "warning",
            "linkedin.retry_exhausted",
            label=label,
            attempt_number=retry_state.attempt_number,
            status_code=response.status_code,
            classification=str(response.failure),
        )
        return response

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts_allowed),
        wait=_wait,
        retry=retry_if_result(_should_retry),
        before_sleep=_before_sleep,
        retry_error_callback=_give_up,
        sleep=sleep,
    )
    return await retrying(_attempt)
