"""
Retry/backoff policy shared by every call into the remote provider.

Three attempts in total; the delay before retry n is base ** n seconds
(2s, then 4s by default). Only transport and malformed-payload failures are
retried. Exhaustion comes back as a tagged `RetryOutcome` instead of an
exception, so each call site decides how to recover.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from interview_coach.core.config import settings
from interview_coach.core.exceptions import RETRYABLE_ERRORS

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryNotifier = Callable[[str, float], None]

DEFAULT_RETRY_MESSAGE = "There was a temporary issue. Retrying in {delay:g} seconds..."


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    """Result of a guarded operation: either a value or the last error."""
    succeeded: bool
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def exhausted(self) -> bool:
        return not self.succeeded


def backoff_delay(attempt_number: int, base: float = None) -> float:
    """Delay before retry `attempt_number` (1-based): base ** n, no jitter."""
    base = settings.RETRY_BACKOFF_BASE if base is None else base
    return float(base ** attempt_number)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    label: str = "provider call",
    on_retry: Optional[RetryNotifier] = None,
    message: str = DEFAULT_RETRY_MESSAGE,
    max_retries: int = None,
    backoff_base: float = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> RetryOutcome[T]:
    """
    Run `operation` under the retry policy.

    Every attempt calls `operation()` afresh, so nothing from a failed attempt
    leaks into the next one. Non-retryable errors propagate immediately.

    Args:
        operation: Zero-argument coroutine factory.
        label: Name used in log lines.
        on_retry: Called with (status message, delay) before each backoff sleep.
        message: Status template; `{delay}` is replaced with the seconds to wait.
        max_retries: Retries after the first attempt (default from settings).
        backoff_base: Base of the exponential delay (default from settings).
        sleep: Awaitable sleep, replaceable in tests.
    """
    max_retries = settings.RETRY_MAX_RETRIES if max_retries is None else max_retries
    total_attempts = max_retries + 1

    def _wait(retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number, backoff_base)

    def _before_sleep(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        error = retry_state.outcome.exception()
        logger.warning(
            f"[{label}] Attempt {retry_state.attempt_number}/{total_attempts} failed: {error}. "
            f"Retrying in {delay:.1f}s"
        )
        if on_retry is not None:
            on_retry(message.format(delay=delay), delay)

    retryer = AsyncRetrying(
        stop=stop_after_attempt(total_attempts),
        wait=_wait,
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )

    attempts = 0
    try:
        async for attempt in retryer:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                value = await operation()
        if attempts > 1:
            logger.info(f"[{label}] Succeeded after {attempts - 1} retry attempt(s)")
        return RetryOutcome(succeeded=True, attempts=attempts, value=value)
    except RETRYABLE_ERRORS as e:
        logger.error(f"[{label}] Failed after {attempts} attempts. Last error: {e}")
        return RetryOutcome(succeeded=False, attempts=attempts, error=e)
