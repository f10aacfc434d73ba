"""
Retry Controller

Wraps an async operation with bounded attempts and exponential backoff.
Failures are absorbed: once every attempt is used up the caller gets the
fallback value instead of an exception. Configuration errors are never
retried and propagate immediately.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .utils import classify_error, logger

DEFAULT_ATTEMPTS = 3


def _is_retryable(error: BaseException) -> bool:
    # KeyboardInterrupt and CancelledError must stop the run, not be retried
    if not isinstance(error, Exception):
        return False
    return classify_error(error).retryable


async def retry_async(
    operation: Callable[[], Awaitable[Any]],
    attempts: Optional[int] = None,
    delay: float = 1.0,
    backoff: float = 2.0,
    default: Any = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Any:
    """
    Run ``operation`` up to ``attempts`` times.

    The wait after the k-th failed attempt is ``delay * backoff ** (k - 1)``.

    Args:
        operation: Zero-argument coroutine function
        attempts: Maximum number of calls (default: DEFAULT_ATTEMPTS)
        delay: Wait after the first failure, in seconds
        backoff: Multiplier applied to the wait after each failure
        default: Value returned when every attempt failed
        sleep: Coroutine used for waiting

    Returns:
        The operation's result, or ``default`` after exhausting all attempts
    """
    max_attempts = attempts if attempts is not None else DEFAULT_ATTEMPTS

    def log_retry(retry_state: RetryCallState):
        error = retry_state.outcome.exception()
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"Attempt {retry_state.attempt_number}/{max_attempts} failed "
            f"[{classify_error(error).value}]: {error}. Retrying in {wait:.1f}s"
        )

    def give_up(retry_state: RetryCallState) -> Any:
        error = retry_state.outcome.exception()
        logger.error(f"All {max_attempts} attempts failed: {error}")
        return default

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=delay, exp_base=backoff),
        retry=retry_if_exception(_is_retryable),
        before_sleep=log_retry,
        retry_error_callback=give_up,
        sleep=sleep,
    )
    return await retrying(operation)
