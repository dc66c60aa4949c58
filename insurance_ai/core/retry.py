"""
Shared retry combinator.
Wraps tenacity so extraction, email delivery and LLM transport calls share one policy shape.
"""

import logging
from typing import Callable, Optional, TypeVar

from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
    wait_none,
)
from tenacity.wait import wait_base


logger = logging.getLogger(__name__)

T = TypeVar("T")


def linear_backoff(step_seconds: float) -> wait_base:
    """Wait step, 2*step, 3*step... between attempts."""
    return wait_incrementing(start=step_seconds, increment=step_seconds)


def _always(exc: BaseException) -> bool:
    return True


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed ({exc}); retrying in {wait:.1f}s"
    )


def with_retry(
    operation: Callable[[], T],
    *,
    attempts: int,
    backoff: Optional[wait_base] = None,
    is_retryable: Optional[Callable[[BaseException], bool]] = None,
) -> T:
    """
    Run operation up to `attempts` times.

    Args:
        operation: Zero-argument callable to run
        attempts: Total number of attempts (1 = no retry)
        backoff: tenacity wait strategy (defaults to no wait)
        is_retryable: Predicate deciding whether an exception deserves another attempt

    Returns:
        The operation's result from the first successful attempt

    Raises:
        The last exception raised by operation once attempts are exhausted,
        or immediately for exceptions that are not retryable.
    """
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=backoff or wait_none(),
        retry=retry_if_exception(is_retryable or _always),
        before_sleep=_log_retry,
        reraise=True,
    )
    return retrying(operation)
