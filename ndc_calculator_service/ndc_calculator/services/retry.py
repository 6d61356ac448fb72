"""
Retry policy for calls into external services.

Retries network failures, timeouts, 5xx and 429. Everything else (other 4xx,
payload validation failures, programming errors) is raised on the first
attempt. The delay before attempt n+1 is min(max_delay, initial_delay *
multiplier**n), and an exhausted policy re-raises the last error unchanged.
"""
import logging
import time
from typing import Any, Callable, Optional, TypeVar

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ndc_calculator.core.settings import (
    RETRY_BACKOFF_MULTIPLIER,
    RETRY_INITIAL_DELAY_S,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY_S,
)
from ndc_calculator.services.errors import PayloadValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _status_code(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    # requests.HTTPError and huggingface_hub HTTP errors carry the response
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def should_retry(exc: BaseException) -> bool:
    if isinstance(exc, (PayloadValidationError, ValueError)):
        return False
    if isinstance(exc, (requests.Timeout, requests.ConnectionError, TimeoutError, ConnectionError)):
        return True

    status = _status_code(exc)
    if status is None:
        return False
    return status >= 500 or status == 429


def compute_delay(attempt: int, initial_delay: float, max_delay: float, backoff_multiplier: float) -> float:
    """Delay after the failed attempt `attempt` (0-indexed)."""
    return min(max_delay, initial_delay * (backoff_multiplier ** attempt))


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.info(
        "Retry attempt %d failed (%s); retrying in %.2fs",
        retry_state.attempt_number,
        type(exc).__name__ if exc else "unknown",
        delay,
    )


def with_retry(
    operation: Callable[[], T],
    *,
    max_attempts: int = RETRY_MAX_ATTEMPTS,
    initial_delay: float = RETRY_INITIAL_DELAY_S,
    max_delay: float = RETRY_MAX_DELAY_S,
    backoff_multiplier: float = RETRY_BACKOFF_MULTIPLIER,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=backoff_multiplier, max=max_delay),
        retry=retry_if_exception(should_retry),
        before_sleep=_log_before_sleep,
        sleep=sleep,
        reraise=True,
    )
    try:
        return retrying(operation)
    except Exception as exc:
        if should_retry(exc):
            logger.warning("Max retry attempts reached (%d): %s", max_attempts, type(exc).__name__)
        else:
            logger.debug("Error is not retryable: %s", type(exc).__name__)
        raise
