"""
Bounded retry with exponential backoff for downstream calls.

Database writes and the scheduler webhook share one policy: three attempts,
exponential backoff, retrying only on the transient exception types the
caller names. Each retry is logged and counted in the retries_total metric.
"""

from typing import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from appointment_etl.observability.logger import get_logger
from appointment_etl.observability.metrics import increment_counter, retries_total

logger = get_logger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_WAIT = wait_exponential(multiplier=0.5, min=0.5, max=8)


def _before_sleep(operation: str) -> Callable[[RetryCallState], None]:
    def log_retry(retry_state: RetryCallState) -> None:
        increment_counter(retries_total, 1, operation=operation)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"Retrying {operation}",
            extra={
                "operation": operation,
                "attempt": retry_state.attempt_number,
                "error_type": type(error).__name__ if error else None,
                "error_message": str(error) if error else None,
            }
        )
    return log_retry


def build_retrying(
    operation: str,
    retry_on: tuple[type[BaseException], ...],
    attempts: int = DEFAULT_ATTEMPTS,
    wait: wait_base | None = None,
) -> Retrying:
    """
    Build a tenacity Retrying for one downstream operation.

    Args:
        operation: Name used in logs and the retries_total label
        retry_on: Exception types considered transient
        attempts: Total attempts including the first
        wait: Backoff strategy (tests pass wait_none())

    Returns:
        Retrying instance; call it as retrying(fn, *args, **kwargs).
        The last exception is re-raised once attempts are exhausted.
    """
    return Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait if wait is not None else DEFAULT_WAIT,
        retry=retry_if_exception_type(retry_on),
        before_sleep=_before_sleep(operation),
        reraise=True,
    )
