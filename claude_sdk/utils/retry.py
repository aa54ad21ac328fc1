from loguru import logger
from tenacity import RetryCallState
from tenacity.wait import wait_base

from claude_sdk.core.exceptions import AppError


def is_retryable_error(exception):
    """Check if the exception is an AppError with retryable=True"""
    return isinstance(exception, AppError) and exception.retryable


class wait_retry_after(wait_base):
    """Exponential backoff that defers to a server-provided retry-after value.

    Both the computed and the server-provided delay are capped at `max`.
    """

    def __init__(self, initial: float = 0.5, max: float = 60.0, multiplier: float = 2.0):
        self.initial = initial
        self.max = max
        self.multiplier = multiplier

    def __call__(self, retry_state: RetryCallState) -> float:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(exception, "retry_after", None)
        if retry_after is not None:
            return min(float(retry_after), self.max)

        backoff = self.initial * self.multiplier ** (retry_state.attempt_number - 1)
        return min(backoff, self.max)


def log_before_sleep(retry_state: RetryCallState) -> None:
    """Custom before_sleep callback that safely logs retry attempts."""
    attempt_number = retry_state.attempt_number
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    name = retry_state.fn.__name__ if retry_state.fn else "request"
    delay = retry_state.next_action.sleep if retry_state.next_action else 0

    if exception:
        exception_type = type(exception).__name__
        logger.warning(
            f"Retrying {name} in {delay:.2f}s after attempt {attempt_number} "
            f"due to {exception_type}: {str(exception)}"
        )

    else:
        logger.warning(f"Retrying {name} in {delay:.2f}s after attempt {attempt_number}")
