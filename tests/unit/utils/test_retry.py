"""Unit tests for retry helpers."""

import pytest
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt

from claude_sdk.core.exceptions import (
    ClaudeRateLimitedError,
    ClaudeServerError,
    InvalidRequestError,
)
from claude_sdk.utils.retry import is_retryable_error, log_before_sleep, wait_retry_after


def call_state(exception: BaseException, attempt_number: int) -> RetryCallState:
    state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
    state.attempt_number = attempt_number
    state.set_exception((type(exception), exception, None))
    return state


def test_is_retryable_error() -> None:
    assert is_retryable_error(ClaudeServerError(url="u", status_code=529, error_message="x"))
    assert not is_retryable_error(InvalidRequestError(url="u", error_message="x"))
    assert not is_retryable_error(ValueError("x"))


class TestWaitRetryAfter:
    def test_exponential_backoff(self) -> None:
        wait = wait_retry_after(initial=0.5, max=3.0, multiplier=2.0)
        error = ClaudeServerError(url="u", status_code=529, error_message="x")

        delays = [wait(call_state(error, attempt)) for attempt in range(1, 6)]

        assert delays == [0.5, 1.0, 2.0, 3.0, 3.0]

    def test_retry_after_preferred(self) -> None:
        wait = wait_retry_after(initial=0.5, max=30.0)

        assert wait(call_state(ClaudeRateLimitedError(url="u", error_message="x", retry_after=7), 1)) == 7.0
        assert wait(call_state(ClaudeRateLimitedError(url="u", error_message="x", retry_after=120), 1)) == 30.0

    def test_rate_limit_without_header_backs_off(self) -> None:
        wait = wait_retry_after(initial=1.0, max=30.0)

        assert wait(call_state(ClaudeRateLimitedError(url="u", error_message="x"), 3)) == 4.0


def test_retry_loop_logs_and_sleeps(caplog_loguru) -> None:
    sleeps = []
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ClaudeServerError(url="u", status_code=529, error_message="Overloaded")
        return "ok"

    retrying = Retrying(
        stop=stop_after_attempt(3),
        wait=wait_retry_after(initial=0.25, max=10.0),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=log_before_sleep,
        sleep=sleeps.append,
        reraise=True,
    )

    assert retrying(flaky) == "ok"
    assert sleeps == [0.25, 0.5]
    assert "Retrying flaky in 0.25s after attempt 1 due to ClaudeServerError" in caplog_loguru.text


def test_retry_loop_reraises_non_retryable() -> None:
    retrying = Retrying(
        stop=stop_after_attempt(3),
        retry=retry_if_exception(is_retryable_error),
        sleep=lambda _: None,
        reraise=True,
    )

    def bad_request():
        raise InvalidRequestError(url="u", error_message="bad")

    with pytest.raises(InvalidRequestError):
        retrying(bad_request)
    assert retrying.statistics["attempt_number"] == 1
