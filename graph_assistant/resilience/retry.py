"""
Retry with exponential backoff.

Provides ``invoke_with_retry``, the wrapper every remote call goes through:
- bounded attempts
- exponential backoff (``delay * 2 ** (attempt - 1)``)
- retryable vs fatal error classification
- a structured log entry for every attempt
"""

import re
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from graph_assistant.config import Settings
from graph_assistant.errors import (
    AuthenticationError,
    OperationCancelledError,
    RetryExhaustedError,
)
from graph_assistant.observability import LogLevel, StructuredLogger

T = TypeVar("T")

LOG_CATEGORY = "Retry"

# Transient failures as they show up in error messages
RETRYABLE_MESSAGE_PATTERN = re.compile(
    r"time[d ]?\s?out|throttl|rate[ -]?limit|too many requests|\b(429|502|503|504)\b",
    re.IGNORECASE,
)

DEFAULT_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (TimeoutError, ConnectionError)

RetryableKinds = Iterable[type[BaseException] | str]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings for a call site."""
    max_retries: int = 3
    delay_seconds: float = 1.0
    retryable_errors: tuple[type[BaseException] | str, ...] = DEFAULT_RETRYABLE_ERRORS

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(max_retries=settings.max_retries, delay_seconds=settings.retry_delay_seconds)


def backoff_delay(attempt: int, delay_seconds: float) -> float:
    """Seconds to wait after failed attempt ``attempt`` (1-indexed)."""
    return delay_seconds * (2 ** (attempt - 1))


def _matches_kind(error: BaseException, retryable_errors: RetryableKinds) -> bool:
    for kind in retryable_errors:
        if isinstance(kind, str):
            if any(cls.__name__ == kind for cls in type(error).__mro__):
                return True
        elif isinstance(error, kind):
            return True
    return False


def is_retryable(error: BaseException, retryable_errors: RetryableKinds = ()) -> bool:
    """Whether ``error`` is transient and worth another attempt."""
    if isinstance(error, AuthenticationError):
        return error.transient
    if _matches_kind(error, retryable_errors):
        return True
    return bool(RETRYABLE_MESSAGE_PATTERN.search(str(error)))


def invoke_with_retry(
    operation: Callable[[], T],
    operation_name: str,
    *,
    logger: StructuredLogger,
    max_retries: int = 3,
    delay_seconds: float = 1.0,
    retryable_errors: RetryableKinds = DEFAULT_RETRYABLE_ERRORS,
    context: dict[str, Any] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    cancel_event: threading.Event | None = None,
) -> T:
    """
    Run ``operation`` until it succeeds, fails fatally, or attempts run out.

    Args:
        operation: Zero-argument callable doing the work
        operation_name: Name used in log entries and the exhausted error
        logger: Structured logger receiving one entry per attempt
        max_retries: Total number of attempts (at least 1)
        delay_seconds: Wait before the first retry; doubles each time
        retryable_errors: Exception classes (or class names) to retry on
        context: Extra data attached to every log entry
        sleep: Blocking sleep function
        cancel_event: Checked before each attempt and each backoff wait

    Returns:
        Whatever ``operation`` returns

    Raises:
        RetryExhaustedError: every attempt failed with a retryable error
        OperationCancelledError: ``cancel_event`` was set
        Exception: a non-retryable error, unchanged, after a single attempt
    """
    max_retries = max(1, max_retries)
    retryable_errors = tuple(retryable_errors)
    attempt = 1

    def _log(level: LogLevel, message: str, error: Exception | None = None, **fields: Any) -> None:
        data = dict(context or {})
        data.update(operation=operation_name, attempt=attempt, max_retries=max_retries, **fields)
        logger.log(level, LOG_CATEGORY, message, data, error)

    while True:
        _check_cancelled(cancel_event, operation_name, attempt)
        _log(LogLevel.VERBOSE, f"Attempt {attempt}/{max_retries} for {operation_name}")
        try:
            result = operation()
        except Exception as e:
            if not is_retryable(e, retryable_errors):
                _log(LogLevel.ERROR, f"{operation_name} failed with non-retryable {type(e).__name__}", e)
                raise

            if attempt >= max_retries:
                _log(LogLevel.ERROR, f"{operation_name} failed after {attempt} attempts", e)
                raise RetryExhaustedError(operation_name, attempt, e) from e

            delay = backoff_delay(attempt, delay_seconds)
            _log(
                LogLevel.WARNING,
                f"{operation_name} attempt {attempt} failed, retrying in {delay:g}s: {e}",
                e,
                delay_seconds=delay,
            )
            _check_cancelled(cancel_event, operation_name, attempt)
            sleep(delay)
            attempt += 1
            continue

        _log(LogLevel.VERBOSE, f"{operation_name} succeeded on attempt {attempt}")
        return result


def _check_cancelled(cancel_event: threading.Event | None, operation_name: str, attempt: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(f"{operation_name} cancelled before attempt {attempt}")


def invoke_with_policy(
    operation: Callable[[], T],
    operation_name: str,
    policy: RetryPolicy,
    logger: StructuredLogger,
    context: dict[str, Any] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Shorthand for ``invoke_with_retry`` driven by a ``RetryPolicy``."""
    return invoke_with_retry(
        operation,
        operation_name,
        logger=logger,
        max_retries=policy.max_retries,
        delay_seconds=policy.delay_seconds,
        retryable_errors=policy.retryable_errors,
        context=context,
        sleep=sleep,
    )
