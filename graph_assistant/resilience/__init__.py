"""Resilient call helpers."""

from .retry import (
    DEFAULT_RETRYABLE_ERRORS,
    RetryPolicy,
    backoff_delay,
    invoke_with_policy,
    invoke_with_retry,
    is_retryable,
)

__all__ = [
    "DEFAULT_RETRYABLE_ERRORS",
    "RetryPolicy",
    "backoff_delay",
    "invoke_with_policy",
    "invoke_with_retry",
    "is_retryable",
]
