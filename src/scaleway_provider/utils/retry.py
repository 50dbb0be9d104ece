"""Retry helpers: transport backoff and timeout-bounded operation retries."""

import time
import random
from typing import Callable, Iterable, TypeVar, Optional

from scaleway_provider.utils.context import Context
from scaleway_provider.utils.errors import (
    ErrorKind,
    ProviderError,
    TransientError,
    is_conflict,
    kind_of,
    s3_error_code,
)
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

# Defaults of the retryable HTTP transport
TRANSPORT_MAX_RETRIES = 3
TRANSPORT_MIN_WAIT = 2.0
TRANSPORT_MAX_WAIT = 120.0


def is_retryable(error: Exception) -> bool:
    """Errors retry_when() retries by default: transient and conflict."""
    return kind_of(error) in (ErrorKind.TRANSIENT, ErrorKind.CONFLICT)


class RetryStrategy:
    """Implements exponential backoff retry strategy for transport errors.

    Used by the HTTP client for nil responses, throttling (429) and server
    errors (5xx). Application-level waits go through retry_when() instead.
    """

    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(
        self,
        max_retries: int = TRANSPORT_MAX_RETRIES,
        base_delay: float = TRANSPORT_MIN_WAIT,
        max_delay: float = TRANSPORT_MAX_WAIT,
        exponential_base: float = 2.0,
        jitter: bool = True
    ):
        """Initialize retry strategy.

        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Base delay in seconds for first retry
            max_delay: Maximum delay in seconds between retries (0 disables waiting)
            exponential_base: Base for exponential backoff calculation
            jitter: Whether to add random jitter to delay
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """Determine if an error should trigger a retry.

        Args:
            error: The exception that occurred
            attempt: Current attempt number (0-indexed)

        Returns:
            True if the error is transient and max retries not exceeded
        """
        if attempt >= self.max_retries:
            return False
        return kind_of(error) == ErrorKind.TRANSIENT

    def should_retry_status(self, status_code: int, attempt: int) -> bool:
        """Determine if a response status should trigger a retry."""
        return attempt < self.max_retries and status_code in self.RETRYABLE_STATUS_CODES

    def get_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds before next retry
        """
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )

        # Random jitter of up to 10% of the delay
        if self.jitter and delay > 0:
            delay += random.uniform(0, delay * 0.1)

        return delay


def retry_when(
    operation: Callable[[], T],
    timeout: float,
    interval: float,
    should_retry: Callable[[Exception], bool] = is_retryable,
    ctx: Optional[Context] = None
) -> T:
    """Invoke an operation until it succeeds or stops being retryable.

    The operation runs at least once. Cancellation is checked between
    invocations.

    Args:
        operation: Zero-argument callable
        timeout: Overall budget in seconds
        interval: Delay between invocations in seconds
        should_retry: Predicate selecting the errors worth another attempt
        ctx: Cancellation context

    Returns:
        Result of the first successful invocation

    Raises:
        TransientError: If the budget is exhausted
        CancelledError: If the context is cancelled
        Exception: The first non-retryable error, unchanged
    """
    ctx = ctx or Context.background()
    deadline = time.monotonic() + timeout
    if ctx.deadline is not None:
        deadline = min(deadline, ctx.deadline)

    attempt = 0
    while True:
        ctx.check()
        try:
            return operation()
        except ProviderError as e:
            if e.kind == ErrorKind.FATAL or not should_retry(e):
                raise
            last_error: Exception = e
        except Exception as e:
            if not should_retry(e):
                raise
            last_error = e

        attempt += 1
        if time.monotonic() + interval > deadline:
            raise TransientError(
                f"timeout after {timeout}s and {attempt} attempts: {last_error}",
                cause=last_error,
            )
        logger.debug(f"Attempt {attempt} failed ({last_error}), retrying in {interval}s")
        ctx.sleep(interval)


def retry(
    operation: Callable[[], T],
    timeout: float,
    interval: float,
    ctx: Optional[Context] = None
) -> T:
    """Retry an operation on transient and conflict errors until the timeout."""
    return retry_when(operation, timeout, interval, is_retryable, ctx)


def retry_on_transient_state(action: Callable[[], T], waiter: Callable[[], object]) -> T:
    """Run an action; on a conflict, wait for a stable state and run it again.

    The waiter carries its own timeout, so the loop ends when either the action
    stops conflicting or the waiter gives up.

    Args:
        action: The mutation to perform
        waiter: Blocks until the resource leaves its transient state

    Returns:
        Result of the action
    """
    while True:
        try:
            return action()
        except Exception as e:
            if not is_conflict(e):
                raise
            logger.debug(f"Resource in transient state ({e}), waiting before retrying")
        waiter()


def retry_when_s3_code_equals(
    operation: Callable[[], T],
    codes: Iterable[str],
    timeout: float,
    interval: float,
    ctx: Optional[Context] = None
) -> T:
    """Retry an S3 call while it fails with one of the given error codes."""
    codes = set(codes)
    return retry_when(operation, timeout, interval, lambda e: s3_error_code(e) in codes, ctx)
