"""
Retry utilities with exponential backoff.

Inspired by Tenacity's Retrying class, this module provides a context manager
for implementing retry logic, plus the RetryPolicy that decides which failed
requests are retried and how long to wait between attempts.

Example:
    >>> from companycam._retry import Retrying, RetryPolicy
    >>> policy = RetryPolicy(allow_post_retry=False)
    >>> for attempt in Retrying(
    ...     max_retries=3,
    ...     should_retry=policy.should_retry,
    ...     compute_delay=policy.compute_delay,
    ... ):
    ...     with attempt:
    ...         response = session.get(url, timeout=30)
    ...         response.raise_for_status()
    ...         return response
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Generator
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any

from companycam._rate_limit import CancelledError
from companycam._utils import is_network_error, sleep

if TYPE_CHECKING:
    from companycam._cancellation import CancellationSignal
    from companycam._request import RequestConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Options
# =============================================================================


@dataclass(frozen=True)
class RetryOptions:
    """
    Controls automatic retry behavior applied to outgoing requests.

    Attributes:
        retries: Maximum retry attempts (default: 3). Use 0 to disable retries.
            Use 3 for 4 total attempts (1 original + 3 retries).
        allow_post_retry: Allow retries for POST requests (default: False).
            Pair with an idempotency key so the server can deduplicate.
        on_retry: Hook invoked before each retry sleep with the number of the
            failed attempt, the error and the request configuration.

    Example:
        >>> RetryOptions(retries=5, allow_post_retry=True)
    """

    retries: int = 3
    allow_post_retry: bool = False
    on_retry: Callable[[int, Exception, RequestConfig], None] | None = None


# =============================================================================
# Retry Policy
# =============================================================================


class RetryPolicy:
    """
    Decides whether a failed request is retried and how long to wait.

    Eligibility:
        - GET, PUT, PATCH and DELETE are retryable.
        - POST is retryable only when ``allow_post_retry`` is True.
        - Any other method (HEAD, OPTIONS, ...) or a missing method is
          treated as retryable.
        - Among eligible methods, retry on HTTP 408, 429, any 5xx, or a
          network-level failure (no response received).
        - Every other 4xx is terminal.

    Delay:
        - ``Retry-After`` (seconds or HTTP-date) wins when present, capped at
          MAX_DELAY.
        - Otherwise ``min(MAX_DELAY, BASE_DELAY * 2 ** (attempt - 1))`` plus
          up to 20% random jitter.

    Args:
        allow_post_retry: Whether POST requests may be retried.
        rng: Optional RNG for jitter (dependency injection in tests).
    """

    IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "PATCH", "DELETE"})
    RETRY_ON_STATUS_CODES = frozenset({408, 429})
    BASE_DELAY = 0.2
    MAX_DELAY = 8.0
    JITTER_FACTOR = 0.2

    def __init__(self, allow_post_retry: bool = False, rng: random.Random | None = None):
        self.allow_post_retry = allow_post_retry
        self._rng = rng or random.Random()

    def should_retry(self, error: Exception, method: str | None = None) -> bool:
        """
        Determine if a failed attempt should be retried.

        Args:
            error: The exception raised by the attempt.
            method: Fallback HTTP method when the error carries no request.

        Returns:
            True if the request should be retried, False otherwise.
        """
        effective_method = self._effective_method(error, method)

        if effective_method is None:
            logger.debug(
                "RetryPolicy | Request method unknown; treating it as retryable by default."
            )
        elif not self._is_method_retryable(effective_method):
            return False

        status = self._status_of(error)
        if status is not None and (status in self.RETRY_ON_STATUS_CODES or status >= 500):
            return True

        return is_network_error(error)

    def compute_delay(self, attempt_number: int, error: Exception) -> float:
        """
        Compute the wait time in seconds before the next attempt.

        Args:
            attempt_number: One-based number of the retry about to happen
                (1 for the first retry).
            error: The exception raised by the failed attempt.

        Returns:
            The delay in seconds.
        """
        retry_after = self.retry_after_delay(error)
        if retry_after is not None:
            return min(retry_after, self.MAX_DELAY)

        exponential = min(
            self.MAX_DELAY,
            self.BASE_DELAY * 2 ** max(0, attempt_number - 1),
        )
        jitter = self._rng.uniform(0.0, exponential * self.JITTER_FACTOR)
        return exponential + jitter

    def retry_after_delay(self, error: Exception) -> float | None:
        """
        Parse the ``Retry-After`` header of the failed response.

        Supports both numeric seconds and HTTP-date formats.

        Returns:
            The delay in seconds (never negative), or None if the header is
            absent or unparseable.
        """
        response = getattr(error, "response", None)
        if response is None:
            return None

        header = response.headers.get("Retry-After") if response.headers is not None else None
        if isinstance(header, (list, tuple)):
            header = header[0] if header else None
        if not header:
            return None

        try:
            seconds = float(header)
        except (TypeError, ValueError):
            pass
        else:
            if math.isfinite(seconds):
                return max(0.0, seconds)
            return None

        try:
            target_time = parsedate_to_datetime(str(header))
        except (TypeError, ValueError, IndexError):
            return None

        if target_time.tzinfo is None:
            target_time = target_time.replace(tzinfo=UTC)

        return max(0.0, (target_time - datetime.now(UTC)).total_seconds())

    def _is_method_retryable(self, method: str) -> bool:
        if method in self.IDEMPOTENT_METHODS:
            return True
        if method == "POST":
            return self.allow_post_retry
        logger.debug(f"RetryPolicy | Method {method} is not classified; treating it as retryable by default.")
        return True

    @staticmethod
    def _effective_method(error: Exception, fallback: str | None) -> str | None:
        request = getattr(error, "request", None)
        method = getattr(request, "method", None) if request is not None else None
        if not isinstance(method, str) or not method:
            method = fallback
        return method.upper() if method else None

    @staticmethod
    def _status_of(error: Exception) -> int | None:
        response = getattr(error, "response", None)
        if response is None:
            return None
        status = getattr(response, "status_code", None)
        return status if isinstance(status, int) else None


# =============================================================================
# Retry Loop
# =============================================================================


@dataclass(frozen=True)
class RetryAttempt:
    """
    Represents a single attempt within a retry loop.

    Attributes:
        attempt_number: One-based index of the current attempt (1 = first attempt).
        max_attempts: Total attempts allowed (1 original + max_retries).

    Example:
        >>> for attempt_ctx in Retrying(max_retries=3):
        ...     with attempt_ctx as attempt:
        ...         print(f"Attempt {attempt.attempt_number}/{attempt.max_attempts}")
    """

    attempt_number: int
    max_attempts: int

    @property
    def is_last_attempt(self) -> bool:
        """Return True if this is the last attempt."""
        return self.attempt_number >= self.max_attempts


class Retrying:
    """
    Context manager for retry with backoff.

    The retry decision and the wait time are supplied as hooks, so the same
    loop can be driven by any policy.

    Usage:
        >>> for attempt in Retrying(max_retries=3, should_retry=policy.should_retry):
        ...     with attempt:
        ...         response = session.get(url)
        ...         response.raise_for_status()
        ...         return response

    Args:
        max_retries: Maximum number of retry attempts (default: 3).
            Use 0 to disable retries (single attempt only).
        should_retry: Decides whether an exception triggers a retry
            (default: RetryPolicy().should_retry).
        compute_delay: Returns the seconds to wait before retry number N
            (default: RetryPolicy().compute_delay).
        on_retry: Hook invoked before each retry sleep with the failed attempt
            number and its exception.
        signal: Optional cancellation signal. Checked before every attempt and
            bound to every sleep between attempts.
        logger_prefix: Prefix for log messages (e.g., "HttpClient").

    Raises:
        CancelledError: When the signal is cancelled before an attempt starts
            or during a sleep between attempts.

    Note:
        - The loop naturally exits on success (caller returns or breaks)
        - Exceptions not matching retry conditions are re-raised immediately
        - When all retries are exhausted, the last exception is re-raised as is
        - CancelledError is never retried
    """

    def __init__(
        self,
        max_retries: int = 3,
        should_retry: Callable[[Exception], bool] | None = None,
        compute_delay: Callable[[int, Exception], float] | None = None,
        on_retry: Callable[[int, Exception], Any] | None = None,
        signal: CancellationSignal | None = None,
        logger_prefix: str = "",
    ):
        assert max_retries is not None, "max_retries cannot be None"
        assert max_retries >= 0, f"max_retries must be >= 0, got {max_retries}"

        default_policy = RetryPolicy()
        self.max_retries = max_retries
        self.max_attempts = max_retries + 1
        self.should_retry = should_retry or default_policy.should_retry
        self.compute_delay = compute_delay or default_policy.compute_delay
        self.on_retry = on_retry
        self.signal = signal
        self.logger_prefix = logger_prefix

    def __iter__(self) -> Generator[_RetryContext, None, None]:
        """Yield retry contexts for each attempt."""
        for attempt_number in range(1, self.max_attempts + 1):
            if self.signal is not None and self.signal.cancelled:
                raise CancelledError()
            yield _RetryContext(self, attempt_number)

    def _prefix(self) -> str:
        return f"{self.logger_prefix} | " if self.logger_prefix else ""

    def _handle_retry(self, attempt_number: int, exception: Exception) -> None:
        """
        Handle retry: log, notify, sleep, prepare for next attempt.

        Raises:
            CancelledError: If the signal fires during the sleep.
        """
        sleep_time = self.compute_delay(attempt_number, exception)

        logger.warning(
            f"{self._prefix()}Attempt {attempt_number}/{self.max_attempts} failed: {exception}"
        )
        logger.warning(
            f"{self._prefix()}Retrying in {sleep_time:.2f}s..."
        )
        if self.on_retry is not None:
            self.on_retry(attempt_number, exception)

        sleep(sleep_time, signal=self.signal)

    def _handle_exhausted(self, exception: Exception) -> None:
        logger.error(
            f"{self._prefix()}Max retries ({self.max_retries}) exceeded. Last error: {exception}"
        )


class _RetryContext:
    """
    Context for a single retry attempt (internal).

    This class is yielded by `Retrying.__iter__()` and implements the context
    manager protocol to handle exceptions within the retry loop.

    On success (no exception): exits normally, caller should break/return
    On retryable exception: sleeps, suppresses exception, loop continues
    On non-retryable exception: re-raises exception, loop exits
    On exhausted retries: re-raises the last exception
    """

    def __init__(self, retrying: Retrying, attempt_number: int):
        self._retrying = retrying
        self.attempt_number = attempt_number

    def __enter__(self) -> RetryAttempt:
        """Enter context and return attempt metadata."""
        return RetryAttempt(
            attempt_number=self.attempt_number,
            max_attempts=self._retrying.max_attempts,
        )

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> bool:
        """
        Handle exception (if any) and decide whether to retry.

        Returns:
            True to suppress exception and continue loop (retry)
            False to propagate exception (no retry)
        """
        if exc_val is None:
            return False

        # Only handle Exception, not BaseException (KeyboardInterrupt, etc.)
        if not isinstance(exc_val, Exception):
            return False

        if isinstance(exc_val, CancelledError):
            return False

        if not self._retrying.should_retry(exc_val):
            return False

        if self.attempt_number >= self._retrying.max_attempts:
            if self._retrying.max_retries > 0:
                self._retrying._handle_exhausted(exc_val)
            return False

        self._retrying._handle_retry(self.attempt_number, exc_val)
        return True  # Suppress exception

