"""
Client-side rate limiting for the companycam SDK.

This module provides an in-process token bucket that admits at most
``tokens_per_interval`` operations per ``interval`` seconds. Excess demand
is queued in arrival order (FIFO) and released by a background refill
thread, one token per ``interval / tokens_per_interval`` seconds.

Backpressure is expressed as queuing delay, never as rejection: a caller
either eventually gets a token or is released with an explicit
CancelledError / DisposedError.

Example:
    >>> from companycam import RateLimiter
    >>> limiter = RateLimiter(tokens_per_interval=10, interval=1.0)
    >>> limiter.acquire()  # returns immediately while tokens remain
    >>> limiter.dispose()

One limiter may be shared by many HttpClient instances and threads:
    >>> shared = RateLimiter(tokens_per_interval=100, interval=60.0)
    >>> client_a = HttpClient(rate_limiter=shared)
    >>> client_b = HttpClient(rate_limiter=shared)
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from companycam._cancellation import CancellationSignal

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class RateLimiterError(Exception):
    """
    Base exception for rate limiter control-flow failures.

    These are caller-visible signals, distinct from API errors: they are
    never retried and never normalized into APIError.
    """

    pass


class CancelledError(RateLimiterError):
    """
    Raised when a cancellation signal fires before or while waiting.

    Also raised by HttpClient when cancellation is observed during a retry
    sleep or at an attempt boundary.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> try:
        ...     limiter.acquire(token)
        ... except CancelledError as e:
        ...     print(e)
        Operation cancelled
    """

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class DisposedError(RateLimiterError):
    """Raised for waiters flushed by ``dispose()`` and for any later ``acquire()``."""

    def __init__(self, message: str = "Rate limiter disposed"):
        super().__init__(message)


# =============================================================================
# Pending Acquisition
# =============================================================================


class _PendingAcquisition:
    """
    One thread blocked in ``acquire()`` waiting for a token (internal).

    Owned by the limiter's queue until granted, cancelled or flushed. The
    outcome is written under the limiter lock exactly once.
    """

    __slots__ = ("signal", "_done", "error")

    def __init__(self, signal: CancellationSignal | None):
        self.signal = signal
        self._done = threading.Event()
        self.error: RateLimiterError | None = None

    def grant(self) -> None:
        self._done.set()

    def reject(self, error: RateLimiterError) -> None:
        self.error = error
        self._done.set()

    def wait(self) -> None:
        self._done.wait()


# =============================================================================
# Token Bucket
# =============================================================================


class RateLimiter:
    """
    Token-bucket rate limiter with FIFO queuing and cancellation support.

    The bucket starts full. A daemon thread adds one token every
    ``refill_interval`` seconds (capped at capacity) and hands tokens to
    queued waiters in arrival order. Waiters whose signal already fired are
    skipped without spending a token.

    This class is thread-safe. Token count and queue are instance-scoped, so
    several independently configured limiters can coexist.

    Example:
        >>> with RateLimiter(tokens_per_interval=1, interval=0.2) as limiter:
        ...     limiter.acquire()  # immediate
        ...     limiter.acquire()  # blocks ~0.2s until the next refill tick

    Args:
        tokens_per_interval: Bucket capacity and number of tokens refilled
            per interval (default: 100). Values below 1 are clamped to 1.
        interval: Interval length in seconds (default: 60.0).
    """

    DEFAULT_TOKENS_PER_INTERVAL = 100
    DEFAULT_INTERVAL = 60.0

    def __init__(
        self,
        tokens_per_interval: int = DEFAULT_TOKENS_PER_INTERVAL,
        interval: float = DEFAULT_INTERVAL,
    ):
        assert tokens_per_interval is not None, "tokens_per_interval cannot be None."
        assert interval is not None, "interval cannot be None."
        assert interval > 0, "interval must be greater than 0."

        self._capacity = max(1, int(tokens_per_interval))
        self._interval = float(interval)
        self._refill_interval = self._interval / self._capacity

        self._tokens = self._capacity
        self._queue: deque[_PendingAcquisition] = deque()
        self._lock = threading.Lock()
        self._disposed = False

        self._stopped = threading.Event()
        self._refill_thread = threading.Thread(
            target=self._run_refill_loop,
            name=f"companycam-rate-limiter-{id(self):x}",
            daemon=True,
        )
        self._refill_thread.start()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def tokens_per_interval(self) -> int:
        return self._capacity

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def refill_interval(self) -> float:
        """Seconds between two refill ticks."""
        return self._refill_interval

    @property
    def available_tokens(self) -> int:
        with self._lock:
            return self._tokens

    @property
    def queue_length(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def disposed(self) -> bool:
        return self._disposed

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def acquire(self, signal: CancellationSignal | None = None) -> None:
        """
        Acquire a single token, blocking until one is allocated.

        Args:
            signal: Optional cancellation signal. If it is already cancelled
                the call fails immediately without consuming a token; if it
                fires while queued, this waiter is removed from the queue.

        Raises:
            CancelledError: If the signal is (or becomes) cancelled first.
            DisposedError: If the limiter is (or becomes) disposed first.
        """
        with self._lock:
            if self._disposed:
                raise DisposedError()
            if signal is not None and signal.cancelled:
                raise CancelledError()
            if self._tokens > 0:
                self._tokens -= 1
                return

            pending = _PendingAcquisition(signal)
            self._queue.append(pending)
            logger.debug(f"RateLimiter | No tokens available, queued waiter (queue length: {len(self._queue)}).")

        unregister = None
        if signal is not None:
            unregister = signal.add_callback(lambda: self._cancel(pending))

        try:
            pending.wait()
        finally:
            if unregister is not None:
                unregister()

        if pending.error is not None:
            raise pending.error

    def dispose(self) -> None:
        """
        Stop the refill thread and reject every queued waiter with DisposedError.

        Idempotent. Tokens already granted are unaffected; every later
        ``acquire()`` raises DisposedError.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            self._stopped.set()

            flushed = 0
            while self._queue:
                self._queue.popleft().reject(DisposedError())
                flushed += 1

        logger.debug(f"RateLimiter | Disposed ({flushed} queued waiter(s) rejected).")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run_refill_loop(self) -> None:
        while not self._stopped.wait(self._refill_interval):
            self._refill()

    def _refill(self) -> None:
        """
        Add one token and hand tokens to queued waiters in FIFO order.

        Called once per refill tick.
        """
        with self._lock:
            if self._disposed:
                return

            if self._tokens < self._capacity:
                self._tokens += 1

            while self._tokens > 0 and self._queue:
                pending = self._queue.popleft()
                if pending.signal is not None and pending.signal.cancelled:
                    pending.reject(CancelledError())
                    continue

                self._tokens -= 1
                pending.grant()

            self._tokens = min(self._tokens, self._capacity)

    def _cancel(self, pending: _PendingAcquisition) -> None:
        with self._lock:
            try:
                self._queue.remove(pending)
            except ValueError:
                # Already granted, rejected or flushed
                return
            pending.reject(CancelledError())

        logger.debug("RateLimiter | Queued waiter cancelled.")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return (
            f"RateLimiter(tokens_per_interval={self._capacity}, "
            f"interval={self._interval}, disposed={self._disposed})"
        )
