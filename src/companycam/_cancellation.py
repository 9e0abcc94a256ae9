"""
Cooperative cancellation for the companycam SDK.

Cancellation is modelled as a small capability interface rather than a
concrete platform type, so any object that can report its state, register a
one-shot callback and block until cancelled can be passed wherever the SDK
accepts a ``signal``.

Example:
    >>> from companycam import CancellationToken, HttpClient
    >>> token = CancellationToken()
    >>> # From another thread:
    >>> token.cancel()
    >>> # Any rate-limiter wait, retry sleep or pending attempt bound to
    >>> # ``token`` now raises CancelledError.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class CancellationSignal(Protocol):
    """
    Capability interface for cooperative cancellation.

    Implementations must be thread-safe: ``add_callback`` may be called from
    any thread and callbacks may run on the thread that cancels.
    """

    @property
    def cancelled(self) -> bool:
        """Return True once cancellation has been requested."""
        ...

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a one-shot callback fired on cancellation.

        If the signal is already cancelled, the callback runs immediately.

        Returns:
            A function that unregisters the callback.
        """
        ...

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to ``timeout`` seconds; return True if cancelled."""
        ...


class CancellationToken:
    """
    Default thread-safe CancellationSignal implementation.

    Example:
        >>> token = CancellationToken()
        >>> token.cancelled
        False
        >>> token.cancel()
        >>> token.cancelled
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """
        Request cancellation. Idempotent.

        Registered callbacks run once, in the calling thread, outside the
        token's internal lock.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove_callback(callback)

        callback()
        return lambda: None

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def _remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
