"""
Utility functions for the companycam SDK.

This module provides internal helper functions used by the HTTP transport.
These functions are not part of the public API and may change without notice.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from companycam._cancellation import CancellationSignal


def sleep(seconds: float, signal: CancellationSignal | None = None) -> None:
    """
    Sleep for the given duration, waking early if ``signal`` is cancelled.

    Args:
        seconds: Sleep duration in seconds. Negative values sleep 0s.
        signal: Optional cancellation signal bound to the sleep.

    Raises:
        CancelledError: If the signal is cancelled before or during the sleep.

    Example:
        >>> sleep(0.5)  # plain sleep
        >>> sleep(0.5, signal=token)  # raises CancelledError if token fires
    """
    from companycam._rate_limit import CancelledError

    seconds = max(0.0, seconds)

    if signal is None:
        time.sleep(seconds)
        return

    if signal.wait(seconds):
        raise CancelledError()


def is_network_error(exc: BaseException) -> bool:
    """
    Determine if an exception means no HTTP response was received.

    This is the single source of truth for classifying network-level
    failures (DNS, connection reset, timeouts) for retry eligibility.

    Args:
        exc: The exception to check.

    Returns:
        True if the failure happened before a response was received.

    Supported network exceptions:
        - requests.ConnectionError: DNS failures, refused or reset connections
        - requests.Timeout: connect or read timeout
        - requests.exceptions.ChunkedEncodingError: connection dropped mid-body

    Local request errors (MissingSchema, InvalidURL, InvalidHeader...) are
    not network errors even though no response exists.
    """
    return isinstance(
        exc,
        (requests.ConnectionError, requests.Timeout, requests.exceptions.ChunkedEncodingError),
    )


def join_url(base_url: str | None, url: str) -> str:
    """
    Resolve ``url`` against ``base_url``.

    Absolute URLs are returned unchanged; relative paths are appended to the
    base URL (base path preserved, exactly one slash between them).

    Example:
        >>> join_url("https://api.companycam.com/v2", "/projects")
        'https://api.companycam.com/v2/projects'
    """
    if not base_url or url.startswith(("http://", "https://")):
        return url
    if not url:
        return base_url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"
