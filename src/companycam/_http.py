"""
HTTP transport for the companycam SDK.

Every API call made by the SDK goes through a single HttpClient, which
combines four concerns around a ``requests.Session``:

    - client-side rate limiting (token bucket, acquired once per request)
    - request configuration (default headers, bearer token, idempotency key)
    - retries with exponential backoff (Retry-After aware)
    - error normalization (every terminal failure becomes an APIError)

Example:
    >>> from companycam import HttpClient
    >>> with HttpClient(auth_token="my-token") as client:
    ...     response = client.request("GET", "/company")
    ...     print(response.json())

Example (custom rate limiting and retries):
    >>> from companycam import HttpClient, RateLimiter, RetryOptions
    >>> limiter = RateLimiter(tokens_per_interval=10, interval=1.0)
    >>> client = HttpClient(
    ...     auth_token="my-token",
    ...     rate_limiter=limiter,  # borrowed, never disposed by the client
    ...     retry=RetryOptions(retries=5, allow_post_retry=True),
    ... )
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

import requests

from companycam._config import COMPANYCAM
from companycam._errors import APIError
from companycam._rate_limit import CancelledError, RateLimiter
from companycam._request import RequestConfig, build_request_config
from companycam._retry import Retrying, RetryOptions, RetryPolicy
from companycam._utils import join_url

if TYPE_CHECKING:
    from companycam._cancellation import CancellationSignal

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {"Accept": "application/json"}

# Marks the ``rate_limiter`` argument as omitted (None means "disabled").
_OMITTED: Any = object()


class HttpClient:
    """
    Rate-limited, retrying HTTP transport for the CompanyCam API.

    Arguments left as None fall back to ``COMPANYCAM.config`` (see
    ``companycam._config``).

    Args:
        base_url: Base URL relative request paths are joined to.
        timeout: Per-attempt request timeout in seconds.
        auth_token: Default bearer token sent as ``Authorization: Bearer <token>``.
        default_headers: Headers sent with every request (merged over
            ``Accept: application/json``).
        retry: Retry behavior. Defaults to the ``retry`` config section.
        rate_limiter: Omit to let the client create (and own) a RateLimiter
            from the ``rate_limit`` config section. Pass an instance to share
            one (borrowed, never disposed here). Pass None to disable client-side
            rate limiting.
        session: ``requests.Session`` used to dispatch. Created (and owned)
            when omitted.
        request_options: Extra keyword arguments forwarded to every
            ``Session.request`` call (``verify``, ``proxies``, ``cert``...).

    Raises:
        AssertionError: If timeout or retries are invalid.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        auth_token: str | None = None,
        default_headers: Mapping[str, str] | None = None,
        retry: RetryOptions | None = None,
        rate_limiter: RateLimiter | None = _OMITTED,
        session: requests.Session | None = None,
        request_options: Mapping[str, Any] | None = None,
    ):
        cfg = COMPANYCAM.config

        self.base_url = base_url if base_url is not None else cfg.http.base_url
        self.timeout = timeout if timeout is not None else cfg.http.timeout
        self.auth_token = auth_token if auth_token is not None else cfg.http.auth_token
        self.default_headers: dict[str, str] = {**DEFAULT_HEADERS, **(default_headers or {})}
        self.retry_options = retry or RetryOptions(
            retries=cfg.retry.retries,
            allow_post_retry=cfg.retry.allow_post_retry,
        )
        self.request_options: dict[str, Any] = dict(request_options or {})

        assert self.timeout is not None, "Timeout cannot be None."
        assert self.timeout > 0, "Timeout must be greater than 0."
        assert self.retry_options.retries >= 0, "Retries must be >= 0."

        self._retry_policy = RetryPolicy(allow_post_retry=self.retry_options.allow_post_retry)

        if rate_limiter is _OMITTED:
            self._rate_limiter: RateLimiter | None = (
                RateLimiter(
                    tokens_per_interval=cfg.rate_limit.tokens_per_interval,
                    interval=cfg.rate_limit.interval,
                )
                if cfg.rate_limit.enabled
                else None
            )
            self._owns_rate_limiter = self._rate_limiter is not None
        else:
            self._rate_limiter = rate_limiter
            self._owns_rate_limiter = False

        self._session = session if session is not None else requests.Session()
        self._owns_session = session is None

        self._disposed = False
        self._dispose_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def rate_limiter(self) -> RateLimiter | None:
        """The rate limiter in use, or None when rate limiting is disabled."""
        return self._rate_limiter

    @property
    def session(self) -> requests.Session:
        """The ``requests.Session`` used to dispatch requests."""
        return self._session

    @property
    def disposed(self) -> bool:
        return self._disposed

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        data: Any = None,
        auth_token: str | None = None,
        idempotency_key: str | None = None,
        use_rate_limiter: bool = True,
        signal: CancellationSignal | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        """
        Execute a request with rate limiting, retries and error normalization.

        Args:
            method: HTTP method (any case).
            url: Path relative to ``base_url``, or an absolute URL.
            headers: Per-call headers (None values dropped, lists joined with ", ").
            params: Query parameters (None values dropped).
            json: JSON-serializable body.
            data: Raw or form-encoded body.
            auth_token: Bearer token for this call only (overrides the default).
            idempotency_key: Sent as ``Idempotency-Key``.
            use_rate_limiter: Set False to skip the rate limiter for this call.
            signal: Cancellation signal bound to the limiter wait, the retry
                sleeps and attempt boundaries.
            timeout: Per-attempt timeout in seconds for this call.

        Returns:
            The successful (2xx/3xx) response.

        Raises:
            APIError: When the request definitely failed (after retries, if any).
            CancelledError: When ``signal`` was cancelled.
            DisposedError: When the rate limiter was disposed.
        """
        assert method, "Method cannot be empty."
        assert url is not None, "URL cannot be None."

        if use_rate_limiter and self._rate_limiter is not None:
            self._rate_limiter.acquire(signal)

        config = build_request_config(
            method,
            url,
            default_headers=self.default_headers,
            headers=headers,
            default_auth_token=self.auth_token,
            auth_token=auth_token,
            idempotency_key=idempotency_key,
            params=params,
            json=json,
            data=data,
            timeout=timeout if timeout is not None else self.timeout,
            extra=self.request_options,
        )

        try:
            return self._send_with_retries(config, signal)
        except requests.RequestException as e:
            raise APIError.from_exception(e, config) from e

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("DELETE", url, **kwargs)

    # -------------------------------------------------------------------------
    # Retry policy
    # -------------------------------------------------------------------------

    def should_retry(self, error: Exception, method: str | None = None) -> bool:
        """Return True if ``error`` is worth another attempt (see RetryPolicy)."""
        return self._retry_policy.should_retry(error, method=method)

    def compute_retry_delay(self, attempt_number: int, error: Exception) -> float:
        """Return the seconds to wait before retry number ``attempt_number``."""
        return self._retry_policy.compute_delay(attempt_number, error)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def dispose(self) -> None:
        """
        Release owned resources (idempotent).

        Disposes the rate limiter and closes the session only when this client
        created them. Borrowed instances are left untouched.
        """
        with self._dispose_lock:
            if self._disposed:
                return
            self._disposed = True

        if self._owns_rate_limiter and self._rate_limiter is not None:
            self._rate_limiter.dispose()
        if self._owns_session:
            self._session.close()
        logger.debug("HttpClient | Disposed.")

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return (
            f"HttpClient(base_url={self.base_url!r}, timeout={self.timeout}, "
            f"retries={self.retry_options.retries}, rate_limiter={self._rate_limiter!r})"
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _send_with_retries(
        self,
        config: RequestConfig,
        signal: CancellationSignal | None,
    ) -> requests.Response:
        for attempt in Retrying(
            max_retries=self.retry_options.retries,
            should_retry=lambda error: self.should_retry(error, method=config.method),
            compute_delay=self.compute_retry_delay,
            on_retry=self._retry_hook(config),
            signal=signal,
            logger_prefix="HttpClient",
        ):
            with attempt as current:
                logger.debug(
                    f"HttpClient | {config.method} {config.url} "
                    f"(attempt {current.attempt_number}/{current.max_attempts})"
                )
                response = self._dispatch(config)
                # requests cannot abort an in-flight call; drop its outcome instead
                if signal is not None and signal.cancelled:
                    raise CancelledError()
                response.raise_for_status()
                return response

        # Should never reach here - Retrying re-raises the last error
        raise RuntimeError(
            "Unexpected error while sending the request: "
            "reached end of `_send_with_retries` method without returning a response."
        )

    def _dispatch(self, config: RequestConfig) -> requests.Response:
        response = self._session.request(
            config.method,
            join_url(self.base_url, config.url),
            headers=config.headers,
            params=config.params,
            json=config.json,
            data=config.data,
            timeout=config.timeout,
            **config.extra,
        )
        assert isinstance(response, requests.Response), \
            f"🌀 Sanity check | Object returned by `Session.request` is not an instance of `requests.Response`. ({response.__class__})"
        return response

    def _retry_hook(self, config: RequestConfig) -> Callable[[int, Exception], None] | None:
        on_retry = self.retry_options.on_retry
        if on_retry is None:
            return None

        def hook(attempt_number: int, error: Exception) -> None:
            on_retry(attempt_number, error, config)

        return hook
