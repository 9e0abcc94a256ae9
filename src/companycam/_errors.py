"""
Normalized API errors for the companycam SDK.

Every transport, network or API failure reaches the caller as a single
APIError shape, whatever attempt produced it.

Example:
    >>> try:
    ...     client.request("GET", "/projects/missing")
    ... except APIError as e:
    ...     print(e.status, e.code, e.request_id)
    ...     print(e.problem)  # raw response body
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import requests

if TYPE_CHECKING:
    from companycam._request import RequestConfig

DEFAULT_ERROR_MESSAGE = "Unexpected API error"
REQUEST_ID_HEADERS = ("x-request-id", "x-amzn-requestid")


class APIError(Exception):
    """
    Uniform error raised by HttpClient once a request has definitely failed.

    Attributes:
        message: Human-readable message.
        status: HTTP status code, if a response was received.
        code: The ``code`` field of the response body, if present.
        problem: The raw response body (parsed JSON when possible).
        headers: The raw response headers.
        request_id: Value of ``x-request-id`` (or ``x-amzn-requestid``).
        method: Uppercased request method.
        url: Request URL.
        cause: The underlying exception, kept for diagnostics only.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        problem: Any = None,
        headers: Mapping[str, Any] | None = None,
        request_id: str | None = None,
        method: str | None = None,
        url: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.problem = problem
        self.headers = headers
        self.request_id = request_id
        self.method = method
        self.url = url
        self.cause = cause

    @classmethod
    def from_exception(
        cls,
        error: requests.RequestException,
        config: RequestConfig | None = None,
    ) -> APIError:
        """
        Normalize a ``requests`` failure into an APIError.

        Args:
            error: The exception raised by the last attempt.
            config: The request configuration the attempt was made with.

        Returns:
            The normalized APIError (not raised).
        """
        response: requests.Response | None = getattr(error, "response", None)
        problem = _parse_problem(response) if response is not None else None

        errors = problem.get("errors") if isinstance(problem, dict) else None
        first_error = errors[0] if isinstance(errors, list) and errors else None

        message = (
            (str(first_error) if first_error else None)
            or (response.reason if response is not None else None)
            or str(error)
            or DEFAULT_ERROR_MESSAGE
        )

        code = problem.get("code") if isinstance(problem, dict) else None

        return cls(
            message,
            status=response.status_code if response is not None else None,
            code=code,
            problem=problem,
            headers=dict(response.headers) if response is not None and response.headers is not None else None,
            request_id=_request_id(response),
            method=_request_method(error, config),
            url=config.url if config is not None else _request_url(error),
            cause=error,
        )

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"APIError(message={self.message!r}, status={self.status}, code={self.code!r}, "
            f"method={self.method!r}, url={self.url!r})"
        )


def _parse_problem(response: requests.Response) -> Any:
    """Return the JSON body, the text body when not JSON, or None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _request_id(response: requests.Response | None) -> str | None:
    if response is None or response.headers is None:
        return None
    for name in REQUEST_ID_HEADERS:
        value = response.headers.get(name)
        if isinstance(value, str):
            return value
    return None


def _request_method(error: requests.RequestException, config: RequestConfig | None) -> str | None:
    method = config.method if config is not None else getattr(error.request, "method", None)
    return method.upper() if isinstance(method, str) and method else None


def _request_url(error: requests.RequestException) -> str | None:
    url = getattr(error.request, "url", None)
    return url if isinstance(url, str) else None
