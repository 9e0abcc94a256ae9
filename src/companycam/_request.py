"""
Request configuration helpers for the companycam SDK.

Merges client defaults, per-call overrides and derived headers
(Authorization, Idempotency-Key) into the final wire-level request
description, and provides the small helpers resource classes use to build
their calls (query cleaning, path encoding, option filtering).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypedDict
from urllib.parse import quote

if TYPE_CHECKING:
    from companycam._cancellation import CancellationSignal

# Header carrying the user on whose behalf a write is performed.
USER_CONTEXT_HEADER = "X-CompanyCam-User"
AUTHORIZATION_HEADER = "Authorization"
IDEMPOTENCY_KEY_HEADER = "Idempotency-Key"

# Marks left unescaped in path segments, besides ASCII alphanumerics.
_UNRESERVED_MARKS = "-_.!~*'()"


# =============================================================================
# Request Configuration
# =============================================================================


@dataclass(frozen=True)
class RequestConfig:
    """
    Final wire-level description of one HTTP request.

    Built fresh per call and reused unchanged by every retry attempt.

    Attributes:
        method: Uppercased HTTP method.
        url: Request URL as given by the caller (relative to the base URL or absolute).
        headers: Merged headers; key case preserved, last write wins.
        params: Query parameters, or None when there is nothing to send.
        json: JSON-serializable body.
        data: Raw or form-encoded body.
        timeout: Per-attempt timeout in seconds.
        extra: Passthrough keyword arguments for ``requests.Session.request``.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    json: Any = None
    data: Any = None
    timeout: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)


def merge_headers(
    default_headers: Mapping[str, str] | None = None,
    headers: Mapping[str, Any] | None = None,
    auth_token: str | None = None,
    idempotency_key: str | None = None,
) -> dict[str, str]:
    """
    Merge header sources into one mapping (later wins).

    Order: defaults, per-call headers, ``Authorization: Bearer <token>``,
    ``Idempotency-Key``. Per-call values that are None are dropped and
    list/tuple values are joined with ", ".

    Example:
        >>> merge_headers({"Accept": "application/json"}, {"X-Array": ["a", "b"], "Skip": None}, "t")
        {'Accept': 'application/json', 'X-Array': 'a, b', 'Authorization': 'Bearer t'}
    """
    merged: dict[str, str] = dict(default_headers or {})

    for key, value in (headers or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            merged[key] = ", ".join(str(item) for item in value)
        else:
            merged[key] = str(value)

    if auth_token:
        merged[AUTHORIZATION_HEADER] = f"Bearer {auth_token}"
    if idempotency_key:
        merged[IDEMPOTENCY_KEY_HEADER] = idempotency_key

    return merged


def build_request_config(
    method: str,
    url: str,
    *,
    default_headers: Mapping[str, str] | None = None,
    headers: Mapping[str, Any] | None = None,
    default_auth_token: str | None = None,
    auth_token: str | None = None,
    idempotency_key: str | None = None,
    params: Mapping[str, Any] | None = None,
    json: Any = None,
    data: Any = None,
    timeout: float | None = None,
    extra: Mapping[str, Any] | None = None,
) -> RequestConfig:
    """
    Build the final RequestConfig for one call.

    The per-call ``auth_token`` takes precedence over ``default_auth_token``
    whenever it is not None; an empty string sends no Authorization header.
    Query parameters are cleaned with ``clean_query_parameters``.
    """
    assert method, "method cannot be empty."

    return RequestConfig(
        method=method.upper(),
        url=url,
        headers=merge_headers(
            default_headers=default_headers,
            headers=headers,
            auth_token=auth_token if auth_token is not None else default_auth_token,
            idempotency_key=idempotency_key,
        ),
        params=clean_query_parameters(params),
        json=json,
        data=data,
        timeout=timeout,
        extra=dict(extra or {}),
    )


# =============================================================================
# Resource Helpers
# =============================================================================


class RequestOptions(TypedDict, total=False):
    """
    Per-call options accepted by every resource method.

    Keys:
        signal: Cancellation signal for the rate-limiter wait, retry sleeps
            and attempts.
        auth_token: Bearer token override, e.g. when acting for another user.
        idempotency_key: Lets the server deduplicate retried writes.
        use_rate_limiter: Opt out of (False) client-side rate limiting.
    """

    signal: CancellationSignal
    auth_token: str
    idempotency_key: str
    use_rate_limiter: bool


class UserScopedRequestOptions(RequestOptions, total=False):
    """RequestOptions plus the optional X-CompanyCam-User header value."""

    user_context: str


def build_request_options(options: RequestOptions | None = None) -> dict[str, Any]:
    """
    Keep only the supported, set entries of ``options``.

    ``use_rate_limiter`` is kept whenever it is not None, so an explicit
    False survives.

    Example:
        >>> build_request_options({"auth_token": "t", "idempotency_key": "", "bogus": 1})
        {'auth_token': 't'}
    """
    if not options:
        return {}

    config: dict[str, Any] = {}
    if options.get("signal") is not None:
        config["signal"] = options["signal"]
    if options.get("auth_token"):
        config["auth_token"] = options["auth_token"]
    if options.get("idempotency_key"):
        config["idempotency_key"] = options["idempotency_key"]
    if options.get("use_rate_limiter") is not None:
        config["use_rate_limiter"] = options["use_rate_limiter"]
    return config


def split_user_scoped_options(
    options: UserScopedRequestOptions | None = None,
) -> tuple[RequestOptions | None, str | None]:
    """
    Split user-scoped options into request options and the user context.

    Returns:
        ``(request_options, user_context)``; both None when ``options`` is empty.
    """
    if not options:
        return None, None

    request_options = {k: v for k, v in options.items() if k != "user_context"}
    return request_options, options.get("user_context")  # type: ignore[return-value]


def user_context_headers(user_context: str | None) -> dict[str, str] | None:
    """Return the X-CompanyCam-User header mapping, or None when unset."""
    return {USER_CONTEXT_HEADER: user_context} if user_context else None


def clean_query_parameters(query: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
    """
    Remove None values from a query mapping prior to transmission.

    Returns:
        The cleaned mapping, or None (never an empty dict) when nothing remains.

    Example:
        >>> clean_query_parameters({"page": 1, "per_page": None, "query": "x"})
        {'page': 1, 'query': 'x'}
        >>> clean_query_parameters({"page": None}) is None
        True
    """
    if not query:
        return None

    cleaned = {key: value for key, value in query.items() if value is not None}
    return cleaned or None


def encode_path_param(value: Any) -> str:
    """
    Percent-encode a path parameter so it stays a single path segment.

    Every reserved character is escaped (``/``, ``@``, space, ...); only
    alphanumerics and ``-_.!~*'()`` are kept.

    Example:
        >>> encode_path_param("user/email@example.com")
        'user%2Femail%40example.com'
    """
    return quote(str(value), safe=_UNRESERVED_MARKS)
