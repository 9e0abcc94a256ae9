"""
OAuth 2.0 helpers for the companycam SDK.

Covers the authorization-code flow used by external integrations:

- build_authorization_grant_url(): URL the user is redirected to.
- get_access_token(): exchanges the authorization code for tokens.
- refresh_access_token(): exchanges a refresh token for fresh tokens.

Token exchanges go through an HttpClient pointed at the token endpoint, so
they share the SDK's timeout, retry and rate-limiting defaults.

Example:
    >>> from companycam import build_authorization_grant_url, get_access_token
    >>> url = build_authorization_grant_url("my-client-id", "https://my.app/callback", ["read"])
    >>> # ... user authorizes, CompanyCam redirects back with ?code=...
    >>> tokens = get_access_token("my-client-id", "my-secret", code, "https://my.app/callback")
    >>> tokens["access_token"]
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Sequence
from typing import Any, NotRequired, TypedDict
from urllib.parse import urlencode, urlsplit

from companycam._http import HttpClient

logger = logging.getLogger(__name__)

AUTHORIZATION_ENDPOINT = "https://app.companycam.com/oauth/authorize"
TOKEN_ENDPOINT = "https://app.companycam.com/oauth/token"
DEFAULT_OAUTH_SCOPES: tuple[str, ...] = ("read", "write", "destroy")

_TOKEN_URL = urlsplit(TOKEN_ENDPOINT)
_WHITESPACE = re.compile(r"\s+")


class OAuthTokenResponse(TypedDict):
    """
    Payload returned by the OAuth token endpoint.

    Keys:
        access_token: Bearer token for subsequent API requests.
        token_type: Usually "bearer".
        expires_in: Token lifetime in seconds, when supplied.
        refresh_token: Token to exchange for a fresh access token, when supplied.
        scope: Granted scopes as a space-delimited string, when returned.
    """

    access_token: str
    token_type: str
    expires_in: NotRequired[int]
    refresh_token: NotRequired[str]
    scope: NotRequired[str]


# =============================================================================
# Authorization URL
# =============================================================================


def build_authorization_grant_url(
    client_id: str,
    redirect_uri: str,
    scope: Sequence[str] | str | None = None,
) -> str:
    """
    Build the URL that starts the OAuth 2.0 authorization-code flow.

    Args:
        client_id: Identifier issued by CompanyCam for the integration.
        redirect_uri: URI that receives the authorization response.
        scope: Scopes as a list or a space-delimited string. Defaults to
            all documented scopes (read, write, destroy) when None.

    Returns:
        The authorization URL, ready for browser redirection.

    Raises:
        ValueError: If client_id or redirect_uri is empty, or scope is an empty list.

    Example:
        >>> build_authorization_grant_url("abc", "https://my.app/cb", ["read", "write"])
        'https://app.companycam.com/oauth/authorize?response_type=code&client_id=abc&redirect_uri=https%3A%2F%2Fmy.app%2Fcb&scope=read+write'
    """
    _require_non_empty(client_id, "client_id")
    _require_non_empty(redirect_uri, "redirect_uri")
    if not isinstance(scope, str) and scope is not None and len(scope) == 0:
        raise ValueError("scope must not be an empty list.")

    query: list[tuple[str, str]] = [
        ("response_type", "code"),
        ("client_id", client_id),
        ("redirect_uri", redirect_uri),
    ]

    normalized_scope = _normalize_scope(scope)
    if normalized_scope:
        query.append(("scope", normalized_scope))

    return f"{AUTHORIZATION_ENDPOINT}?{urlencode(query)}"


# =============================================================================
# Token Exchange
# =============================================================================


def get_access_token(
    client_id: str,
    client_secret: str,
    code: str,
    redirect_uri: str,
) -> OAuthTokenResponse:
    """
    Exchange an authorization code for access and refresh tokens.

    Raises:
        ValueError: If any argument is empty.
        APIError: If the token endpoint rejects the exchange.
    """
    _require_non_empty(client_id, "client_id")
    _require_non_empty(client_secret, "client_secret")
    _require_non_empty(code, "code")
    _require_non_empty(redirect_uri, "redirect_uri")

    return _exchange_token({
        "client_id": client_id,
        "client_secret": client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": redirect_uri,
    })


def refresh_access_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
) -> OAuthTokenResponse:
    """
    Exchange a refresh token for a new access token.

    The response usually carries a new refresh token as well; persist it,
    since the previous one is typically invalidated.

    Raises:
        ValueError: If any argument is empty.
        APIError: If the token endpoint rejects the exchange.
    """
    _require_non_empty(client_id, "client_id")
    _require_non_empty(client_secret, "client_secret")
    _require_non_empty(refresh_token, "refresh_token")

    return _exchange_token({
        "client_id": client_id,
        "client_secret": client_secret,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    })


# =============================================================================
# Internals
# =============================================================================


_token_http_client: HttpClient | None = None
_token_http_client_lock = threading.Lock()


def _get_token_http_client() -> HttpClient:
    """Lazily create the HttpClient bound to the token endpoint's origin."""
    global _token_http_client
    if _token_http_client is None:
        with _token_http_client_lock:
            if _token_http_client is None:
                # Empty token: the configured API token never reaches the token endpoint
                _token_http_client = HttpClient(
                    base_url=f"{_TOKEN_URL.scheme}://{_TOKEN_URL.netloc}",
                    auth_token="",
                )
    return _token_http_client


def _exchange_token(payload: dict[str, str]) -> OAuthTokenResponse:
    path = _TOKEN_URL.path + (f"?{_TOKEN_URL.query}" if _TOKEN_URL.query else "")
    logger.debug(f"OAuth | Exchanging token (grant_type={payload['grant_type']})")

    response = _get_token_http_client().request(
        "POST",
        path,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        data=payload,
    )
    token: Any = response.json()
    return token


def _normalize_scope(scope: Sequence[str] | str | None) -> str | None:
    if scope is None:
        return " ".join(DEFAULT_OAUTH_SCOPES)

    if isinstance(scope, str):
        collapsed = _WHITESPACE.sub(" ", scope.strip())
        return collapsed or None

    entries = [entry.strip() for entry in scope if entry.strip()]
    return " ".join(entries) or None


def _require_non_empty(value: Any, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must be a non-empty string.")
