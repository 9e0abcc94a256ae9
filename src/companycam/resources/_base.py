"""Shared plumbing for resource classes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from companycam._request import (
    RequestOptions,
    UserScopedRequestOptions,
    build_request_options,
    split_user_scoped_options,
    user_context_headers,
)

if TYPE_CHECKING:
    from companycam._http import HttpClient


class APIResource:
    """
    Base class for resource groups sharing one HttpClient.

    Subclasses describe endpoints; this class turns per-call options into
    transport arguments and decodes the JSON response body.
    """

    def __init__(self, http: HttpClient):
        assert http is not None, "http cannot be None"
        self._http = http

    def _request(
        self,
        method: str,
        path: str,
        *,
        options: RequestOptions | None = None,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        response = self._http.request(
            method,
            path,
            headers=headers,
            params=params,
            json=json,
            **build_request_options(options),
        )
        if not response.content:
            return None
        return response.json()

    def _user_scoped_request(
        self,
        method: str,
        path: str,
        *,
        options: UserScopedRequestOptions | None = None,
        json: Any = None,
    ) -> Any:
        request_options, user_context = split_user_scoped_options(options)
        return self._request(
            method,
            path,
            options=request_options,
            json=json,
            headers=user_context_headers(user_context),
        )
