"""
User lifecycle operations.

Writes accept ``user_context`` in their options, sent as the
``X-CompanyCam-User`` header to attribute the action to a specific user.

Example:
    >>> client.users.create(
    ...     {"email_address": "jane@example.com", "first_name": "Jane"},
    ...     options={"user_context": "admin@example.com"},
    ... )
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from companycam._request import (
    RequestOptions,
    UserScopedRequestOptions,
    clean_query_parameters,
    encode_path_param,
)
from companycam.resources._base import APIResource


class UsersResource(APIResource):
    """Operations on the users of the current company."""

    def retrieve_current(self, options: RequestOptions | None = None) -> dict[str, Any]:
        """Retrieve the user that owns the API token."""
        return self._request("GET", "/users/current", options=options)

    def list(
        self,
        query: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> list[dict[str, Any]]:
        """
        List users of the company.

        Args:
            query: Pagination controls (``page``, ``per_page``). None values are dropped.
            options: Per-call request options.
        """
        return self._request("GET", "/users", options=options, params=clean_query_parameters(query))

    def create(
        self,
        user: Mapping[str, Any],
        options: UserScopedRequestOptions | None = None,
    ) -> dict[str, Any]:
        """Create a user. The attributes are sent wrapped as ``{"user": ...}``."""
        return self._user_scoped_request("POST", "/users", options=options, json={"user": dict(user)})

    def retrieve(self, user_id: str, options: RequestOptions | None = None) -> dict[str, Any]:
        return self._request("GET", f"/users/{encode_path_param(user_id)}", options=options)

    def update(
        self,
        user_id: str,
        updates: Mapping[str, Any],
        options: UserScopedRequestOptions | None = None,
    ) -> dict[str, Any]:
        return self._user_scoped_request(
            "PUT",
            f"/users/{encode_path_param(user_id)}",
            options=options,
            json=dict(updates),
        )

    def delete(self, user_id: str, options: UserScopedRequestOptions | None = None) -> None:
        self._user_scoped_request("DELETE", f"/users/{encode_path_param(user_id)}", options=options)
