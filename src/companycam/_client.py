"""
Client factory for the companycam SDK.

Example:
    >>> from companycam import create_client
    >>> with create_client(auth_token="my-token") as client:
    ...     company = client.company.retrieve()
    ...     users = client.users.list({"per_page": 50})
"""

from __future__ import annotations

from typing import Any

from companycam._http import HttpClient
from companycam.resources import CompanyResource, TagsResource, UsersResource, WebhooksResource


class CompanyCamClient:
    """
    CompanyCam API client composing resource groups around one HttpClient.

    Every resource shares the same transport, so they share one rate limiter,
    one retry policy and one ``requests.Session``.

    Attributes:
        http: Low-level HttpClient for endpoints without a resource helper.
        company: Company endpoints.
        users: User endpoints.
        tags: Tag endpoints.
        webhooks: Webhook endpoints.
    """

    def __init__(self, http: HttpClient):
        assert http is not None, "http cannot be None"
        self.http = http
        self.company = CompanyResource(http)
        self.users = UsersResource(http)
        self.tags = TagsResource(http)
        self.webhooks = WebhooksResource(http)

    def dispose(self) -> None:
        """Release resources owned by the underlying HttpClient (idempotent)."""
        self.http.dispose()

    def __enter__(self) -> CompanyCamClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"CompanyCamClient(http={self.http!r})"


def create_client(**options: Any) -> CompanyCamClient:
    """
    Create a CompanyCam API client.

    Args:
        **options: Keyword arguments forwarded to HttpClient (``auth_token``,
            ``base_url``, ``timeout``, ``retry``, ``rate_limiter``, ``session``...).

    Returns:
        A CompanyCamClient owning a freshly created HttpClient.
    """
    return CompanyCamClient(HttpClient(**options))
