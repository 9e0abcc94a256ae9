from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from companycam._request import RequestOptions, clean_query_parameters, encode_path_param
from companycam.resources._base import APIResource


class WebhooksResource(APIResource):
    """
    Webhook subscriptions of the company.

    Payloads accept ``url``, ``scopes``, ``enabled`` and ``token``.
    """

    def list(
        self,
        query: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> list[dict[str, Any]]:
        return self._request("GET", "/webhooks", options=options, params=clean_query_parameters(query))

    def create(self, payload: Mapping[str, Any], options: RequestOptions | None = None) -> dict[str, Any]:
        """Create a webhook (POST /webhooks). Not retried unless POST retries are enabled."""
        return self._request("POST", "/webhooks", options=options, json=dict(payload))

    def retrieve(self, webhook_id: str, options: RequestOptions | None = None) -> dict[str, Any]:
        return self._request("GET", f"/webhooks/{encode_path_param(webhook_id)}", options=options)

    def update(
        self,
        webhook_id: str,
        payload: Mapping[str, Any],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        return self._request(
            "PUT",
            f"/webhooks/{encode_path_param(webhook_id)}",
            options=options,
            json=dict(payload),
        )

    def delete(self, webhook_id: str, options: RequestOptions | None = None) -> None:
        self._request("DELETE", f"/webhooks/{encode_path_param(webhook_id)}", options=options)
