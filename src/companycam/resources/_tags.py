from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from companycam._request import RequestOptions, clean_query_parameters, encode_path_param
from companycam.resources._base import APIResource


class TagsResource(APIResource):
    """Tags configured for the company."""

    def list(
        self,
        query: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> list[dict[str, Any]]:
        return self._request("GET", "/tags", options=options, params=clean_query_parameters(query))

    def create(self, body: Mapping[str, Any], options: RequestOptions | None = None) -> dict[str, Any]:
        return self._request("POST", "/tags", options=options, json=dict(body))

    def retrieve(self, tag_id: str, options: RequestOptions | None = None) -> dict[str, Any]:
        return self._request("GET", f"/tags/{encode_path_param(tag_id)}", options=options)

    def update(
        self,
        tag_id: str,
        body: Mapping[str, Any],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        return self._request("PUT", f"/tags/{encode_path_param(tag_id)}", options=options, json=dict(body))

    def delete(self, tag_id: str, options: RequestOptions | None = None) -> None:
        self._request("DELETE", f"/tags/{encode_path_param(tag_id)}", options=options)
