from __future__ import annotations

from typing import Any

from companycam._request import RequestOptions
from companycam.resources._base import APIResource


class CompanyResource(APIResource):
    """Read access to the company that owns the API token."""

    def retrieve(self, options: RequestOptions | None = None) -> dict[str, Any]:
        """Retrieve the current company (GET /company)."""
        return self._request("GET", "/company", options=options)
