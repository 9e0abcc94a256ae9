"""Resource groups of the CompanyCam API, each bound to a shared HttpClient."""

from companycam.resources._base import APIResource
from companycam.resources._company import CompanyResource
from companycam.resources._tags import TagsResource
from companycam.resources._users import UsersResource
from companycam.resources._webhooks import WebhooksResource

__all__ = [
    "APIResource",
    "CompanyResource",
    "TagsResource",
    "UsersResource",
    "WebhooksResource",
]
