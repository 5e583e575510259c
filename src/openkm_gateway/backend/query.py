"""Structured OpenKM search query and its query-string serialization."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field


class SearchQuery(BaseModel):
    """Input of the ``find-paginated`` tool; every field is optional.

    Field names follow the OpenKM ``/search/findPaginated`` parameters.
    Dates (``lastModifiedFrom`` / ``lastModifiedTo``) are passed through
    verbatim in the backend's ``yyyyMMddHHmmss`` format.
    """

    model_config = ConfigDict(extra="forbid")

    offset: int | None = Field(default=None, ge=0, description="Index of the first result")
    limit: int | None = Field(default=None, ge=1, description="Maximum number of results")
    content: str | None = Field(default=None, description="Full-text content filter")
    name: str | None = Field(default=None, description="Document name filter")
    domain: int | None = Field(default=None, description="Search domain bitmask")
    keyword: list[str] | None = Field(default=None, description="Keywords (all must match)")
    category: list[str] | None = Field(default=None, description="Category UUIDs or paths")
    property: list[str] | None = Field(
        default=None, description="Metadata properties as 'group:field=value'"
    )
    author: str | None = None
    mimeType: str | None = None
    lastModifiedFrom: str | None = None
    lastModifiedTo: str | None = None
    mailSubject: str | None = None
    mailFrom: str | None = None
    mailTo: str | None = None
    path: str | None = Field(default=None, description="Folder path to search under")


def search_params(query: SearchQuery) -> list[tuple[str, str]]:
    """Flatten a query into ordered parameters.

    Lists become repeated parameters; absent fields are omitted.
    """
    params: list[tuple[str, str]] = []
    for name in SearchQuery.model_fields:
        value: Any = getattr(query, name)
        if value is None:
            continue
        if isinstance(value, list):
            params.extend((name, str(item)) for item in value)
        else:
            params.append((name, str(value)))
    return params


def build_search_url(base: str, query: SearchQuery | dict[str, Any]) -> str:
    """Append a search query's parameters to ``base``.

    Example:
        >>> build_search_url("http://okm/search/findPaginated", {"limit": 10, "keyword": ["invoice"]})
        'http://okm/search/findPaginated?limit=10&keyword=invoice'
    """
    if not isinstance(query, SearchQuery):
        query = SearchQuery.model_validate(query)
    params = search_params(query)
    if not params:
        return base
    return str(httpx.URL(base).copy_merge_params(params))
