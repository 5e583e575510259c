"""Search capabilities: ``find-paginated`` tool and ``getKeywordMap`` resource."""

from __future__ import annotations

from ..backend import OpenKMClient, SearchQuery, build_search_url
from ..protocol import ProtocolEngine


def register(engine: ProtocolEngine, client: OpenKMClient) -> None:
    @engine.tool(
        "find-paginated",
        "Search documents with paging; all criteria are optional",
        SearchQuery,
    )
    async def find_paginated(query: SearchQuery) -> str:
        url = build_search_url(client.url_for("/search/findPaginated"), query)
        return await client.fetch_url(url)

    @engine.resource(
        "getKeywordMap",
        "search://getKeywordMap",
        description="Keywords in use and how many documents carry each",
    )
    async def keyword_map(uri: str) -> str:
        return await client.fetch_json("/search/getKeywordMap")
