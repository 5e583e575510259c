"""Backend proxy: OpenKM REST client, search query builder, text conversion."""

from .client import OpenKMClient
from .convert import DocumentConverter, normalize_format
from .query import SearchQuery, build_search_url, search_params

__all__ = [
    "OpenKMClient",
    "DocumentConverter",
    "normalize_format",
    "SearchQuery",
    "build_search_url",
    "search_params",
]
