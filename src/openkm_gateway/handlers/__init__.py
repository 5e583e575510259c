"""Tool and resource handlers exposed by the gateway.

| Name | Kind |
|---|---|
| document-get-content | tool |
| find-paginated | tool |
| echo | tool |
| getUserLastModifiedDocuments | resource dashboard:// |
| getUserLastUploadedDocuments | resource dashboard:// |
| getKeywordMap | resource search:// |
"""

from __future__ import annotations

from ..backend import DocumentConverter, OpenKMClient
from ..protocol import ProtocolEngine
from . import dashboard, documents, echo, search


def register_catalog(
    engine: ProtocolEngine,
    client: OpenKMClient,
    converter: DocumentConverter,
) -> None:
    """Register every capability on ``engine``. Call once at startup."""
    echo.register(engine)
    documents.register(engine, client, converter)
    search.register(engine, client)
    dashboard.register(engine, client)


__all__ = ["register_catalog"]
