"""Dashboard resources (``dashboard://...``)."""

from __future__ import annotations

from ..backend import OpenKMClient
from ..protocol import ProtocolEngine

DASHBOARD_RESOURCES = {
    "getUserLastModifiedDocuments": "Documents the user modified most recently",
    "getUserLastUploadedDocuments": "Documents the user uploaded most recently",
}


def register(engine: ProtocolEngine, client: OpenKMClient) -> None:
    for name, description in DASHBOARD_RESOURCES.items():
        engine.resource(name, f"dashboard://{name}", description=description)(
            _dashboard_reader(client, name)
        )


def _dashboard_reader(client: OpenKMClient, name: str):
    async def read(uri: str) -> str:
        return await client.fetch_json(f"/dashboard/{name}")

    read.__name__ = name
    return read
