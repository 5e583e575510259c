"""Document retrieval tool: ``document-get-content``."""

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from ..backend import DocumentConverter, OpenKMClient
from ..protocol import ProtocolEngine

logger = logging.getLogger(__name__)


class DocumentContentInput(BaseModel):
    """Input of ``document-get-content``."""

    model_config = ConfigDict(extra="forbid")

    uuid: str = Field(min_length=1, description="UUID of the OpenKM document")


def parse_node_path(body: str) -> str:
    """OpenKM answers getNodePath with a bare path or a JSON string."""
    body = body.strip()
    if body.startswith('"'):
        try:
            return str(json.loads(body))
        except json.JSONDecodeError:
            return body.strip('"')
    return body


def format_from_path(path: str) -> str:
    return PurePosixPath(path).suffix.lstrip(".").lower()


def format_from_properties(body: str) -> str:
    """Guess the document format from a getProperties response's ``mimeType``."""
    try:
        mime_type = json.loads(body).get("mimeType")
    except (json.JSONDecodeError, AttributeError):
        return ""
    if not mime_type:
        return ""
    extension = mimetypes.guess_extension(mime_type) or ""
    return extension.lstrip(".")


def register(engine: ProtocolEngine, client: OpenKMClient, converter: DocumentConverter) -> None:
    @engine.tool(
        "document-get-content",
        "Get the plain-text content of a document given its UUID",
        DocumentContentInput,
    )
    async def document_get_content(args: DocumentContentInput) -> str:
        path = parse_node_path(
            await client.fetch_json("/repository/getNodePath", {"uuid": args.uuid})
        )
        source_format = format_from_path(path)
        if not source_format:
            properties = await client.fetch_json("/document/getProperties", {"docId": args.uuid})
            source_format = format_from_properties(properties)
        logger.debug(f"Document {args.uuid} at {path} ({source_format or 'unknown format'})")

        data = await client.fetch_binary("/document/getContent", {"docId": args.uuid})
        return await converter.convert_to_text(data, source_format)
