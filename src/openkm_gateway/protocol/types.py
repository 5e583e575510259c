"""Agent-tool protocol (MCP) wire types.

Note: Field names use camelCase to match the MCP specification.
This is required for protocol compatibility - do not change to snake_case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26")


# =============================================================================
# JSON-RPC 2.0 Envelopes
# =============================================================================


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response (success or error envelope)."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: str | int | None
    result: Any | None = None
    error: JsonRpcError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with exactly one of ``result`` / ``error``; ``id`` is always present."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            result = self.result
            if isinstance(result, BaseModel):
                result = result.model_dump(exclude_none=True)
            data["result"] = result if result is not None else {}
        return data


# =============================================================================
# Content
# =============================================================================


class TextContent(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str


class CallToolResult(BaseModel):
    """Result of a tools/call request."""

    content: list[TextContent] = Field(default_factory=list)
    isError: bool = False

    @classmethod
    def text(cls, text: str) -> CallToolResult:
        return cls(content=[TextContent(text=text)])


class TextResourceContents(BaseModel):
    """Contents of one resource."""

    uri: str
    mimeType: str | None = None
    text: str


class ReadResourceResult(BaseModel):
    """Result of a resources/read request."""

    contents: list[TextResourceContents] = Field(default_factory=list)


# =============================================================================
# Listing
# =============================================================================


class ToolInfo(BaseModel):
    """Tool entry returned by tools/list."""

    name: str
    description: str | None = None
    inputSchema: dict[str, Any]


class ListToolsResult(BaseModel):
    tools: list[ToolInfo] = Field(default_factory=list)


class ResourceInfo(BaseModel):
    """Resource entry returned by resources/list."""

    uri: str
    name: str
    description: str | None = None
    mimeType: str | None = None


class ListResourcesResult(BaseModel):
    resources: list[ResourceInfo] = Field(default_factory=list)


# =============================================================================
# Initialize
# =============================================================================


class ServerInfo(BaseModel):
    """Information about the server."""

    name: str
    version: str


class ServerCapabilities(BaseModel):
    """Capabilities advertised in the initialize response."""

    tools: dict[str, Any] = Field(default_factory=dict)
    resources: dict[str, Any] = Field(default_factory=dict)


class InitializeResult(BaseModel):
    """Response to the initialize method."""

    protocolVersion: str = PROTOCOL_VERSION
    capabilities: ServerCapabilities = Field(default_factory=ServerCapabilities)
    serverInfo: ServerInfo
    instructions: str | None = None


def negotiate_protocol_version(requested: Any) -> str:
    """Echo the client's version when supported, otherwise offer our default."""
    if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return PROTOCOL_VERSION
