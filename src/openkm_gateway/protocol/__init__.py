"""Agent-tool protocol bridge.

Exports the engine, the tool/resource catalog and the wire types.
"""

from .catalog import Catalog, ResourceDescriptor, ToolDescriptor
from .engine import InboundMessage, MessageKind, ProtocolEngine
from .types import (
    PROTOCOL_VERSION,
    CallToolResult,
    JsonRpcError,
    JsonRpcResponse,
    ReadResourceResult,
    TextContent,
    TextResourceContents,
)

__all__ = [
    "Catalog",
    "ToolDescriptor",
    "ResourceDescriptor",
    "ProtocolEngine",
    "InboundMessage",
    "MessageKind",
    "PROTOCOL_VERSION",
    "CallToolResult",
    "JsonRpcError",
    "JsonRpcResponse",
    "ReadResourceResult",
    "TextContent",
    "TextResourceContents",
]
