"""Gateway error taxonomy.

Protocol-level errors carry a JSON-RPC code so the engine can turn them
into error envelopes. Transport-level errors (unknown session, closed
channel) never reach a protocol client.
"""

from __future__ import annotations

from typing import Any


class JsonRpcErrorCode:
    """JSON-RPC 2.0 error codes used by the gateway."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Gateway-specific error codes
    BACKEND_UNAVAILABLE = -32001
    RESOURCE_NOT_FOUND = -32002
    CONVERSION_FAILED = -32003


class GatewayError(Exception):
    """Base class for errors that map onto a JSON-RPC error envelope."""

    code: int = JsonRpcErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, data: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data


class InvalidRequest(GatewayError):
    """Message is not a well-formed JSON-RPC request."""

    code = JsonRpcErrorCode.INVALID_REQUEST


class MethodNotFound(GatewayError):
    """Protocol method the engine does not implement."""

    code = JsonRpcErrorCode.METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        super().__init__(f"Method not found: {method}")
        self.method = method


class UnknownTool(GatewayError):
    """Tool call for a name that was never registered."""

    code = JsonRpcErrorCode.INVALID_PARAMS

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class UnknownResource(GatewayError):
    """Resource read for a URI no registered resource matches."""

    code = JsonRpcErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, uri: str) -> None:
        super().__init__(f"Unknown resource: {uri}", data={"uri": uri})
        self.uri = uri


class InvalidInput(GatewayError):
    """Tool arguments failed validation against the declared input shape.

    ``errors`` is a list of ``{"loc": [...], "msg": str, "type": str}`` dicts,
    one per offending field.
    """

    code = JsonRpcErrorCode.INVALID_PARAMS

    def __init__(self, tool: str, errors: list[dict[str, Any]]) -> None:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) or "<root>" for e in errors)
        super().__init__(
            f"Invalid input for tool '{tool}': {fields}",
            data={"tool": tool, "errors": errors},
        )
        self.tool = tool
        self.errors = errors


class BackendUnavailable(GatewayError):
    """The remote document service could not be reached or refused the call."""

    code = JsonRpcErrorCode.BACKEND_UNAVAILABLE


class ConversionFailed(GatewayError):
    """The external document conversion utility failed."""

    code = JsonRpcErrorCode.CONVERSION_FAILED


class UnknownSession(Exception):
    """A post-message referenced a session id with no live channel."""

    def __init__(self, session_id: str | None) -> None:
        super().__init__(f"No transport found for sessionId: {session_id}")
        self.session_id = session_id


class ChannelClosed(Exception):
    """Write or read attempted on a channel whose connection is gone."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Channel {session_id} is closed")
        self.session_id = session_id


class RegistrationError(ValueError):
    """Duplicate or malformed tool/resource registration (startup-time)."""
