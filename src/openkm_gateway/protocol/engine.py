"""Protocol engine - routes inbound MCP messages to catalog handlers.

One engine serves every session. For each attached channel a pump task
reads inbound messages in arrival order and starts an independent
dispatch task per message, so a slow handler delays neither later
messages on the same channel nor any other channel. Responses go back
on the originating channel; a channel that closed meanwhile just drops
the result. A JSON-RPC batch is handled as one dispatch whose item
responses go back together as a single array.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ..errors import (
    ChannelClosed,
    GatewayError,
    InvalidInput,
    InvalidRequest,
    JsonRpcErrorCode,
    MethodNotFound,
)
from ..transport.base import Channel
from .catalog import Catalog, ResourceDescriptor, ToolDescriptor
from .types import (
    CallToolResult,
    InitializeResult,
    JsonRpcError,
    JsonRpcResponse,
    ListResourcesResult,
    ListToolsResult,
    ReadResourceResult,
    ServerInfo,
    TextResourceContents,
    negotiate_protocol_version,
)

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    """Kinds of inbound protocol messages."""

    HANDSHAKE = "handshake"
    TOOL_CALL = "tool_call"
    RESOURCE_READ = "resource_read"
    LISTING = "listing"
    NOTIFICATION = "notification"
    RESPONSE = "response"
    OTHER = "other"


_METHOD_KINDS = {
    "initialize": MessageKind.HANDSHAKE,
    "ping": MessageKind.HANDSHAKE,
    "tools/call": MessageKind.TOOL_CALL,
    "resources/read": MessageKind.RESOURCE_READ,
    "tools/list": MessageKind.LISTING,
    "resources/list": MessageKind.LISTING,
    "resources/templates/list": MessageKind.LISTING,
}


@dataclass
class InboundMessage:
    """One decoded client message."""

    session_id: str
    kind: MessageKind
    method: str | None = None
    id: str | int | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def decode(cls, session_id: str, raw: Any) -> InboundMessage:
        """Decode a raw JSON-RPC payload.

        Raises:
            InvalidRequest: If the payload is not a JSON-RPC message
        """
        if not isinstance(raw, dict):
            raise InvalidRequest("Message must be a JSON object")

        request_id = raw.get("id")
        if request_id is not None and not isinstance(request_id, (str, int)):
            raise InvalidRequest("'id' must be a string or integer")

        if raw.get("jsonrpc") != "2.0":
            raise InvalidRequest("Missing or unsupported 'jsonrpc' version", data={"id": request_id})

        method = raw.get("method")
        if method is None:
            if "result" in raw or "error" in raw:
                return cls(session_id=session_id, kind=MessageKind.RESPONSE, id=request_id)
            raise InvalidRequest("Missing 'method' field", data={"id": request_id})
        if not isinstance(method, str):
            raise InvalidRequest("'method' must be a string", data={"id": request_id})

        params = raw.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            raise InvalidRequest("'params' must be an object", data={"id": request_id})

        if request_id is None:
            kind = MessageKind.NOTIFICATION
        else:
            kind = _METHOD_KINDS.get(method, MessageKind.OTHER)

        return cls(session_id=session_id, kind=kind, method=method, id=request_id, params=params)


def error_response(request_id: str | int | None, exc: GatewayError) -> JsonRpcResponse:
    return JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=exc.code, message=exc.message, data=exc.data),
    )


class ProtocolEngine:
    """Agent-tool protocol state machine shared by all sessions."""

    def __init__(
        self,
        catalog: Catalog | None = None,
        *,
        server_name: str = "openkm",
        server_version: str = "1.0.0",
        instructions: str | None = None,
    ) -> None:
        self.catalog = catalog or Catalog()
        self.server_info = ServerInfo(name=server_name, version=server_version)
        self.instructions = instructions
        self._tasks: set[asyncio.Task[Any]] = set()

    # Registration is delegated so handlers can be declared against the engine
    def register_tool(self, descriptor: ToolDescriptor) -> None:
        self.catalog.register_tool(descriptor)

    def register_resource(self, descriptor: ResourceDescriptor) -> None:
        self.catalog.register_resource(descriptor)

    def tool(self, *args: Any, **kwargs: Any) -> Any:
        """Decorator form of register_tool (see Catalog.tool)."""
        return self.catalog.tool(*args, **kwargs)

    def resource(self, *args: Any, **kwargs: Any) -> Any:
        """Decorator form of register_resource (see Catalog.resource)."""
        return self.catalog.resource(*args, **kwargs)

    # =========================================================================
    # Channel binding
    # =========================================================================

    def attach(self, channel: Channel) -> asyncio.Task[None]:
        """Start consuming a channel's inbound messages for its lifetime."""
        pump = self._spawn(self._pump(channel), name=f"pump-{channel.session_id}")
        channel.on_close(pump.cancel)
        return pump

    async def _pump(self, channel: Channel) -> None:
        async for raw in channel.messages():
            self._spawn(self.dispatch(channel, raw), name=f"dispatch-{channel.session_id}")

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def in_flight(self) -> int:
        """Number of pump and dispatch tasks still running."""
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for outstanding dispatch tasks (pumps are cancelled).

        Returns:
            Number of dispatch tasks still running when ``timeout`` expired
        """
        tasks = [t for t in self._tasks if not (t.get_name() or "").startswith("pump-")]
        if not tasks:
            return 0
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        return len(pending)

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def dispatch(self, channel: Channel, raw: Any) -> None:
        """Handle one raw message and send any response on ``channel``."""
        if isinstance(raw, list):
            await self._dispatch_batch(channel, raw)
            return

        response = await self.handle(channel.session_id, raw)
        if response is not None:
            await self._send(channel, response.to_wire(), response.id)

    async def _dispatch_batch(self, channel: Channel, batch: list[Any]) -> None:
        """Handle a JSON-RPC batch; the answer is one array of responses."""
        if not batch:
            response = error_response(None, InvalidRequest("Empty batch"))
            await self._send(channel, response.to_wire(), None)
            return

        responses = await asyncio.gather(
            *(self.handle(channel.session_id, item) for item in batch)
        )
        wire = [r.to_wire() for r in responses if r is not None]
        # A batch of notifications gets no response at all
        if wire:
            await self._send(channel, wire, [r["id"] for r in wire])

    async def _send(self, channel: Channel, payload: Any, request_id: Any) -> None:
        try:
            await channel.send(payload)
        except ChannelClosed:
            logger.debug(
                f"Session {channel.session_id} closed, dropping response to request {request_id}"
            )

    async def handle(self, session_id: str, raw: Any) -> JsonRpcResponse | None:
        """Decode, route and encode one message.

        Returns:
            The response envelope, or None for notifications and client responses
        """
        request_id = raw.get("id") if isinstance(raw, dict) else None
        try:
            message = InboundMessage.decode(session_id, raw)
        except InvalidRequest as e:
            rid = request_id if isinstance(request_id, (str, int)) else None
            return error_response(rid, e)

        if message.kind is MessageKind.NOTIFICATION:
            logger.debug(f"Notification on session {session_id}: {message.method}")
            return None
        if message.kind is MessageKind.RESPONSE:
            logger.debug(f"Ignoring client response {message.id} on session {session_id}")
            return None

        try:
            result = await self._route(message)
            return JsonRpcResponse(id=message.id, result=result)
        except GatewayError as e:
            logger.info(f"{message.method} failed on session {session_id}: {e.message}")
            return error_response(message.id, e)
        except TimeoutError:
            logger.warning(f"{message.method} timed out on session {session_id}")
            return JsonRpcResponse(
                id=message.id,
                error=JsonRpcError(
                    code=JsonRpcErrorCode.INTERNAL_ERROR,
                    message=f"{message.method} timed out",
                ),
            )
        except Exception as e:
            logger.exception(f"Error handling {message.method} on session {session_id}: {e}")
            return JsonRpcResponse(
                id=message.id,
                error=JsonRpcError(code=JsonRpcErrorCode.INTERNAL_ERROR, message=str(e)),
            )

    async def _route(self, message: InboundMessage) -> Any:
        """Route a request to the appropriate protocol method."""
        method = message.method
        params = message.params

        if method == "initialize":
            return InitializeResult(
                protocolVersion=negotiate_protocol_version(params.get("protocolVersion")),
                serverInfo=self.server_info,
                instructions=self.instructions,
            )

        if method == "ping":
            return {}

        if method == "tools/list":
            return ListToolsResult(tools=[t.info() for t in self.catalog.list_tools()])

        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str) or not name:
                raise InvalidRequest("tools/call requires a 'name'")
            arguments = params.get("arguments")
            if arguments is None:
                arguments = {}
            return await self.call_tool(name, arguments)

        if method == "resources/list":
            return ListResourcesResult(
                resources=[r.info() for r in self.catalog.list_resources()]
            )

        if method == "resources/templates/list":
            return {"resourceTemplates": []}

        if method == "resources/read":
            uri = params.get("uri")
            if not isinstance(uri, str) or not uri:
                raise InvalidRequest("resources/read requires a 'uri'")
            return await self.read_resource(uri)

        raise MethodNotFound(method or "")

    async def call_tool(self, name: str, arguments: Any) -> CallToolResult:
        """Validate arguments and invoke a tool.

        Raises:
            UnknownTool: If no tool has that name
            InvalidInput: If the arguments do not match the input model
        """
        descriptor = self.catalog.get_tool(name)

        try:
            validated = descriptor.input_model.model_validate(arguments)
        except ValidationError as e:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            raise InvalidInput(name, errors) from e

        if descriptor.timeout:
            result = await asyncio.wait_for(descriptor.handler(validated), descriptor.timeout)
        else:
            result = await descriptor.handler(validated)

        if isinstance(result, CallToolResult):
            return result
        return CallToolResult.text(result if isinstance(result, str) else str(result))

    async def read_resource(self, uri: str) -> ReadResourceResult:
        """Invoke the resource handler matching ``uri``.

        Raises:
            UnknownResource: If no registered resource matches
        """
        descriptor = self.catalog.match_resource(uri)
        result = await descriptor.handler(uri)
        if isinstance(result, ReadResourceResult):
            return result
        return ReadResourceResult(
            contents=[TextResourceContents(uri=uri, mimeType=descriptor.mime_type, text=result)]
        )
