"""MCP over SSE endpoints.

- GET /sse - opens a session; streams server-to-client messages
- POST /messages?sessionId=<id> - delivers one client message to a session

The result of a posted message is not in the POST response: the POST is
answered 202 as soon as the message is queued, and the JSON-RPC response
arrives later on the session's event stream.
"""

from __future__ import annotations

import json
import logging

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from ..errors import ChannelClosed, UnknownSession
from ..protocol import ProtocolEngine
from ..transport import SSEChannel, TransportRegistry

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/messages"


async def open_stream(request: Request) -> Response:
    """Open a session and stream its events until the client disconnects."""
    registry: TransportRegistry = request.app.state.registry
    engine: ProtocolEngine = request.app.state.engine
    config = request.app.state.config

    endpoint = f"{request.scope.get('root_path', '')}{MESSAGES_PATH}"
    channel = SSEChannel(endpoint, heartbeat_interval=config.heartbeat_interval)
    registry.open(channel)
    engine.attach(channel)

    return channel.response(request)


async def post_message(request: Request) -> Response:
    """Forward one posted JSON-RPC message to its session's channel."""
    registry: TransportRegistry = request.app.state.registry

    session_id = request.query_params.get("sessionId")
    channel = registry.lookup(session_id)
    if channel is None:
        logger.info(f"Rejected message for unknown session {session_id!r}")
        return PlainTextResponse(str(UnknownSession(session_id)), status_code=400)

    body = await request.body()
    try:
        raw = json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return PlainTextResponse(f"Invalid message: {e}", status_code=400)

    try:
        channel.receive(raw)
    except ChannelClosed:
        # Closed between lookup and delivery
        return PlainTextResponse(str(UnknownSession(session_id)), status_code=400)

    return PlainTextResponse("Accepted", status_code=202)


sse_routes = [
    Route("/sse", open_stream, methods=["GET"]),
    Route(MESSAGES_PATH, post_message, methods=["POST"]),
]
