"""Server-Sent Events channel.

One SSEChannel per ``GET /sse`` connection. Outbound frames flow through
an asyncio queue drained by the streaming response; inbound messages
arrive separately via ``POST /messages?sessionId=...`` and are queued for
the protocol engine.

Wire format:
    event: endpoint
    data: /messages?sessionId=<id>

    event: message
    data: {"jsonrpc": "2.0", ...}

    : ping
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from starlette.requests import Request
from starlette.responses import StreamingResponse

from ..errors import ChannelClosed
from .base import CloseCallback, new_session_id

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}

_END_OF_STREAM = object()


@dataclass
class SSEFrame:
    """A single Server-Sent Events frame."""

    event: str
    data: str

    def encode(self) -> str:
        lines = self.data.splitlines() or [""]
        body = "".join(f"data: {line}\n" for line in lines)
        return f"event: {self.event}\n{body}\n"


class SSEChannel:
    """Server-side SSE channel bound to one client connection.

    Lifecycle:
    - Created by the open-stream endpoint, which registers it and attaches
      the protocol engine
    - ``event_stream()`` drives the HTTP response until the client goes away
    - ``close()`` runs exactly once, from the stream's ``finally`` or on
      server shutdown, and fires the close callbacks
    """

    def __init__(
        self,
        endpoint: str = "/messages",
        *,
        session_id: str | None = None,
        heartbeat_interval: float = 15.0,
        poll_interval: float = 1.0,
    ) -> None:
        self.endpoint = endpoint
        self.session_id = session_id or new_session_id()
        self.heartbeat_interval = heartbeat_interval
        self.poll_interval = poll_interval

        self._outbound: asyncio.Queue[Any] = asyncio.Queue()
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._close_callbacks: list[CloseCallback] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def endpoint_url(self) -> str:
        """URL the client must POST messages to."""
        separator = "&" if "?" in self.endpoint else "?"
        return f"{self.endpoint}{separator}sessionId={self.session_id}"

    # =========================================================================
    # Outbound (server -> client)
    # =========================================================================

    async def send(self, event: dict[str, Any] | list[dict[str, Any]]) -> None:
        """Queue one JSON-RPC message (or batch response) for delivery to the client.

        Raises:
            ChannelClosed: If the connection is already gone
        """
        if self._closed:
            raise ChannelClosed(self.session_id)
        self._outbound.put_nowait(SSEFrame(event="message", data=json.dumps(event)))

    async def event_stream(self, request: Request) -> AsyncIterator[str]:
        """Generate SSE frames until the client disconnects or the channel closes."""
        loop = asyncio.get_running_loop()
        try:
            yield SSEFrame(event="endpoint", data=self.endpoint_url).encode()
            last_write = loop.time()

            while not self._closed:
                if await request.is_disconnected():
                    logger.debug(f"Client for session {self.session_id} disconnected")
                    break

                try:
                    frame = await asyncio.wait_for(
                        self._outbound.get(), timeout=self.poll_interval
                    )
                except TimeoutError:
                    if loop.time() - last_write >= self.heartbeat_interval:
                        last_write = loop.time()
                        yield ": ping\n\n"
                    continue

                if frame is _END_OF_STREAM:
                    break

                last_write = loop.time()
                yield frame.encode()
        finally:
            self.close()

    def response(self, request: Request) -> StreamingResponse:
        """Wrap the event stream in a Starlette streaming response."""
        return StreamingResponse(
            self.event_stream(request),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    # =========================================================================
    # Inbound (client -> server)
    # =========================================================================

    def receive(self, raw: Any) -> None:
        """Accept one decoded message posted by the client.

        Raises:
            ChannelClosed: If the connection is already gone
        """
        if self._closed:
            raise ChannelClosed(self.session_id)
        self._inbound.put_nowait(raw)

    async def messages(self) -> AsyncIterator[Any]:
        """Yield inbound messages one at a time, in arrival order."""
        while True:
            raw = await self._inbound.get()
            if raw is _END_OF_STREAM:
                return
            yield raw

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def on_close(self, callback: CloseCallback) -> None:
        """Register a callback for channel closure.

        Callbacks registered after the channel closed are invoked at once.
        """
        if self._closed:
            callback()
            return
        self._close_callbacks.append(callback)

    def close(self) -> None:
        """Close the channel and notify observers. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._outbound.put_nowait(_END_OF_STREAM)
        self._inbound.put_nowait(_END_OF_STREAM)

        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception(f"Error in close callback for session {self.session_id}")
