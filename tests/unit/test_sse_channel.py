"""Unit tests for the SSE channel.

Tests the channel lifecycle, inbound queueing and the frame generator
driven by a mocked Starlette request.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from openkm_gateway.errors import ChannelClosed
from openkm_gateway.transport import SSEChannel, SSEFrame


def make_request(*disconnected: bool) -> MagicMock:
    """Mock request whose is_disconnected() answers in the given order."""
    request = MagicMock()
    request.is_disconnected = AsyncMock(side_effect=list(disconnected))
    return request


async def collect(channel: SSEChannel, request: MagicMock) -> list[str]:
    return [frame async for frame in channel.event_stream(request)]


# =============================================================================
# SSEFrame
# =============================================================================


class TestSSEFrame:
    """Tests for frame encoding."""

    def test_encode_single_line(self) -> None:
        frame = SSEFrame(event="message", data='{"a": 1}')
        assert frame.encode() == 'event: message\ndata: {"a": 1}\n\n'

    def test_encode_multiline_data(self) -> None:
        frame = SSEFrame(event="message", data="one\ntwo")
        assert frame.encode() == "event: message\ndata: one\ndata: two\n\n"

    def test_encode_empty_data(self) -> None:
        assert SSEFrame(event="x", data="").encode() == "event: x\ndata: \n\n"


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    def test_generates_session_id(self) -> None:
        a, b = SSEChannel(), SSEChannel()
        assert a.session_id and b.session_id
        assert a.session_id != b.session_id

    def test_endpoint_url_carries_session_id(self) -> None:
        channel = SSEChannel("/messages", session_id="abc")
        assert channel.endpoint_url == "/messages?sessionId=abc"

    def test_endpoint_url_with_existing_query(self) -> None:
        channel = SSEChannel("/messages?v=1", session_id="abc")
        assert channel.endpoint_url == "/messages?v=1&sessionId=abc"


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Tests for close semantics."""

    def test_on_close_fires_once(self) -> None:
        channel = SSEChannel()
        callback = MagicMock()
        channel.on_close(callback)

        channel.close()
        channel.close()

        callback.assert_called_once_with()

    def test_on_close_after_close_fires_immediately(self) -> None:
        channel = SSEChannel()
        channel.close()
        callback = MagicMock()

        channel.on_close(callback)

        callback.assert_called_once_with()

    def test_failing_callback_does_not_block_others(self) -> None:
        channel = SSEChannel()
        second = MagicMock()
        channel.on_close(MagicMock(side_effect=RuntimeError("boom")))
        channel.on_close(second)

        channel.close()

        second.assert_called_once_with()
        assert channel.closed

    @pytest.mark.asyncio
    async def test_send_after_close_raises(self) -> None:
        channel = SSEChannel()
        channel.close()

        with pytest.raises(ChannelClosed):
            await channel.send({"jsonrpc": "2.0", "id": 1, "result": {}})

    def test_receive_after_close_raises(self) -> None:
        channel = SSEChannel()
        channel.close()

        with pytest.raises(ChannelClosed):
            channel.receive({"jsonrpc": "2.0", "method": "ping", "id": 1})


# =============================================================================
# Inbound
# =============================================================================


class TestInbound:
    @pytest.mark.asyncio
    async def test_messages_in_arrival_order_until_close(self) -> None:
        channel = SSEChannel()
        channel.receive({"id": 1})
        channel.receive({"id": 2})
        channel.receive({"id": 3})
        channel.close()

        received = [m async for m in channel.messages()]

        assert [m["id"] for m in received] == [1, 2, 3]


# =============================================================================
# Event stream
# =============================================================================


class TestEventStream:
    """Tests for the SSE frame generator."""

    @pytest.mark.asyncio
    async def test_first_frame_is_endpoint(self) -> None:
        channel = SSEChannel("/messages", session_id="s1")
        request = make_request(True)

        frames = await collect(channel, request)

        assert frames == ["event: endpoint\ndata: /messages?sessionId=s1\n\n"]

    @pytest.mark.asyncio
    async def test_streams_sent_messages(self) -> None:
        channel = SSEChannel()
        await channel.send({"jsonrpc": "2.0", "id": 7, "result": {}})
        request = make_request(False, True)

        frames = await collect(channel, request)

        assert len(frames) == 2
        assert frames[1].startswith("event: message\ndata: ")
        payload = json.loads(frames[1].split("data: ", 1)[1])
        assert payload["id"] == 7

    @pytest.mark.asyncio
    async def test_disconnect_closes_channel(self) -> None:
        channel = SSEChannel()
        callback = MagicMock()
        channel.on_close(callback)

        await collect(channel, make_request(True))

        assert channel.closed
        callback.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_stream_ends_when_channel_closed(self) -> None:
        channel = SSEChannel()
        channel.close()
        request = make_request(False, False, False)

        frames = await collect(channel, request)

        assert len(frames) == 1  # endpoint only

    @pytest.mark.asyncio
    async def test_heartbeat_when_idle(self) -> None:
        channel = SSEChannel(heartbeat_interval=0.0, poll_interval=0.01)
        request = make_request(False, True)

        frames = await collect(channel, request)

        assert frames[1] == ": ping\n\n"

    @pytest.mark.asyncio
    async def test_abandoned_stream_closes_channel(self) -> None:
        """Closing the generator mid-stream (client gone) still closes the channel."""
        channel = SSEChannel()
        stream = channel.event_stream(make_request(False))

        await stream.__anext__()
        await stream.aclose()

        assert channel.closed

    @pytest.mark.asyncio
    async def test_response_is_event_stream(self) -> None:
        channel = SSEChannel()
        response = channel.response(make_request(True))

        assert response.media_type == "text/event-stream"
        assert response.headers["cache-control"] == "no-cache"
