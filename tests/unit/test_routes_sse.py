"""Unit tests for the SSE endpoints, driven with mocked requests."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from openkm_gateway.config import GatewayConfig
from openkm_gateway.protocol import ProtocolEngine
from openkm_gateway.routes.sse import open_stream, post_message
from openkm_gateway.transport import SSEChannel, TransportRegistry


@pytest.fixture
def registry() -> TransportRegistry:
    return TransportRegistry()


@pytest.fixture
def engine() -> MagicMock:
    return MagicMock(spec=ProtocolEngine)


def make_request(
    registry: TransportRegistry,
    engine: Any,
    config: GatewayConfig,
    *,
    session_id: str | None = None,
    body: bytes = b"",
    root_path: str = "",
) -> MagicMock:
    request = MagicMock()
    request.app.state.registry = registry
    request.app.state.engine = engine
    request.app.state.config = config
    request.scope = {"root_path": root_path}
    request.query_params = {} if session_id is None else {"sessionId": session_id}
    request.body = AsyncMock(return_value=body)
    return request


class TestOpenStream:
    @pytest.mark.asyncio
    async def test_registers_and_attaches_channel(
        self, registry: TransportRegistry, engine: MagicMock, config: GatewayConfig
    ) -> None:
        response = await open_stream(make_request(registry, engine, config))

        assert response.media_type == "text/event-stream"
        assert len(registry) == 1
        channel = registry.lookup(registry.session_ids()[0])
        engine.attach.assert_called_once_with(channel)
        assert channel.heartbeat_interval == config.heartbeat_interval
        channel.close()

    @pytest.mark.asyncio
    async def test_endpoint_respects_root_path(
        self, registry: TransportRegistry, engine: MagicMock, config: GatewayConfig
    ) -> None:
        await open_stream(make_request(registry, engine, config, root_path="/gateway"))

        channel = registry.lookup(registry.session_ids()[0])
        assert channel.endpoint_url.startswith("/gateway/messages?sessionId=")
        channel.close()


class TestPostMessage:
    @pytest.mark.asyncio
    async def test_unknown_session(
        self, registry: TransportRegistry, engine: MagicMock, config: GatewayConfig
    ) -> None:
        request = make_request(registry, engine, config, session_id="nope", body=b"{}")

        response = await post_message(request)

        assert response.status_code == 400
        assert response.body == b"No transport found for sessionId: nope"
        request.body.assert_not_called()
        engine.assert_not_called()
        assert engine.method_calls == []

    @pytest.mark.asyncio
    async def test_missing_session_id(
        self, registry: TransportRegistry, engine: MagicMock, config: GatewayConfig
    ) -> None:
        response = await post_message(make_request(registry, engine, config))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_json(
        self, registry: TransportRegistry, engine: MagicMock, config: GatewayConfig
    ) -> None:
        channel = SSEChannel()
        session_id = registry.open(channel)

        response = await post_message(
            make_request(registry, engine, config, session_id=session_id, body=b"{not json")
        )

        assert response.status_code == 400
        assert channel._inbound.empty()

    @pytest.mark.asyncio
    async def test_accepted_and_queued(
        self, registry: TransportRegistry, engine: MagicMock, config: GatewayConfig
    ) -> None:
        channel = SSEChannel()
        session_id = registry.open(channel)
        message = {"jsonrpc": "2.0", "id": 1, "method": "ping"}

        response = await post_message(
            make_request(
                registry, engine, config, session_id=session_id, body=json.dumps(message).encode()
            )
        )

        assert response.status_code == 202
        assert channel._inbound.get_nowait() == message

    @pytest.mark.asyncio
    async def test_closed_session(
        self, registry: TransportRegistry, engine: MagicMock, config: GatewayConfig
    ) -> None:
        channel = SSEChannel()
        session_id = registry.open(channel)
        channel.close()

        response = await post_message(
            make_request(registry, engine, config, session_id=session_id, body=b"{}")
        )

        assert response.status_code == 400
