"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from openkm_gateway.config import GatewayConfig
from openkm_gateway.transport import SSEChannel, SSEFrame

OPENKM_URL = "http://okm.test/OpenKM/services/rest"


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def config() -> GatewayConfig:
    """Gateway configuration pointing at a fake OpenKM host."""
    return GatewayConfig(openkm_url=OPENKM_URL, timeout=5.0, format_converters={})


@pytest.fixture
def read_message() -> Callable[..., Awaitable[dict[str, Any]]]:
    """Return a helper that pops the next JSON-RPC message queued on a channel."""

    async def _read(channel: SSEChannel, timeout: float = 2.0) -> dict[str, Any]:
        frame = await asyncio.wait_for(channel._outbound.get(), timeout=timeout)
        assert frame.event == "message"
        return json.loads(frame.data)

    return _read


@pytest.fixture
def sent_messages() -> Callable[[SSEChannel], list[Any]]:
    """Return a helper that empties a channel's outbound queue and returns the message payloads.

    The end-of-stream marker a closed channel leaves behind is skipped.
    """

    def _drain(channel: SSEChannel) -> list[Any]:
        payloads = []
        while not channel._outbound.empty():
            frame = channel._outbound.get_nowait()
            if isinstance(frame, SSEFrame):
                payloads.append(json.loads(frame.data))
        return payloads

    return _drain
