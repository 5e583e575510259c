"""Transport abstraction base classes.

Defines the channel interface the protocol engine talks to, so the SSE
channel can be swapped (or faked in tests) without touching dispatch.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator, Callable
from typing import Any, Protocol, runtime_checkable

CloseCallback = Callable[[], None]


def new_session_id() -> str:
    """Generate an opaque session identifier."""
    return uuid.uuid4().hex


@runtime_checkable
class Channel(Protocol):
    """One client's bidirectional link.

    Implementations:
    - SSEChannel: server-to-client Server-Sent Events, client-to-server
      messages delivered out-of-band by POST requests
    """

    session_id: str

    @property
    def closed(self) -> bool:
        """Whether the underlying connection is gone."""
        ...

    async def send(self, event: dict[str, Any] | list[dict[str, Any]]) -> None:
        """Write one protocol frame to the client. Raises ChannelClosed."""
        ...

    def receive(self, raw: Any) -> None:
        """Accept one decoded inbound payload. Raises ChannelClosed."""
        ...

    def messages(self) -> AsyncIterator[Any]:
        """Iterate over inbound payloads in arrival order."""
        ...

    def on_close(self, callback: CloseCallback) -> None:
        """Register a callback fired exactly once when the channel closes."""
        ...

    def close(self) -> None:
        """Close the channel. Idempotent."""
        ...
