"""Transport layer.

Session-multiplexed streaming transport:
- SSEChannel - one Server-Sent Events stream per client connection
- TransportRegistry - session id to live channel

The protocol engine only depends on the Channel protocol, so other
transports can be added without changing dispatch.
"""

from .base import Channel, CloseCallback, new_session_id
from .registry import TransportRegistry
from .sse import SSEChannel, SSEFrame

__all__ = [
    "Channel",
    "CloseCallback",
    "new_session_id",
    "SSEChannel",
    "SSEFrame",
    "TransportRegistry",
]
