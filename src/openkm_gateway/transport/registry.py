"""Transport registry - session id to live channel.

The single authoritative place resolving a session id to its channel,
shared by the open-stream and post-message endpoints. Every method is a
plain synchronous dict operation, so under asyncio no other task can
observe a half-updated map.
"""

from __future__ import annotations

import logging

from .base import Channel, new_session_id

logger = logging.getLogger(__name__)


class TransportRegistry:
    """Owns the mapping from session id to open channel."""

    def __init__(self) -> None:
        self._channels: dict[str, Channel] = {}

    def open(self, channel: Channel) -> str:
        """Register a channel under a session id no live channel uses.

        The channel's entry is removed automatically when it closes.

        Returns:
            The session id the channel is bound to
        """
        while channel.session_id in self._channels:
            logger.warning(f"Session id collision on {channel.session_id}, drawing a new one")
            channel.session_id = new_session_id()

        session_id = channel.session_id
        self._channels[session_id] = channel
        channel.on_close(lambda: self.close(session_id))
        logger.info(f"Session opened: {session_id} ({len(self._channels)} live)")
        return session_id

    def lookup(self, session_id: str | None) -> Channel | None:
        """Resolve a session id, or None if no live channel has it."""
        if not session_id:
            return None
        return self._channels.get(session_id)

    def close(self, session_id: str) -> None:
        """Remove a session and close its channel. Unknown ids are ignored."""
        channel = self._channels.pop(session_id, None)
        if channel is None:
            return
        logger.info(f"Session closed: {session_id} ({len(self._channels)} live)")
        channel.close()

    def close_all(self) -> int:
        """Close every live session (server shutdown).

        Returns:
            Number of sessions that were closed
        """
        session_ids = list(self._channels)
        for session_id in session_ids:
            self.close(session_id)
        return len(session_ids)

    def session_ids(self) -> list[str]:
        return list(self._channels)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._channels

    def __len__(self) -> int:
        return len(self._channels)
