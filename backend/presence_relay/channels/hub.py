"""Channel hub: the live-connection layer underneath presence and relay.

Every accepted WebSocket becomes a *channel* identified by an opaque
uuid4 string. Channels can join and leave named groups; a group is nothing
more than the set of channel ids currently joined to it and disappears as
soon as its last member leaves.

Outgoing frames have the shape ``{"event": <name>, "data": <payload>}``.

Delivery is best-effort and at-most-once:
    - Sending to an unknown or already closed channel is a silent no-op
    - A failed send is logged at debug level and the dead socket is dropped
    - Group sends and broadcasts fan out concurrently with asyncio.gather()

Thread Safety:
    Designed for a single event loop. NOT thread-safe.
"""
import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

CloseHandler = Callable[[str, Optional[str]], Awaitable[None]]


class ChannelHub:
    """Tracks live channels, their group membership and close handlers."""

    def __init__(self) -> None:
        # channel_id -> live WebSocket
        self.channels: Dict[str, WebSocket] = {}

        # group -> channel ids (only non-empty groups are kept)
        self.groups: Dict[str, Set[str]] = {}

        # channel_id -> groups it has joined
        self.channel_groups: Dict[str, Set[str]] = {}

        # channel_id -> handlers to run once on close
        self.close_handlers: Dict[str, List[CloseHandler]] = {}

    async def accept(self, websocket: WebSocket) -> str:
        """Accept a WebSocket and return its new channel id."""
        await websocket.accept()
        channel_id = str(uuid.uuid4())
        self.channels[channel_id] = websocket
        self.channel_groups[channel_id] = set()
        logger.debug("[Hub] Channel %s opened", channel_id)
        return channel_id

    def is_open(self, channel_id: str) -> bool:
        return channel_id in self.channels

    def channel_count(self) -> int:
        return len(self.channels)

    # =========================================================================
    # Groups
    # =========================================================================

    def join(self, channel_id: str, group: str) -> None:
        """Add a channel to a group. Joining twice is a no-op."""
        if channel_id not in self.channels:
            logger.debug("[Hub] Ignored join of %s by closed channel %s", group, channel_id)
            return
        self.groups.setdefault(group, set()).add(channel_id)
        self.channel_groups.setdefault(channel_id, set()).add(group)

    def leave(self, channel_id: str, group: str) -> None:
        """Remove a channel from a group. Leaving a non-joined group is a no-op."""
        members = self.groups.get(group)
        if members is not None:
            members.discard(channel_id)
            if not members:
                del self.groups[group]
        joined = self.channel_groups.get(channel_id)
        if joined is not None:
            joined.discard(group)

    def groups_of(self, channel_id: str) -> List[str]:
        """Groups a channel is currently joined to, sorted by name."""
        return sorted(self.channel_groups.get(channel_id, ()))

    def members(self, group: str) -> Set[str]:
        return set(self.groups.get(group, ()))

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_to_channel(self, channel_id: str, event: str, payload: Any) -> None:
        """Send one event to one channel; unknown channels are ignored."""
        websocket = self.channels.get(channel_id)
        if websocket is None:
            logger.debug("[Hub] Dropped %s for closed channel %s", event, channel_id)
            return
        if not await self._safe_send(websocket, _frame(event, payload)):
            self._drop_dead(channel_id)

    async def send_to_group(
        self,
        group: str,
        event: str,
        payload: Any,
        exclude_channel_id: Optional[str] = None,
    ) -> None:
        """Send an event to every live member of a group except one."""
        targets = [
            channel_id for channel_id in self.groups.get(group, ())
            if channel_id != exclude_channel_id
        ]
        await self._fan_out(targets, _frame(event, payload))

    async def broadcast(
        self, event: str, payload: Any, exclude_channel_id: Optional[str] = None
    ) -> None:
        """Send an event to every live channel except one."""
        targets = [
            channel_id for channel_id in self.channels
            if channel_id != exclude_channel_id
        ]
        await self._fan_out(targets, _frame(event, payload))

    async def _fan_out(self, channel_ids: List[str], frame: dict) -> None:
        pairs = [
            (channel_id, self.channels[channel_id])
            for channel_id in channel_ids
            if channel_id in self.channels
        ]
        if not pairs:
            return

        results = await asyncio.gather(
            *[self._safe_send(websocket, frame) for _, websocket in pairs],
            return_exceptions=True
        )

        for (channel_id, _), success in zip(pairs, results):
            if success is not True:
                self._drop_dead(channel_id)

    async def _safe_send(self, websocket: WebSocket, frame: dict) -> bool:
        """Send a frame, returning False instead of raising on failure."""
        try:
            await websocket.send_json(frame)
            return True
        except Exception as e:
            logger.debug(f"[Hub] Failed to send to connection: {e}")
            return False

    def _drop_dead(self, channel_id: str) -> None:
        # Group membership and close handlers stay until close() runs, so
        # the lifecycle cleanup still sees which rooms the channel was in.
        if self.channels.pop(channel_id, None) is not None:
            logger.debug(f"[Hub] Removed dead channel {channel_id}")

    # =========================================================================
    # Close handling
    # =========================================================================

    def on_close(self, channel_id: str, handler: CloseHandler) -> None:
        """Register a coroutine called once with (channel_id, reason) on close."""
        self.close_handlers.setdefault(channel_id, []).append(handler)

    async def close(self, channel_id: str, reason: Optional[str] = None) -> None:
        """Tear down a channel. Handlers run exactly once; repeat calls do nothing."""
        handlers = self.close_handlers.pop(channel_id, None)
        self.channels.pop(channel_id, None)

        for handler in handlers or ():
            try:
                await handler(channel_id, reason)
            except Exception:
                logger.exception("[Hub] Close handler failed for channel %s", channel_id)

        for group in list(self.channel_groups.get(channel_id, ())):
            self.leave(channel_id, group)
        self.channel_groups.pop(channel_id, None)

        if handlers is not None:
            logger.debug("[Hub] Channel %s closed (reason=%s)", channel_id, reason)

    async def shutdown(self) -> None:
        """Close every live socket with 1001 (going away)."""
        for channel_id, websocket in list(self.channels.items()):
            if websocket.client_state == WebSocketState.CONNECTED:
                try:
                    await websocket.close(code=1001)
                except Exception as e:
                    logger.debug(f"[Hub] Error closing channel {channel_id}: {e}")
            await self.close(channel_id, "server shutdown")

    def clear(self) -> None:
        """Forget every channel and group without notifying anyone."""
        self.channels.clear()
        self.groups.clear()
        self.channel_groups.clear()
        self.close_handlers.clear()


def _frame(event: str, payload: Any) -> dict:
    # Enum members go out as their plain value.
    return {"event": getattr(event, "value", event), "data": payload}


# Global singleton instance shared by the gateway and the core components
hub = ChannelHub()
