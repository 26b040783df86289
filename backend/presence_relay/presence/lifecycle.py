"""Connection lifecycle: what happens when a channel opens and closes.

On open:
    1. If the client supplied a userId, bind it in the presence registry
    2. Broadcast ``userOnline`` to every other channel
    3. Send the full roster (``onlineUsersList``) to the new channel only

    Without a userId the channel stays anonymous. It is never rejected and
    can still join rooms and relay messages.

On close (any reason, at most once per channel):
    1. Emit ``user-left-room`` to each room the channel had joined
    2. Deregister the channel
    3. If that removed a user, broadcast ``userOffline``
"""
import logging
from typing import Dict, Optional

from presence_relay.channels.hub import ChannelHub, hub
from presence_relay.events import ServerEvent

from .registry import PresenceRegistry, registry
from .schemas import ChannelState

logger = logging.getLogger(__name__)


def normalize_user_id(raw: Optional[str]) -> Optional[str]:
    """Return a usable userId or None for absent/blank values."""
    if not isinstance(raw, str):
        return None
    raw = raw.strip()
    return raw or None


class ConnectionLifecycleController:
    """Drives each channel through CONNECTING -> REGISTERED/ANONYMOUS -> CLOSED."""

    def __init__(self, presence: PresenceRegistry, channels: ChannelHub) -> None:
        self.presence = presence
        self.channels = channels
        self.states: Dict[str, ChannelState] = {}

        # channelId -> userId from the handshake. Unlike the registry this
        # survives a newer tab taking over the user's presence.
        self.user_ids: Dict[str, str] = {}

    def state_of(self, channel_id: str) -> ChannelState:
        return self.states.get(channel_id, ChannelState.CLOSED)

    def user_of(self, channel_id: str) -> Optional[str]:
        """The userId a channel connected as, or None if it is anonymous."""
        return self.user_ids.get(channel_id)

    async def open(self, channel_id: str, raw_user_id: Optional[str]) -> Optional[str]:
        """Handle a freshly accepted channel.

        Args:
            channel_id: Channel id assigned by the hub.
            raw_user_id: userId from the handshake query, possibly missing.

        Returns:
            The registered userId, or None for an anonymous channel.
        """
        self.states[channel_id] = ChannelState.CONNECTING
        self.channels.on_close(channel_id, self.close)

        user_id = normalize_user_id(raw_user_id)
        if user_id is None:
            self.states[channel_id] = ChannelState.ANONYMOUS
            logger.info(f"[Presence] Channel {channel_id} connected without a userId")
            return None

        self.presence.register(user_id, channel_id)
        self.user_ids[channel_id] = user_id
        self.states[channel_id] = ChannelState.REGISTERED
        logger.info(f"[Presence] User {user_id} is now online ({channel_id})")

        await self.channels.broadcast(
            ServerEvent.USER_ONLINE, user_id, exclude_channel_id=channel_id
        )
        await self.send_roster(channel_id)
        return user_id

    async def send_roster(self, channel_id: str) -> None:
        """Send the current online roster to one channel."""
        await self.channels.send_to_channel(
            channel_id,
            ServerEvent.ONLINE_USERS_LIST,
            self.presence.snapshot_user_ids(),
        )

    async def close(self, channel_id: str, reason: Optional[str] = None) -> Optional[str]:
        """Clean up after a channel. Repeated calls for one channel are no-ops.

        Returns:
            The userId that went offline, or None.
        """
        state = self.states.pop(channel_id, None)
        if state is None:
            return None

        logger.info(f"[Presence] Channel {channel_id} disconnected. Reason: {reason}")

        user_id = self.user_ids.pop(channel_id, None)
        for room in self.channels.groups_of(channel_id):
            await self.channels.send_to_group(
                room,
                ServerEvent.USER_LEFT_ROOM,
                {"userId": user_id, "room": room},
            )

        offline_user = self.presence.deregister(channel_id)
        if offline_user is None:
            if state == ChannelState.REGISTERED:
                logger.debug(
                    f"[Presence] Channel {channel_id} was superseded; presence kept"
                )
            return None

        logger.info(f"[Presence] User {offline_user} is now offline.")
        await self.channels.broadcast(
            ServerEvent.USER_OFFLINE, offline_user, exclude_channel_id=channel_id
        )
        return offline_user


# Global singleton instance
lifecycle = ConnectionLifecycleController(registry, hub)
