"""In-memory presence registry.

The registry is the single source of truth for "who is online". It owns the
bidirectional mapping between user identifiers and channel ids and exposes it
only through the operations below, so the two directions never disagree.

Rules:
    - At most one entry per userId; a new registration replaces the old one
      (last writer wins). The replaced channel is not closed, it simply stops
      being the routing target for that user.
    - At most one userId per channel.
    - deregister() only removes an entry while it still points at the
      deregistering channel, so a late disconnect from a replaced channel
      can never evict the newer connection.

Thread Safety:
    All operations are plain dict updates executed on the event loop and are
    therefore atomic relative to each other. NOT thread-safe.
"""
import logging
from typing import Dict, List, Optional

from .schemas import PresenceEntry

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """Bidirectional userId <-> channelId map with last-writer-wins semantics."""

    def __init__(self) -> None:
        # userId -> entry; dict order is the roster order
        self._entries: Dict[str, PresenceEntry] = {}

        # channelId -> userId
        self._channel_users: Dict[str, str] = {}

    def register(self, user_id: str, channel_id: str) -> PresenceEntry:
        """Bind user_id to channel_id, replacing any previous binding.

        Args:
            user_id: Identifier supplied by the client.
            channel_id: Channel that should receive events for this user.

        Returns:
            The new PresenceEntry.
        """
        # A channel carries at most one user.
        previous_user = self._channel_users.get(channel_id)
        if previous_user is not None and previous_user != user_id:
            self._entries.pop(previous_user, None)
            logger.info(
                f"[Presence] Channel {channel_id} rebound from {previous_user} to {user_id}"
            )

        previous = self._entries.get(user_id)
        if previous is not None and previous.channelId != channel_id:
            self._channel_users.pop(previous.channelId, None)
            logger.info(
                f"[Presence] User {user_id} moved from channel {previous.channelId} "
                f"to {channel_id}"
            )

        entry = PresenceEntry(userId=user_id, channelId=channel_id)
        # Reassigning an existing key keeps the user's place in the roster.
        self._entries[user_id] = entry
        self._channel_users[channel_id] = user_id
        return entry

    def deregister(self, channel_id: str) -> Optional[str]:
        """Remove the binding held by channel_id.

        Returns:
            The userId that went offline, or None if the channel was not the
            current binding for any user.
        """
        user_id = self._channel_users.pop(channel_id, None)
        if user_id is None:
            logger.debug(f"[Presence] Channel {channel_id} had no current binding")
            return None

        entry = self._entries.get(user_id)
        if entry is None or entry.channelId != channel_id:
            return None

        del self._entries[user_id]
        return user_id

    def lookup_channel(self, user_id: str) -> Optional[str]:
        entry = self._entries.get(user_id)
        return entry.channelId if entry else None

    def user_for_channel(self, channel_id: str) -> Optional[str]:
        return self._channel_users.get(channel_id)

    def get_entry(self, user_id: str) -> Optional[PresenceEntry]:
        return self._entries.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return user_id in self._entries

    def snapshot_user_ids(self) -> List[str]:
        """Online userIds in registration order."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._channel_users.clear()

    def __len__(self) -> int:
        return len(self._entries)


# Global singleton instance
registry = PresenceRegistry()
