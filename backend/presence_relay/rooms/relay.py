"""Room relay: conversation-scoped fan-out of chat, typing and read events.

A room is just a hub group named after the conversation id. The relay keeps
no state of its own; it validates each payload, then forwards it to the
group, excluding the sender.

Malformed payloads never raise. The sender gets exactly one ``error`` event
and nothing is forwarded.
"""
import logging
from typing import Any, Optional

from pydantic import ValidationError

from presence_relay.channels.hub import ChannelHub, hub
from presence_relay.events import ServerEvent, validation_message
from presence_relay.presence.lifecycle import ConnectionLifecycleController, lifecycle

from .schemas import ConversationRef, OutgoingMessage, ReadReceipt, TypingNotice

logger = logging.getLogger(__name__)


class RoomRelay:
    """Stateless relay over hub groups."""

    def __init__(self, connections: ConnectionLifecycleController, channels: ChannelHub) -> None:
        self.connections = connections
        self.channels = channels

    async def _reject(self, channel_id: str, exc: ValidationError, event: str) -> None:
        message = validation_message(exc)
        logger.warning(f"[Room] Rejected {event} from {channel_id}: {message}")
        await self.channels.send_to_channel(
            channel_id, ServerEvent.ERROR, {"message": message}
        )

    async def join_conversation(self, channel_id: str, payload: Any) -> Optional[str]:
        """Join the sender to a conversation group."""
        try:
            ref = ConversationRef.parse(payload)
        except ValidationError as exc:
            await self._reject(channel_id, exc, "joinConversation")
            return None

        self.channels.join(channel_id, ref.conversationId)
        logger.info(
            f"[Room] User {self.connections.user_of(channel_id)} ({channel_id}) "
            f"joined conversation: {ref.conversationId}"
        )
        return ref.conversationId

    async def leave_conversation(self, channel_id: str, payload: Any) -> Optional[str]:
        """Remove the sender from a conversation group."""
        try:
            ref = ConversationRef.parse(payload)
        except ValidationError as exc:
            await self._reject(channel_id, exc, "leaveConversation")
            return None

        self.channels.leave(channel_id, ref.conversationId)
        logger.info(f"[Room] Channel {channel_id} left conversation: {ref.conversationId}")
        return ref.conversationId

    async def send_message(self, channel_id: str, payload: Any) -> bool:
        """Relay ``newMessage`` to everyone else in the message's conversation.

        The client payload is forwarded as-is so client-defined fields
        (text, attachments, client ids) survive the hop.

        Returns:
            True if the message was relayed.
        """
        try:
            message = OutgoingMessage.model_validate(payload)
        except ValidationError as exc:
            await self._reject(channel_id, exc, "sendMessage")
            return False

        logger.info(
            f"[Room] Relaying message from {self.connections.user_of(channel_id)} "
            f"to conversation: {message.conversationId}"
        )
        await self.channels.send_to_group(
            message.conversationId,
            ServerEvent.NEW_MESSAGE,
            payload,
            exclude_channel_id=channel_id,
        )
        return True

    async def message_read(self, channel_id: str, payload: Any) -> bool:
        try:
            receipt = ReadReceipt.model_validate(payload)
        except ValidationError as exc:
            await self._reject(channel_id, exc, "messageRead")
            return False

        await self.channels.send_to_group(
            receipt.conversationId,
            ServerEvent.MESSAGE_READ,
            receipt.model_dump(),
            exclude_channel_id=channel_id,
        )
        return True

    async def start_typing(self, channel_id: str, payload: Any) -> bool:
        return await self._typing(channel_id, payload, ServerEvent.START_TYPING)

    async def stop_typing(self, channel_id: str, payload: Any) -> bool:
        return await self._typing(channel_id, payload, ServerEvent.STOP_TYPING)

    async def _typing(self, channel_id: str, payload: Any, event: ServerEvent) -> bool:
        try:
            notice = TypingNotice.model_validate(payload)
        except ValidationError as exc:
            await self._reject(channel_id, exc, event.value)
            return False

        user_id = notice.userId or self.connections.user_of(channel_id)
        logger.debug(
            f"[Room] {event.value} from {user_id} in conversation: {notice.conversationId}"
        )
        await self.channels.send_to_group(
            notice.conversationId,
            event,
            {"conversationId": notice.conversationId, "userId": user_id},
            exclude_channel_id=channel_id,
        )
        return True


# Global singleton instance
room_relay = RoomRelay(lifecycle, hub)
