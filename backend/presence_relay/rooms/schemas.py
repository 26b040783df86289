"""Payload schemas for room (conversation) events."""
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConversationRef(BaseModel):
    """Payload of joinConversation / leaveConversation."""
    conversationId: str = Field(..., min_length=1, description="Conversation (room) id")

    @classmethod
    def parse(cls, payload: Any) -> "ConversationRef":
        # Clients may send the bare id instead of an object.
        if isinstance(payload, str):
            payload = {"conversationId": payload}
        return cls.model_validate(payload)


class OutgoingMessage(BaseModel):
    """Chat message sent by a client. Any extra fields are relayed untouched."""
    model_config = ConfigDict(extra="allow")

    conversationId: str = Field(..., min_length=1)


class ReadReceipt(BaseModel):
    conversationId: str = Field(..., min_length=1)
    userId: str = Field(..., min_length=1)
    messageIds: List[str] = Field(..., description="Ids of the messages that were read")


class TypingNotice(BaseModel):
    conversationId: str = Field(..., min_length=1)
    userId: Optional[str] = Field(
        default=None,
        description="Typing user; defaults to the sender's registered id"
    )
