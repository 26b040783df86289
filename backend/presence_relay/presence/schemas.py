"""Schemas for presence tracking."""
import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PresenceStatus(str, Enum):
    ONLINE = "online"


class PresenceEntry(BaseModel):
    """One user's binding to the channel that currently routes to them.

    Entries are frozen: the registry replaces them instead of mutating.
    """
    model_config = ConfigDict(frozen=True)

    userId: str = Field(..., description="Client-supplied user identifier")
    channelId: str = Field(..., description="Channel currently bound to the user")
    status: PresenceStatus = Field(default=PresenceStatus.ONLINE)
    connectedAt: float = Field(
        default_factory=time.time,
        description="Timestamp in seconds since epoch"
    )


class ChannelState(str, Enum):
    """Lifecycle of a single channel.

    Attributes:
        CONNECTING: Accepted by the hub, not yet processed.
        REGISTERED: Bound to a userId in the presence registry.
        ANONYMOUS: Open without a userId; may still use rooms.
        CLOSED: Terminal.
    """
    CONNECTING = "connecting"
    REGISTERED = "registered"
    ANONYMOUS = "anonymous"
    CLOSED = "closed"
