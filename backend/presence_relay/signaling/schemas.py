"""Payload schemas for call-setup signaling."""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SignalKind(str, Enum):
    OFFER = "offer"
    ANSWER = "answer"
    CANDIDATE = "candidate"


class CallSignal(BaseModel):
    """Payload of call-user and answer-made."""
    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(..., min_length=1, description="Target userId")
    from_: Optional[str] = Field(default=None, alias="from", description="Caller userId")
    signal: Any = Field(..., description="Opaque SDP/offer/answer blob")


class IceCandidate(BaseModel):
    to: str = Field(..., min_length=1, description="Target userId")
    candidate: Any = Field(..., description="Opaque ICE candidate")


class SignalEnvelope(BaseModel):
    """A signal resolved for forwarding. Never stored."""
    model_config = ConfigDict(populate_by_name=True)

    to: str
    from_: Optional[str] = Field(default=None, alias="from")
    kind: SignalKind
    payload: Any = None
