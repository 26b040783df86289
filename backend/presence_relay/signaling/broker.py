"""Signaling broker: point-to-point forwarding of call-setup metadata.

Each operation looks the target user up in the presence registry and, if
they are online, forwards the payload to their channel once. There is no
retry, no acknowledgment and no call-session state; ringing/active/ended
is entirely up to the clients.

An offline target is not an error. The signal is logged and dropped, and
the sender is told nothing.
"""
import logging
from typing import Any, Optional

from pydantic import ValidationError

from presence_relay.channels.hub import ChannelHub, hub
from presence_relay.events import ServerEvent, validation_message
from presence_relay.presence.lifecycle import ConnectionLifecycleController, lifecycle
from presence_relay.presence.registry import PresenceRegistry, registry

from .schemas import CallSignal, IceCandidate, SignalEnvelope, SignalKind

logger = logging.getLogger(__name__)


class SignalingBroker:
    """Stateless offer/answer/candidate relay keyed by userId."""

    def __init__(
        self,
        presence: PresenceRegistry,
        channels: ChannelHub,
        connections: ConnectionLifecycleController,
    ) -> None:
        self.presence = presence
        self.channels = channels
        self.connections = connections

    async def call_user(self, channel_id: str, payload: Any) -> bool:
        """Forward an offer as ``incoming-call`` to the callee."""
        return await self._relay_call(channel_id, payload, SignalKind.OFFER)

    async def answer_made(self, channel_id: str, payload: Any) -> bool:
        """Forward an answer as ``call-accepted`` to the caller."""
        return await self._relay_call(channel_id, payload, SignalKind.ANSWER)

    async def ice_candidate(self, channel_id: str, payload: Any) -> bool:
        """Forward an ICE candidate, stamped with the sender's own userId."""
        try:
            request = IceCandidate.model_validate(payload)
        except ValidationError as exc:
            await self._reject(channel_id, exc, "ice-candidate")
            return False

        envelope = SignalEnvelope(
            to=request.to,
            from_=self.connections.user_of(channel_id),
            kind=SignalKind.CANDIDATE,
            payload=request.candidate,
        )
        return await self._forward(envelope)

    async def _relay_call(self, channel_id: str, payload: Any, kind: SignalKind) -> bool:
        try:
            request = CallSignal.model_validate(payload)
        except ValidationError as exc:
            event = "call-user" if kind == SignalKind.OFFER else "answer-made"
            await self._reject(channel_id, exc, event)
            return False

        envelope = SignalEnvelope(
            to=request.to,
            from_=request.from_ or self.connections.user_of(channel_id),
            kind=kind,
            payload=request.signal,
        )
        return await self._forward(envelope)

    async def _forward(self, envelope: SignalEnvelope) -> bool:
        target_channel: Optional[str] = self.presence.lookup_channel(envelope.to)
        if target_channel is None:
            logger.info(
                f"[Signal] Dropped {envelope.kind.value} from {envelope.from_}: "
                f"user {envelope.to} is offline"
            )
            return False

        if envelope.kind == SignalKind.CANDIDATE:
            event = ServerEvent.ICE_CANDIDATE
            data = {"from": envelope.from_, "candidate": envelope.payload}
        else:
            event = (
                ServerEvent.INCOMING_CALL if envelope.kind == SignalKind.OFFER
                else ServerEvent.CALL_ACCEPTED
            )
            data = {"from": envelope.from_, "signal": envelope.payload}

        logger.debug(
            f"[Signal] {envelope.kind.value} {envelope.from_} -> {envelope.to} "
            f"({target_channel})"
        )
        await self.channels.send_to_channel(target_channel, event, data)
        return True

    async def _reject(self, channel_id: str, exc: ValidationError, event: str) -> None:
        message = validation_message(exc)
        logger.warning(f"[Signal] Rejected {event} from {channel_id}: {message}")
        await self.channels.send_to_channel(
            channel_id, ServerEvent.ERROR, {"message": message}
        )


# Global singleton instance
broker = SignalingBroker(registry, hub, lifecycle)
