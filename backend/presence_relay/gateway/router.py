"""WebSocket gateway: accepts channels and dispatches client events.

Protocol Flow:
    1. Client connects to ``/ws?userId=<id>`` (userId optional)
       → Server broadcasts to others: {event: "userOnline", data: "<id>"}
       → Server sends: {event: "onlineUsersList", data: ["<id>", ...]}
    2. Client sends frames {event: "<name>", data: <payload>}
       → Dispatched through EVENT_HANDLERS by name
    3. Client disconnects
       → Rooms get {event: "user-left-room", data: {userId, room}}
       → Others get {event: "userOffline", data: "<id>"}

Bad frames (not JSON, not an object, unknown event) are answered with
{event: "error", data: {message}} and the connection stays open.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict

from fastapi import WebSocket, WebSocketDisconnect

from presence_relay.channels.hub import hub
from presence_relay.config import get_config
from presence_relay.events import ClientEvent, ServerEvent
from presence_relay.presence.lifecycle import lifecycle
from presence_relay.rooms.relay import room_relay
from presence_relay.signaling.broker import broker

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Any], Awaitable[Any]]


async def _request_online_users(channel_id: str, _data: Any) -> None:
    await lifecycle.send_roster(channel_id)


EVENT_HANDLERS: Dict[str, EventHandler] = {
    ClientEvent.JOIN_CONVERSATION.value: room_relay.join_conversation,
    ClientEvent.LEAVE_CONVERSATION.value: room_relay.leave_conversation,
    ClientEvent.SEND_MESSAGE.value: room_relay.send_message,
    ClientEvent.MESSAGE_READ.value: room_relay.message_read,
    ClientEvent.START_TYPING.value: room_relay.start_typing,
    ClientEvent.STOP_TYPING.value: room_relay.stop_typing,
    ClientEvent.REQUEST_ONLINE_USERS.value: _request_online_users,
    ClientEvent.CALL_USER.value: broker.call_user,
    ClientEvent.ANSWER_MADE.value: broker.answer_made,
    ClientEvent.ICE_CANDIDATE.value: broker.ice_candidate,
}


async def _send_error(channel_id: str, message: str) -> None:
    await hub.send_to_channel(channel_id, ServerEvent.ERROR, {"message": message})


async def dispatch(channel_id: str, raw: str) -> None:
    """Decode one frame and hand it to the matching handler."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        await _send_error(channel_id, "Invalid frame: not JSON")
        return

    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        await _send_error(channel_id, "Invalid frame: expected {event, data}")
        return

    event = frame["event"]
    handler = EVENT_HANDLERS.get(event)
    if handler is None:
        logger.warning(f"[WS] Unknown event '{event}' from {channel_id}")
        await _send_error(channel_id, f"Unknown event: {event}")
        return

    logger.debug("[WS] Channel %s received: event=%s", channel_id, event)
    try:
        await handler(channel_id, frame.get("data"))
    except Exception:
        logger.exception(f"[WS] Handler for '{event}' failed on {channel_id}")
        await _send_error(channel_id, f"Failed to process event: {event}")


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Serve one client connection from handshake to disconnect."""
    raw_user_id = websocket.query_params.get(get_config().relay.user_id_param)
    channel_id = await hub.accept(websocket)
    logger.info(
        f"[WS] User connected: {channel_id} (User ID: {raw_user_id or 'N/A'})"
    )

    reason = None
    try:
        await lifecycle.open(channel_id, raw_user_id)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await dispatch(channel_id, raw)
    except WebSocketDisconnect as exc:
        reason = exc.reason or f"code {exc.code}"
    finally:
        await hub.close(channel_id, reason or "server side close")
