"""Event names used on the wire.

Client and server exchange frames of the form ``{"event": name, "data": payload}``.
"""
from enum import Enum


class ClientEvent(str, Enum):
    """Events a client may send."""
    JOIN_CONVERSATION = "joinConversation"
    LEAVE_CONVERSATION = "leaveConversation"
    SEND_MESSAGE = "sendMessage"
    MESSAGE_READ = "messageRead"
    START_TYPING = "startTyping"
    STOP_TYPING = "stopTyping"
    REQUEST_ONLINE_USERS = "request-online-users"
    CALL_USER = "call-user"
    ANSWER_MADE = "answer-made"
    ICE_CANDIDATE = "ice-candidate"


class ServerEvent(str, Enum):
    """Events the server emits."""
    USER_ONLINE = "userOnline"
    USER_OFFLINE = "userOffline"
    ONLINE_USERS_LIST = "onlineUsersList"
    NEW_MESSAGE = "newMessage"
    MESSAGE_READ = "messageRead"
    START_TYPING = "startTyping"
    STOP_TYPING = "stopTyping"
    INCOMING_CALL = "incoming-call"
    CALL_ACCEPTED = "call-accepted"
    ICE_CANDIDATE = "ice-candidate"
    USER_LEFT_ROOM = "user-left-room"
    ERROR = "error"


def validation_message(exc) -> str:
    """Flatten a pydantic ValidationError into one short line for clients."""
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error.get("loc", ())) or "payload"
        parts.append(f"{field}: {error.get('msg', 'invalid')}")
    return "Invalid payload: " + "; ".join(parts)
