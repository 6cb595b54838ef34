"""Domain models and wire frames."""

from livechat.models.chat import (
    Chat,
    ChatCreate,
    ChatRole,
    ChatStatus,
    Message,
    MessageCreate,
)
from livechat.models.events import (
    AssignedEvent,
    ChatEvent,
    DeletedEvent,
    InitEvent,
    MessageEvent,
    PresenceEvent,
    ReadEvent,
    RefreshEvent,
    StatusEvent,
    TypingEvent,
)

__all__ = [
    "Chat",
    "ChatCreate",
    "ChatRole",
    "ChatStatus",
    "Message",
    "MessageCreate",
    "ChatEvent",
    "InitEvent",
    "MessageEvent",
    "TypingEvent",
    "PresenceEvent",
    "AssignedEvent",
    "StatusEvent",
    "ReadEvent",
    "DeletedEvent",
    "RefreshEvent",
]
