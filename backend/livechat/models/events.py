"""
Realtime wire frames.

Outbound events are what the dispatcher fans out; inbound frames are what a
client may send over its socket. Parsing of inbound frames never raises:
anything malformed comes back as None.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from livechat.models.chat import Chat, ChatRole, ChatStatus, Message


class ChatEvent(BaseModel):
    """Base outbound event."""

    model_config = ConfigDict(populate_by_name=True)

    type: str

    def to_frame(self) -> str:
        payload = self.model_dump(mode="json", by_alias=True)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


class InitEvent(ChatEvent):
    type: Literal["init"] = "init"
    chat: Chat


class MessageEvent(ChatEvent):
    type: Literal["message"] = "message"
    message: Message


class TypingEvent(ChatEvent):
    type: Literal["typing"] = "typing"
    role: ChatRole = Field(..., alias="from")
    typing: bool


class PresenceEvent(ChatEvent):
    type: Literal["presence"] = "presence"
    admin_count: int = Field(..., alias="adminCount", ge=0)


class AssignedEvent(ChatEvent):
    type: Literal["assigned"] = "assigned"
    assigned_admin: Optional[str] = Field(None, alias="assignedAdmin")


class StatusEvent(ChatEvent):
    type: Literal["status"] = "status"
    status: ChatStatus


class ReadEvent(ChatEvent):
    type: Literal["read"] = "read"
    chat_id: str = Field(..., alias="chatId")
    unread: bool = False


class DeletedEvent(ChatEvent):
    type: Literal["deleted"] = "deleted"
    chat_id: str = Field(..., alias="chatId")


class RefreshEvent(ChatEvent):
    """Admin-wide list invalidation."""

    type: Literal["refresh"] = "refresh"
    chat_id: str = Field(..., alias="chatId")
    reason: str


class PongEvent(ChatEvent):
    type: Literal["pong"] = "pong"


# ===========================================
# Inbound frames
# ===========================================


class SubscribeFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["subscribe"]
    chat_id: str = Field(..., alias="chatId", min_length=1)
    role: ChatRole = ChatRole.USER


class TypingFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["typing"]
    chat_id: str = Field(..., alias="chatId", min_length=1)
    typing: bool
    # Informational only; the subscribed role is authoritative
    role: Optional[ChatRole] = None


class PingFrame(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["ping"]


ClientFrame = Annotated[
    Union[SubscribeFrame, TypingFrame, PingFrame],
    Field(discriminator="type"),
]

_client_frame_adapter: TypeAdapter[Any] = TypeAdapter(ClientFrame)


def parse_client_frame(raw: str | bytes) -> Optional[SubscribeFrame | TypingFrame | PingFrame]:
    """Parse one inbound frame; None for invalid JSON, unknown types or bad fields."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        return _client_frame_adapter.validate_python(data)
    except PydanticValidationError:
        return None
