"""
Chat and message models.

Field aliases carry the wire names shared with the browser widget and the
admin console (``createdAt``, ``assignedAdmin``, ``from``, ``ts``).
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRole(str, Enum):
    """Which side of a chat a message or connection represents."""

    USER = "user"
    ADMIN = "admin"


class ChatStatus(str, Enum):
    """Chat lifecycle status."""

    OPEN = "open"
    CLOSED = "closed"


class Message(BaseModel):
    """A single chat message. Immutable once appended."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    seq: int = Field(..., ge=1, description="1-based position in the chat")
    role: ChatRole = Field(..., alias="from", description="Sender role")
    text: str = Field(..., min_length=1)
    ts: datetime = Field(..., description="Acceptance instant (UTC)")
    author: Optional[str] = Field(None, description="Admin display name")


class Chat(BaseModel):
    """Full chat snapshot: metadata plus ordered message history."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")
    messages: list[Message] = Field(default_factory=list)
    status: ChatStatus = ChatStatus.OPEN
    assigned_admin: Optional[str] = Field(None, alias="assignedAdmin")
    unread: bool = False

    @property
    def is_closed(self) -> bool:
        return self.status == ChatStatus.CLOSED

    def to_wire(self) -> dict:
        """Serialize with wire aliases, JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)


class ChatCreate(BaseModel):
    """Schema for creating a chat."""

    name: Optional[str] = Field(None, description="Requester display name")
    email: Optional[str] = Field(None, max_length=320)


class MessageCreate(BaseModel):
    """Schema for posting a message."""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    role: ChatRole = Field(ChatRole.USER, alias="from")
