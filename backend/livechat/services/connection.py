"""
Live push connection.

A Connection owns a bounded outbound queue of serialized frames. The socket
endpoint drains it; the dispatcher only ever enqueues, so a slow or dead
peer can never block a publisher.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Union
from uuid import uuid4

from livechat.core.exceptions import TransientDeliveryFailure
from livechat.interfaces.auth_provider import User
from livechat.models.chat import ChatRole


@dataclass(frozen=True)
class Connected:
    """Open, no chat association."""


@dataclass(frozen=True)
class Subscribed:
    chat_id: str
    role: ChatRole


@dataclass(frozen=True)
class Disconnected:
    """Terminal."""


ConnectionState = Union[Connected, Subscribed, Disconnected]


class Connection:
    """One live bidirectional channel."""

    def __init__(self, identity: Optional[User] = None, queue_size: int = 256) -> None:
        self.id = uuid4().hex
        self.identity = identity
        self.state: ConnectionState = Connected()
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    def __repr__(self) -> str:
        return f"Connection(id={self.id[:8]}, state={self.state})"

    @property
    def is_admin(self) -> bool:
        return bool(self.identity and self.identity.is_admin)

    @property
    def admin_name(self) -> Optional[str]:
        return self.identity.label if self.is_admin else None

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, frame: str) -> None:
        """Enqueue a frame; raises TransientDeliveryFailure if the peer is gone or stalled."""
        if self._closed:
            raise TransientDeliveryFailure(f"Connection {self.id} is closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise TransientDeliveryFailure(f"Connection {self.id} send queue is full")

    async def next_frame(self) -> Optional[str]:
        """Next outbound frame, or None once the connection is closed."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def pending(self) -> list[str]:
        """Drain queued frames without waiting (used by tests and shutdown)."""
        frames = []
        while not self._queue.empty():
            frame = self._queue.get_nowait()
            if frame is not None:
                frames.append(frame)
        return frames

    def close(self) -> None:
        """Mark closed and wake the writer. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # Writer is stalled anyway; make room for the sentinel
            self._queue.get_nowait()
            self._queue.put_nowait(None)
