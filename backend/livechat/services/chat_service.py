"""
Chat service: the HTTP write path.

Every mutation is written to the store first and published only after the
write returned. A failed write publishes nothing. Message writes and their
broadcast share a per-chat lock, so subscribers see messages in the order
the store accepted them; the socket handler takes the same lock while it
snapshots a chat for a new subscriber.
"""

from __future__ import annotations

from typing import AsyncContextManager, Optional

from livechat.core.logger import logger
from livechat.interfaces.chat_repository import IChatRepository
from livechat.models.chat import Chat, ChatRole, ChatStatus, Message
from livechat.models.events import (
    AssignedEvent,
    DeletedEvent,
    MessageEvent,
    ReadEvent,
    RefreshEvent,
    StatusEvent,
    TypingEvent,
)
from livechat.services.broadcast_service import BroadcastDispatcher
from livechat.services.chat_export import ExportFormat, render_export
from livechat.utils.keyed_lock import KeyedLock


class ChatService:
    """Store mutations mirrored to the broadcast layer."""

    def __init__(self, repo: IChatRepository, dispatcher: BroadcastDispatcher) -> None:
        self._repo = repo
        self._dispatcher = dispatcher
        self._locks = KeyedLock()

    @property
    def repo(self) -> IChatRepository:
        return self._repo

    def chat_lock(self, chat_id: str) -> AsyncContextManager[None]:
        """Lock ordering store writes and their broadcasts for one chat."""
        return self._locks.hold(chat_id)

    # ===========================================
    # Reads
    # ===========================================

    async def get_chat(self, chat_id: str) -> Chat:
        return await self._repo.get_chat(chat_id)

    async def list_chats(
        self,
        status: Optional[ChatStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Chat]:
        return await self._repo.list_chats(status=status, limit=limit, offset=offset)

    async def export_chat(self, chat_id: str, fmt: ExportFormat = "json") -> tuple[Chat, str]:
        chat = await self._repo.get_chat(chat_id)
        return chat, render_export(chat, fmt)

    # ===========================================
    # Writes
    # ===========================================

    async def create_chat(self, name: Optional[str], email: Optional[str] = None) -> Chat:
        chat = await self._repo.create_chat(name, email)
        logger.info(f"Chat {chat.id} created for {chat.name!r}")
        await self._dispatcher.publish_admins(RefreshEvent(chat_id=chat.id, reason="created"))
        return chat

    async def post_message(
        self,
        chat_id: str,
        text: str,
        role: ChatRole,
        author: Optional[str] = None,
    ) -> Message:
        """Append a message and push it to every subscriber of the chat."""
        role = ChatRole(role)
        async with self.chat_lock(chat_id):
            message = await self._repo.append_message(chat_id, text, role, author=author)
            await self._dispatcher.publish(chat_id, MessageEvent(message=message))
        # Sending a message ends the sender's typing state
        if self._dispatcher.presence.set_typing(chat_id, role, False):
            await self._dispatcher.publish(chat_id, TypingEvent(role=role, typing=False))
        await self._dispatcher.publish_admins(RefreshEvent(chat_id=chat_id, reason="message"))
        return message

    async def assign(self, chat_id: str, admin: str) -> Chat:
        async with self.chat_lock(chat_id):
            chat = await self._repo.assign(chat_id, admin)
            await self._dispatcher.publish(
                chat_id, AssignedEvent(assigned_admin=chat.assigned_admin)
            )
        logger.info(f"Chat {chat_id} assigned to {chat.assigned_admin}")
        await self._dispatcher.publish_admins(RefreshEvent(chat_id=chat_id, reason="assigned"))
        return chat

    async def unassign(self, chat_id: str) -> Chat:
        async with self.chat_lock(chat_id):
            chat = await self._repo.unassign(chat_id)
            await self._dispatcher.publish(chat_id, AssignedEvent(assigned_admin=None))
        await self._dispatcher.publish_admins(RefreshEvent(chat_id=chat_id, reason="unassigned"))
        return chat

    async def set_status(self, chat_id: str, status: ChatStatus) -> Chat:
        async with self.chat_lock(chat_id):
            chat = await self._repo.set_status(chat_id, status)
            await self._dispatcher.publish(chat_id, StatusEvent(status=chat.status))
        logger.info(f"Chat {chat_id} is now {chat.status.value}")
        await self._dispatcher.publish_admins(RefreshEvent(chat_id=chat_id, reason="status"))
        return chat

    async def mark_read(self, chat_id: str) -> Chat:
        async with self.chat_lock(chat_id):
            chat = await self._repo.mark_read(chat_id)
            await self._dispatcher.publish(chat_id, ReadEvent(chat_id=chat_id))
        await self._dispatcher.publish_admins(RefreshEvent(chat_id=chat_id, reason="read"))
        return chat

    async def delete_chat(self, chat_id: str) -> None:
        async with self.chat_lock(chat_id):
            await self._repo.delete_chat(chat_id)
            await self._dispatcher.publish(chat_id, DeletedEvent(chat_id=chat_id))
        self._dispatcher.presence.clear_chat(chat_id)
        logger.info(f"Chat {chat_id} deleted")
        await self._dispatcher.publish_admins(RefreshEvent(chat_id=chat_id, reason="deleted"))
