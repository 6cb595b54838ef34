"""
Chat repository interface.

Defines the contract for the durable chat store, the single source of truth
for chats and their message histories.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from livechat.models.chat import Chat, ChatRole, ChatStatus, Message


class IChatRepository(ABC):
    """Abstract interface for chat persistence."""

    @abstractmethod
    async def create_chat(self, name: Optional[str], email: Optional[str] = None) -> Chat:
        """
        Create an open chat with an empty history.

        Args:
            name: Requester display name (defaulted when blank)
            email: Optional requester email

        Returns:
            The created Chat

        Raises:
            ValidationError: name is empty after defaulting
        """
        pass

    @abstractmethod
    async def get_chat(self, chat_id: str) -> Chat:
        """
        Get a chat snapshot with its full history.

        Raises:
            NotFoundError: unknown chat id
        """
        pass

    @abstractmethod
    async def list_chats(
        self,
        status: Optional[ChatStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Chat]:
        """List chats, newest first."""
        pass

    @abstractmethod
    async def append_message(
        self,
        chat_id: str,
        text: str,
        role: ChatRole,
        author: Optional[str] = None,
    ) -> Message:
        """
        Append a message to a chat.

        User messages set the unread flag, admin messages clear it.

        Raises:
            NotFoundError: unknown chat id
            ValidationError: text empty after trim or too long
            ConflictError: chat is closed
        """
        pass

    @abstractmethod
    async def assign(self, chat_id: str, admin: str) -> Chat:
        """
        Claim a chat for an admin. First claim wins.

        Raises:
            NotFoundError: unknown chat id
            ConflictError: already assigned to a different admin
        """
        pass

    @abstractmethod
    async def unassign(self, chat_id: str) -> Chat:
        """Clear the assignment."""
        pass

    @abstractmethod
    async def set_status(self, chat_id: str, status: ChatStatus) -> Chat:
        """Close or reopen a chat."""
        pass

    @abstractmethod
    async def mark_read(self, chat_id: str) -> Chat:
        """Clear the unread flag."""
        pass

    @abstractmethod
    async def delete_chat(self, chat_id: str) -> None:
        """Delete a chat and all its messages irrecoverably."""
        pass
