"""
Subscription registry.

Maps chat ids to the live connections subscribed to them. A connection is
subscribed to at most one chat at a time; subscribing elsewhere moves it.
All mutations are synchronous, so they are atomic on the event loop.
"""

from __future__ import annotations

from typing import Optional

from livechat.models.chat import ChatRole
from livechat.services.connection import Connection


class SubscriptionRegistry:
    """Chat id -> subscribers, plus every live connection for admin-wide pushes."""

    def __init__(self) -> None:
        self._connections: set[Connection] = set()
        self._subscribers: dict[str, set[Connection]] = {}
        self._admins: dict[str, set[Connection]] = {}
        self._chat_of: dict[Connection, tuple[str, ChatRole]] = {}

    def register(self, connection: Connection) -> None:
        self._connections.add(connection)

    def subscribe(
        self,
        connection: Connection,
        chat_id: str,
        role: ChatRole,
    ) -> Optional[tuple[str, ChatRole]]:
        """
        Subscribe a connection to a chat.

        Returns the (chat_id, role) it was previously subscribed as, if any.
        """
        role = ChatRole(role)
        previous = self._remove(connection)
        self._connections.add(connection)
        self._subscribers.setdefault(chat_id, set()).add(connection)
        if role == ChatRole.ADMIN:
            self._admins.setdefault(chat_id, set()).add(connection)
        self._chat_of[connection] = (chat_id, role)
        return previous

    def unsubscribe(self, connection: Connection) -> Optional[tuple[str, ChatRole]]:
        """Drop the chat association but keep the connection registered."""
        return self._remove(connection)

    def on_disconnect(self, connection: Connection) -> Optional[tuple[str, ChatRole]]:
        """
        Forget a connection entirely. Idempotent: a second call returns None.
        """
        previous = self._remove(connection)
        self._connections.discard(connection)
        connection.close()
        return previous

    def _remove(self, connection: Connection) -> Optional[tuple[str, ChatRole]]:
        previous = self._chat_of.pop(connection, None)
        if previous is None:
            return None
        chat_id, _ = previous
        for index in (self._subscribers, self._admins):
            members = index.get(chat_id)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                del index[chat_id]
        return previous

    # ===========================================
    # Queries
    # ===========================================

    def subscribers_of(self, chat_id: str) -> set[Connection]:
        return set(self._subscribers.get(chat_id, ()))

    def admins_of(self, chat_id: str) -> set[Connection]:
        return set(self._admins.get(chat_id, ()))

    def subscription_of(self, connection: Connection) -> Optional[tuple[str, ChatRole]]:
        return self._chat_of.get(connection)

    def has_role(self, chat_id: str, role: ChatRole) -> bool:
        """Whether any subscriber of the chat is subscribed as role."""
        return any(
            self._chat_of.get(c, (None, None))[1] == role
            for c in self._subscribers.get(chat_id, ())
        )

    def admin_connections(self) -> set[Connection]:
        return {c for c in self._connections if c.is_admin}

    def global_admin_count(self) -> int:
        """Open admin connections, subscribed to a chat or not."""
        return sum(1 for c in self._connections if c.is_admin)

    def connection_count(self) -> int:
        return len(self._connections)

    def chat_ids(self) -> set[str]:
        return set(self._subscribers)

    # ===========================================
    # Lifecycle
    # ===========================================

    def close_all(self) -> None:
        for connection in list(self._connections):
            self.on_disconnect(connection)
        self._subscribers.clear()
        self._admins.clear()
        self._chat_of.clear()
