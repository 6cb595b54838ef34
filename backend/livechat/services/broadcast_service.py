"""
Broadcast dispatcher.

Fans chat events out to the subscribers of a chat and to the admin-wide
channel. Delivery never raises to the publisher: a connection that cannot
take a frame is dropped from the registry on the spot.
"""

from __future__ import annotations

from typing import Iterable, Optional

from livechat.core.exceptions import TransientDeliveryFailure
from livechat.core.logger import logger
from livechat.models.chat import Chat, ChatRole
from livechat.models.events import ChatEvent, InitEvent, PresenceEvent, TypingEvent
from livechat.services.connection import Connection
from livechat.services.presence_service import PresenceTracker
from livechat.services.subscription_registry import SubscriptionRegistry


class BroadcastDispatcher:
    """Publish chat events to live connections."""

    def __init__(self, registry: SubscriptionRegistry, presence: PresenceTracker) -> None:
        self._registry = registry
        self._presence = presence

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def presence(self) -> PresenceTracker:
        return self._presence

    async def publish(
        self,
        chat_id: str,
        event: ChatEvent,
        exclude: Optional[Connection] = None,
    ) -> int:
        """Deliver an event to every subscriber of a chat. Returns deliveries made."""
        targets = self._registry.subscribers_of(chat_id)
        if exclude is not None:
            targets.discard(exclude)
        return await self._fan_out(targets, event.to_frame())

    async def publish_admins(self, event: ChatEvent) -> int:
        """Deliver an event to every live admin connection."""
        return await self._fan_out(self._registry.admin_connections(), event.to_frame())

    async def publish_presence(self, chat_id: str) -> int:
        count = self._presence.get_admin_count(chat_id)
        return await self.publish(chat_id, PresenceEvent(admin_count=count))

    async def send(self, connection: Connection, event: ChatEvent) -> bool:
        """Deliver an event to one connection."""
        return await self._fan_out([connection], event.to_frame()) == 1

    async def send_init(self, connection: Connection, chat: Chat) -> bool:
        return await self.send(connection, InitEvent(chat=chat))

    async def _fan_out(self, targets: Iterable[Connection], frame: str) -> int:
        delivered = 0
        dead: list[Connection] = []
        for connection in targets:
            try:
                connection.deliver(frame)
                delivered += 1
            except TransientDeliveryFailure as exc:
                logger.debug(f"Dropping connection after failed delivery: {exc}")
                dead.append(connection)
        for connection in dead:
            await self.drop_connection(connection)
        return delivered

    async def drop_connection(self, connection: Connection) -> Optional[tuple[str, ChatRole]]:
        """
        Remove a connection from the registry and fix up presence for the
        chat it leaves. Safe to call more than once.
        """
        previous = self._registry.on_disconnect(connection)
        if previous is not None:
            await self.leave_chat(*previous)
        return previous

    async def leave_chat(self, chat_id: str, role: ChatRole) -> None:
        """Presence and typing cleanup after one subscriber left a chat."""
        if role == ChatRole.ADMIN:
            self._presence.admin_disconnected(chat_id)
            await self.publish_presence(chat_id)
        if not self._registry.has_role(chat_id, role) and self._presence.set_typing(
            chat_id, role, False
        ):
            await self.publish(chat_id, TypingEvent(role=role, typing=False))
