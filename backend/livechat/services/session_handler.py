"""
Per-connection chat session protocol.

States: Connected -> Subscribed(chat_id, role) -> Disconnected. Inbound
frames are best effort: anything malformed, unknown or out of place is
dropped without a reply. Messages are never accepted over the socket; they
go through the HTTP write path and come back here as broadcasts.
"""

from __future__ import annotations

from livechat.core.exceptions import NotFoundError
from livechat.core.logger import logger
from livechat.models.chat import ChatRole
from livechat.models.events import (
    PingFrame,
    PongEvent,
    SubscribeFrame,
    TypingEvent,
    TypingFrame,
    parse_client_frame,
)
from livechat.services.broadcast_service import BroadcastDispatcher
from livechat.services.chat_service import ChatService
from livechat.services.connection import (
    Connected,
    Connection,
    ConnectionState,
    Disconnected,
    Subscribed,
)


class ChatSessionHandler:
    """Drives one Connection through the subscribe/typing protocol."""

    def __init__(
        self,
        connection: Connection,
        chat_service: ChatService,
        dispatcher: BroadcastDispatcher,
    ) -> None:
        self._connection = connection
        self._chat_service = chat_service
        self._dispatcher = dispatcher

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    def on_connect(self) -> None:
        self._dispatcher.registry.register(self._connection)
        self._connection.state = Connected()
        logger.info(f"Realtime connection opened: {self._connection.id[:8]}")

    async def handle_text(self, raw: str | bytes) -> None:
        """Process one inbound frame."""
        if isinstance(self.state, Disconnected) or self._connection.closed:
            return
        frame = parse_client_frame(raw)
        if frame is None:
            logger.debug(f"Ignoring malformed frame on {self._connection.id[:8]}")
            return
        if isinstance(frame, SubscribeFrame):
            await self._on_subscribe(frame)
        elif isinstance(frame, TypingFrame):
            await self._on_typing(frame)
        elif isinstance(frame, PingFrame):
            await self._dispatcher.send(self._connection, PongEvent())

    async def _on_subscribe(self, frame: SubscribeFrame) -> None:
        chat_id, role = frame.chat_id, frame.role
        if role == ChatRole.ADMIN and not self._connection.is_admin:
            logger.debug(f"Ignoring admin subscribe from non-admin {self._connection.id[:8]}")
            return

        registry = self._dispatcher.registry
        presence = self._dispatcher.presence
        # Snapshot and registration under the chat lock: any message
        # committed after the snapshot is published to this connection.
        async with self._chat_service.chat_lock(chat_id):
            try:
                chat = await self._chat_service.get_chat(chat_id)
            except NotFoundError:
                logger.debug(f"Ignoring subscribe to unknown chat {chat_id}")
                return
            previous = registry.subscribe(self._connection, chat_id, role)
            self._connection.state = Subscribed(chat_id=chat_id, role=role)
            if role == ChatRole.ADMIN and previous != (chat_id, role):
                presence.admin_connected(chat_id)
            await self._dispatcher.send_init(self._connection, chat)

        if previous is not None and previous != (chat_id, role):
            await self._dispatcher.leave_chat(*previous)
        await self._dispatcher.publish_presence(chat_id)

    async def _on_typing(self, frame: TypingFrame) -> None:
        state = self.state
        if not isinstance(state, Subscribed) or state.chat_id != frame.chat_id:
            return
        self._dispatcher.presence.set_typing(state.chat_id, state.role, frame.typing)
        await self._dispatcher.publish(
            state.chat_id,
            TypingEvent(role=state.role, typing=frame.typing),
            exclude=self._connection,
        )

    async def disconnect(self) -> None:
        """Tear down. Safe in any state and safe to call twice."""
        if isinstance(self.state, Disconnected):
            return
        self._connection.state = Disconnected()
        await self._dispatcher.drop_connection(self._connection)
        logger.info(f"Realtime connection closed: {self._connection.id[:8]}")
