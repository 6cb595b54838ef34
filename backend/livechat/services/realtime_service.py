"""
Realtime runtime: the registry, presence tracker, dispatcher and chat
service wired together for one process.

Built once in the app lifespan and torn down on shutdown; nothing here is
module-level state, so tests can build as many independent hubs as needed.
"""

from __future__ import annotations

from typing import Optional

from livechat.core.config import Settings, get_settings
from livechat.core.logger import logger
from livechat.interfaces.chat_repository import IChatRepository
from livechat.interfaces.auth_provider import User
from livechat.services.background_scheduler import BackgroundScheduler
from livechat.services.broadcast_service import BroadcastDispatcher
from livechat.services.chat_service import ChatService
from livechat.services.connection import Connection
from livechat.services.presence_service import PresenceTracker
from livechat.services.session_handler import ChatSessionHandler
from livechat.services.subscription_registry import SubscriptionRegistry


class RealtimeHub:
    """Process-wide realtime components with a start/shutdown lifecycle."""

    def __init__(self, repo: IChatRepository, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self.registry = SubscriptionRegistry()
        self.presence = PresenceTracker(typing_expiry_seconds=self._settings.TYPING_EXPIRY_SECONDS)
        self.dispatcher = BroadcastDispatcher(self.registry, self.presence)
        self.chat_service = ChatService(repo, self.dispatcher)
        self.scheduler = BackgroundScheduler(
            self.dispatcher,
            sweep_interval_seconds=self._settings.TYPING_SWEEP_INTERVAL_SECONDS,
        )

    def open_session(self, identity: Optional[User] = None) -> ChatSessionHandler:
        """Create a connection and its protocol handler, already registered."""
        connection = Connection(identity=identity, queue_size=self._settings.WS_SEND_QUEUE_SIZE)
        handler = ChatSessionHandler(connection, self.chat_service, self.dispatcher)
        handler.on_connect()
        return handler

    async def start(self) -> None:
        await self.scheduler.start()

    async def shutdown(self) -> None:
        await self.scheduler.stop()
        open_connections = self.registry.connection_count()
        self.registry.close_all()
        self.presence.reset()
        logger.info(f"Realtime hub stopped, closed {open_connections} connection(s)")
