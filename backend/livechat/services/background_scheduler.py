"""
Background scheduler service for periodic jobs.

Handles in-process maintenance of the realtime layer, currently the expiry
of typing indicators whose client never sent a stop signal.
Uses APScheduler for in-process scheduling without external dependencies.
"""

from __future__ import annotations

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from livechat.core.config import get_settings
from livechat.core.logger import logger
from livechat.models.events import TypingEvent
from livechat.services.broadcast_service import BroadcastDispatcher


class BackgroundScheduler:
    """
    Background scheduler for periodic jobs.

    Features:
    - Typing indicator expiry sweep
    """

    def __init__(self, dispatcher: BroadcastDispatcher, sweep_interval_seconds: float = 1.0):
        self._dispatcher = dispatcher
        self._sweep_interval = sweep_interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self):
        """Start the scheduler."""
        settings = get_settings()

        # Only run scheduler in non-test environments
        if settings.ENVIRONMENT == "test":
            logger.info("Background scheduler disabled in test environment")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.expire_typing,
            IntervalTrigger(seconds=self._sweep_interval),
            id="typing_expiry_sweep",
            name="Typing Expiry Sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(
            f"Background scheduler started: typing expiry sweep every {self._sweep_interval}s"
        )

    async def stop(self):
        """Stop the scheduler."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Background scheduler stopped")

    async def expire_typing(self) -> int:
        """Reset stale typing flags and tell the chat. Returns flags expired."""
        expired = self._dispatcher.presence.expire_stale()
        for chat_id, role in expired:
            logger.debug(f"Typing indicator expired for {role.value} in chat {chat_id}")
            await self._dispatcher.publish(chat_id, TypingEvent(role=role, typing=False))
        return len(expired)
