"""
Ephemeral presence and typing state.

Nothing here is persisted; a restart starts from empty and clients rebuild
the state by resubscribing. Every method is synchronous so a call is atomic
on the event loop.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from livechat.models.chat import ChatRole


class PresenceTracker:
    """Per-chat typing flags and admin viewer counters."""

    def __init__(
        self,
        typing_expiry_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._typing_expiry = typing_expiry_seconds
        self._clock = clock
        # (chat_id, role) -> last refresh instant; absent means not typing
        self._typing: dict[tuple[str, ChatRole], float] = {}
        self._admin_counts: dict[str, int] = {}

    # ===========================================
    # Typing
    # ===========================================

    def set_typing(self, chat_id: str, role: ChatRole, is_typing: bool) -> bool:
        """Record a typing flag. Returns True if the visible state changed."""
        key = (chat_id, ChatRole(role))
        was_typing = key in self._typing
        if is_typing:
            self._typing[key] = self._clock()
        else:
            self._typing.pop(key, None)
        return was_typing != is_typing

    def is_typing(self, chat_id: str, role: ChatRole) -> bool:
        return (chat_id, ChatRole(role)) in self._typing

    def expire_stale(self, now: Optional[float] = None) -> list[tuple[str, ChatRole]]:
        """Drop typing flags not refreshed within the expiry window."""
        now = self._clock() if now is None else now
        expired = [
            key for key, refreshed in self._typing.items()
            if now - refreshed >= self._typing_expiry
        ]
        for key in expired:
            del self._typing[key]
        return expired

    # ===========================================
    # Admin presence
    # ===========================================

    def admin_connected(self, chat_id: str) -> int:
        count = self._admin_counts.get(chat_id, 0) + 1
        self._admin_counts[chat_id] = count
        return count

    def admin_disconnected(self, chat_id: str) -> int:
        """Decrement the counter, never below zero."""
        count = max(self._admin_counts.get(chat_id, 0) - 1, 0)
        if count:
            self._admin_counts[chat_id] = count
        else:
            self._admin_counts.pop(chat_id, None)
        return count

    def get_admin_count(self, chat_id: str) -> int:
        return self._admin_counts.get(chat_id, 0)

    # ===========================================
    # Lifecycle
    # ===========================================

    def clear_chat(self, chat_id: str) -> None:
        """Forget everything about a deleted chat."""
        self._admin_counts.pop(chat_id, None)
        for key in [k for k in self._typing if k[0] == chat_id]:
            del self._typing[key]

    def reset(self) -> None:
        self._typing.clear()
        self._admin_counts.clear()
