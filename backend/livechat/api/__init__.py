"""API routers."""

from livechat.api import admin_chats, chats, realtime

__all__ = [
    "admin_chats",
    "chats",
    "realtime",
]
