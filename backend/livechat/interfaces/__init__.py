"""Abstract interfaces for infrastructure abstraction."""

from livechat.interfaces.auth_provider import IAuthProvider, User
from livechat.interfaces.chat_repository import IChatRepository

__all__ = [
    "IAuthProvider",
    "IChatRepository",
    "User",
]
