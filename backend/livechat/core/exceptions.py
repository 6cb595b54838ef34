"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class LiveChatError(Exception):
    """Base exception for livechat."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(LiveChatError):
    """Resource not found."""

    pass


class ValidationError(LiveChatError):
    """Validation error."""

    pass


class ConflictError(LiveChatError):
    """State conflict (lost assignment race, write to a closed chat)."""

    pass


class AuthenticationError(LiveChatError):
    """Authentication failed."""

    pass


class ForbiddenError(LiveChatError):
    """Forbidden operation (authorization denied)."""

    pass


class TransientDeliveryFailure(LiveChatError):
    """Push to a connection that is gone or not draining its queue.

    Never surfaced to callers; the dispatcher prunes the connection instead.
    """

    pass
