"""
Authentication provider interface.

Session mechanics live in the main site; this service only needs to turn a
bearer token into an identity and know whether it belongs to an admin.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    """Authenticated identity."""

    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False

    @property
    def label(self) -> str:
        return self.display_name or self.id


class IAuthProvider(ABC):
    """Abstract interface for authentication."""

    @abstractmethod
    async def verify_token(self, token: str) -> User:
        """
        Verify a bearer token.

        Raises:
            AuthenticationError: token is not recognised
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Check if authentication is enabled."""
        pass
