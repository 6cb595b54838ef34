"""
Mock authentication provider for local development.
"""

from typing import Optional

from livechat.core.exceptions import AuthenticationError
from livechat.interfaces.auth_provider import IAuthProvider, User


class MockAuthProvider(IAuthProvider):
    """Mock auth provider backed by a static admin token table."""

    def __init__(self, admin_tokens: Optional[dict[str, str]] = None, enabled: bool = True):
        """
        Initialize mock auth provider.

        Args:
            admin_tokens: {token: display name} treated as admins
            enabled: Whether authentication is required
        """
        self._enabled = enabled
        self._admins = {
            token: User(id=token, display_name=name, is_admin=True)
            for token, name in (admin_tokens or {}).items()
        }

    async def verify_token(self, token: str) -> User:
        """
        Verify token. Known admin tokens map to admins, anything else to a
        plain site user whose id is the token.
        """
        token = (token or "").strip()
        if not token:
            raise AuthenticationError("Empty token")
        if token in self._admins:
            return self._admins[token]
        return User(id=token, display_name=token, is_admin=False)

    def is_enabled(self) -> bool:
        """Check if authentication is enabled."""
        return self._enabled
