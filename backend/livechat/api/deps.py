"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from starlette.requests import HTTPConnection

from livechat.core.config import get_settings
from livechat.core.exceptions import AuthenticationError
from livechat.interfaces.auth_provider import IAuthProvider, User
from livechat.interfaces.chat_repository import IChatRepository
from livechat.services.chat_service import ChatService
from livechat.services.realtime_service import RealtimeHub


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_chat_repository() -> IChatRepository:
    """Get chat repository instance."""
    from livechat.infrastructure.local.chat_repository import SqliteChatRepository
    return SqliteChatRepository()


@lru_cache()
def get_auth_provider() -> IAuthProvider:
    """Get auth provider instance."""
    settings = get_settings()
    from livechat.infrastructure.local.mock_auth import MockAuthProvider
    return MockAuthProvider(
        admin_tokens=settings.admin_token_map(),
        enabled=settings.AUTH_ENABLED,
    )


# ===========================================
# Realtime Dependencies
# ===========================================


def get_realtime_hub(conn: HTTPConnection) -> RealtimeHub:
    """The hub built for this app instance (HTTP and WebSocket alike)."""
    return conn.app.state.realtime


def get_chat_service(conn: HTTPConnection) -> ChatService:
    return conn.app.state.realtime.chat_service


# ===========================================
# User Authentication
# ===========================================

DEV_ADMIN = User(id="dev_admin", display_name="Developer", is_admin=True)


def _extract_bearer(authorization: str) -> str:
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )
    return token


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
    auth_provider: IAuthProvider = Depends(get_auth_provider),
) -> Optional[User]:
    """
    Resolve the caller if a bearer token was sent.

    End users talk to the public chat routes anonymously; admins identify
    themselves with the token issued by the main site.
    """
    if not auth_provider.is_enabled():
        return DEV_ADMIN
    if not authorization:
        return None
    token = _extract_bearer(authorization)
    try:
        return await auth_provider.verify_token(token)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


async def get_current_admin(
    user: Annotated[Optional[User], Depends(get_optional_user)],
) -> User:
    """Require an authenticated admin."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


async def resolve_socket_identity(
    token: Optional[str],
    auth_provider: IAuthProvider,
) -> Optional[User]:
    """Identity for a socket from its ?token= query parameter; None if anonymous."""
    if not auth_provider.is_enabled():
        return DEV_ADMIN
    if not token:
        return None
    try:
        return await auth_provider.verify_token(token)
    except AuthenticationError:
        return None


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

ChatRepo = Annotated[IChatRepository, Depends(get_chat_repository)]
AuthProvider = Annotated[IAuthProvider, Depends(get_auth_provider)]
Hub = Annotated[RealtimeHub, Depends(get_realtime_hub)]
ChatSvc = Annotated[ChatService, Depends(get_chat_service)]
OptionalUser = Annotated[Optional[User], Depends(get_optional_user)]
CurrentAdmin = Annotated[User, Depends(get_current_admin)]
