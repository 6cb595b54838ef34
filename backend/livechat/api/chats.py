"""
Public chat API endpoints.

Used by the support widget: open a chat, reload it, post messages. These
routes are the authoritative write path; every accepted message is pushed to
the chat's live subscribers after it has been stored.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from livechat.api.deps import ChatSvc, Hub, OptionalUser
from livechat.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from livechat.interfaces.auth_provider import User
from livechat.models.chat import Chat, ChatCreate, ChatRole, Message, MessageCreate

router = APIRouter()


# ===========================================
# Response Models
# ===========================================


class ChatCreatedResponse(BaseModel):
    id: str


class MessageResponse(BaseModel):
    message: Message


class GlobalPresenceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    admin_count: int = Field(..., alias="adminCount", ge=0)


def _reply_author(role: ChatRole, user: Optional[User]) -> Optional[str]:
    """Author name stamped on a message; only admins may post as admin."""
    if role != ChatRole.ADMIN:
        return None
    if user is None or not user.is_admin:
        raise ForbiddenError("Only admins can reply as admin")
    return user.label


# ===========================================
# Endpoints
# ===========================================


@router.post("", response_model=ChatCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(payload: ChatCreate, chat_service: ChatSvc):
    """Open a new support chat."""
    try:
        chat = await chat_service.create_chat(payload.name, payload.email)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
    return ChatCreatedResponse(id=chat.id)


@router.get("/presence", response_model=GlobalPresenceResponse)
async def global_presence(hub: Hub):
    """How many admins are online at all; drives the widget's support-online badge."""
    return GlobalPresenceResponse(admin_count=hub.registry.global_admin_count())


@router.get("/{chat_id}", response_model=Chat)
async def get_chat(chat_id: str, chat_service: ChatSvc):
    """Full chat snapshot; the resume path for clients reconnecting."""
    try:
        return await chat_service.get_chat(chat_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.post(
    "/{chat_id}/message",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_message(
    chat_id: str,
    payload: MessageCreate,
    chat_service: ChatSvc,
    user: OptionalUser,
):
    """
    Append a message to a chat.

    Admin replies need an admin token; the admin's display name becomes the
    message author.
    """
    try:
        author = _reply_author(payload.role, user)
        message = await chat_service.post_message(chat_id, payload.text, payload.role, author=author)
    except ForbiddenError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
    except ConflictError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    return MessageResponse(message=message)
