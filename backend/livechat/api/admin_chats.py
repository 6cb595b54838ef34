"""
Admin chat API endpoints.

Listing, claiming, closing and removing support chats. All routes require an
admin identity.
"""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel

from livechat.api.deps import ChatSvc, CurrentAdmin
from livechat.core.exceptions import ConflictError, NotFoundError, ValidationError
from livechat.models.chat import Chat, ChatStatus
from livechat.services.chat_export import MEDIA_TYPES, export_filename

router = APIRouter()


class CloseRequest(BaseModel):
    """close=True closes the chat, close=False reopens it."""

    close: bool = True


def _not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=list[Chat])
async def list_chats(
    admin: CurrentAdmin,
    chat_service: ChatSvc,
    status_filter: Optional[ChatStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """List chats, newest first."""
    return await chat_service.list_chats(status=status_filter, limit=limit, offset=offset)


@router.get("/{chat_id}", response_model=Chat)
async def get_chat(chat_id: str, admin: CurrentAdmin, chat_service: ChatSvc):
    try:
        return await chat_service.get_chat(chat_id)
    except NotFoundError as e:
        raise _not_found(e)


@router.post("/{chat_id}/assign", response_model=Chat)
async def assign_chat(chat_id: str, admin: CurrentAdmin, chat_service: ChatSvc):
    """Claim a chat for the calling admin. A chat held by someone else is a 409."""
    try:
        return await chat_service.assign(chat_id, admin.label)
    except NotFoundError as e:
        raise _not_found(e)
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


@router.post("/{chat_id}/unassign", response_model=Chat)
async def unassign_chat(chat_id: str, admin: CurrentAdmin, chat_service: ChatSvc):
    try:
        return await chat_service.unassign(chat_id)
    except NotFoundError as e:
        raise _not_found(e)


@router.post("/{chat_id}/close", response_model=Chat)
async def close_chat(
    chat_id: str,
    admin: CurrentAdmin,
    chat_service: ChatSvc,
    payload: Optional[CloseRequest] = None,
):
    """Close or reopen a chat."""
    payload = payload or CloseRequest()
    new_status = ChatStatus.CLOSED if payload.close else ChatStatus.OPEN
    try:
        return await chat_service.set_status(chat_id, new_status)
    except NotFoundError as e:
        raise _not_found(e)


@router.post("/{chat_id}/mark-read", response_model=Chat)
async def mark_read(chat_id: str, admin: CurrentAdmin, chat_service: ChatSvc):
    try:
        return await chat_service.mark_read(chat_id)
    except NotFoundError as e:
        raise _not_found(e)


@router.delete("/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(chat_id: str, admin: CurrentAdmin, chat_service: ChatSvc):
    """Delete a chat and its whole history. Irreversible."""
    try:
        await chat_service.delete_chat(chat_id)
    except NotFoundError as e:
        raise _not_found(e)


@router.get("/{chat_id}/export")
async def export_chat(
    chat_id: str,
    admin: CurrentAdmin,
    chat_service: ChatSvc,
    fmt: Literal["json", "txt"] = Query("json", alias="format"),
):
    """Download the full history as an attachment."""
    try:
        chat, body = await chat_service.export_chat(chat_id, fmt)
    except NotFoundError as e:
        raise _not_found(e)
    return Response(
        content=body,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{export_filename(chat, fmt)}"'},
    )
