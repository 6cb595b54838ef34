"""
SQLite implementation of the chat repository.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Optional

from sqlalchemy import delete, or_, select, update

from livechat.core.config import get_settings
from livechat.core.exceptions import ConflictError, NotFoundError, ValidationError
from livechat.infrastructure.local.database import (
    ChatMessageORM,
    ChatORM,
    get_session_factory,
)
from livechat.interfaces.chat_repository import IChatRepository
from livechat.models.chat import Chat, ChatRole, ChatStatus, Message
from livechat.utils.datetime_utils import ensure_utc, monotonic_after, now_utc, to_naive_utc
from livechat.utils.keyed_lock import KeyedLock


class SqliteChatRepository(IChatRepository):
    """SQLite implementation of chat repository.

    Writes to one chat are serialized by a per-chat asyncio.Lock. The lock
    gives appends their acceptance order; the assignment itself is also a
    conditional UPDATE so it stays first-claim-wins at the SQL level.
    """

    def __init__(
        self,
        session_factory=None,
        default_name: Optional[str] = None,
        max_message_length: Optional[int] = None,
        max_name_length: Optional[int] = None,
    ):
        settings = get_settings()
        self._session_factory = session_factory or get_session_factory()
        self._default_name = settings.DEFAULT_CHAT_NAME if default_name is None else default_name
        self._max_message_length = max_message_length or settings.MAX_MESSAGE_LENGTH
        self._max_name_length = max_name_length or settings.MAX_NAME_LENGTH
        self._locks = KeyedLock()

    def _message_orm_to_model(self, orm: ChatMessageORM) -> Message:
        """Convert message ORM object to Pydantic model."""
        return Message(
            seq=orm.seq,
            role=ChatRole(orm.role),
            text=orm.text,
            ts=ensure_utc(orm.created_at),
            author=orm.author,
        )

    def _chat_orm_to_model(self, orm: ChatORM, messages: list[ChatMessageORM]) -> Chat:
        """Convert chat ORM object to Pydantic model."""
        return Chat(
            id=orm.id,
            name=orm.name,
            email=orm.email,
            created_at=ensure_utc(orm.created_at),
            messages=[self._message_orm_to_model(m) for m in messages],
            status=ChatStatus(orm.status),
            assigned_admin=orm.assigned_admin,
            unread=bool(orm.unread),
        )

    async def _load(self, session, chat_id: str) -> Chat:
        orm = await session.get(ChatORM, chat_id, populate_existing=True)
        if not orm:
            raise NotFoundError(f"Chat {chat_id} not found")
        result = await session.execute(
            select(ChatMessageORM)
            .where(ChatMessageORM.chat_id == chat_id)
            .order_by(ChatMessageORM.seq.asc())
        )
        return self._chat_orm_to_model(orm, list(result.scalars().all()))

    def _clean_text(self, text: Optional[str]) -> str:
        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationError("Message text must not be empty")
        if len(cleaned) > self._max_message_length:
            raise ValidationError(
                f"Message text exceeds {self._max_message_length} characters",
                details={"max_length": self._max_message_length},
            )
        return cleaned

    async def create_chat(self, name: Optional[str], email: Optional[str] = None) -> Chat:
        """Create an open chat with an empty history."""
        display_name = (name or "").strip() or (self._default_name or "").strip()
        if not display_name:
            raise ValidationError("Chat name must not be empty")
        if len(display_name) > self._max_name_length:
            raise ValidationError(f"Chat name exceeds {self._max_name_length} characters")
        email = (email or "").strip() or None

        async with self._session_factory() as session:
            orm = ChatORM(
                name=display_name,
                email=email,
                status=ChatStatus.OPEN.value,
                unread=False,
                message_count=0,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._chat_orm_to_model(orm, [])

    async def get_chat(self, chat_id: str) -> Chat:
        """Get a chat snapshot with its full history."""
        async with self._session_factory() as session:
            return await self._load(session, chat_id)

    async def list_chats(
        self,
        status: Optional[ChatStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Chat]:
        """List chats, newest first."""
        async with self._session_factory() as session:
            query = select(ChatORM)
            if status is not None:
                query = query.where(ChatORM.status == status.value)
            query = query.order_by(ChatORM.created_at.desc()).limit(limit).offset(offset)
            chats = list((await session.execute(query)).scalars().all())
            if not chats:
                return []

            result = await session.execute(
                select(ChatMessageORM)
                .where(ChatMessageORM.chat_id.in_([c.id for c in chats]))
                .order_by(ChatMessageORM.chat_id, ChatMessageORM.seq.asc())
            )
            by_chat: dict[str, list[ChatMessageORM]] = defaultdict(list)
            for message in result.scalars().all():
                by_chat[message.chat_id].append(message)
            return [self._chat_orm_to_model(c, by_chat.get(c.id, [])) for c in chats]

    async def append_message(
        self,
        chat_id: str,
        text: str,
        role: ChatRole,
        author: Optional[str] = None,
    ) -> Message:
        """Append a message; order of acceptance is the order of the history."""
        role = ChatRole(role)
        async with self._locks.hold(chat_id):
            async with self._session_factory() as session:
                chat = await session.get(ChatORM, chat_id, populate_existing=True)
                if not chat:
                    raise NotFoundError(f"Chat {chat_id} not found")
                cleaned = self._clean_text(text)
                if chat.status == ChatStatus.CLOSED.value:
                    raise ConflictError(f"Chat {chat_id} is closed")

                seq = (chat.message_count or 0) + 1
                ts = monotonic_after(now_utc(), chat.last_message_at)
                message_orm = ChatMessageORM(
                    chat_id=chat_id,
                    seq=seq,
                    role=role.value,
                    text=cleaned,
                    author=author,
                    created_at=to_naive_utc(ts),
                )
                session.add(message_orm)
                chat.message_count = seq
                chat.last_message_at = to_naive_utc(ts)
                chat.unread = role == ChatRole.USER

                await session.commit()
                await session.refresh(message_orm)
                return self._message_orm_to_model(message_orm)

    async def assign(self, chat_id: str, admin: str) -> Chat:
        """Claim a chat. Re-claiming by the current holder is a no-op success."""
        admin = (admin or "").strip()
        if not admin:
            raise ValidationError("Admin identity must not be empty")

        async with self._locks.hold(chat_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    update(ChatORM)
                    .where(
                        ChatORM.id == chat_id,
                        or_(ChatORM.assigned_admin.is_(None), ChatORM.assigned_admin == admin),
                    )
                    .values(assigned_admin=admin, updated_at=to_naive_utc(now_utc()))
                )
                if result.rowcount == 0:
                    await session.rollback()
                    orm = await session.get(ChatORM, chat_id)
                    if not orm:
                        raise NotFoundError(f"Chat {chat_id} not found")
                    raise ConflictError(
                        f"Chat {chat_id} is already assigned to {orm.assigned_admin}",
                        details={"assignedAdmin": orm.assigned_admin},
                    )
                await session.commit()
                return await self._load(session, chat_id)

    async def _update(self, chat_id: str, **values) -> Chat:
        async with self._locks.hold(chat_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    update(ChatORM)
                    .where(ChatORM.id == chat_id)
                    .values(updated_at=to_naive_utc(now_utc()), **values)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"Chat {chat_id} not found")
                await session.commit()
                return await self._load(session, chat_id)

    async def unassign(self, chat_id: str) -> Chat:
        """Clear the assignment."""
        return await self._update(chat_id, assigned_admin=None)

    async def set_status(self, chat_id: str, status: ChatStatus) -> Chat:
        """Close or reopen a chat."""
        return await self._update(chat_id, status=ChatStatus(status).value)

    async def mark_read(self, chat_id: str) -> Chat:
        """Clear the unread flag."""
        return await self._update(chat_id, unread=False)

    async def delete_chat(self, chat_id: str) -> None:
        """Delete a chat and its messages."""
        async with self._locks.hold(chat_id):
            async with self._session_factory() as session:
                await session.execute(
                    delete(ChatMessageORM).where(ChatMessageORM.chat_id == chat_id)
                )
                result = await session.execute(delete(ChatORM).where(ChatORM.id == chat_id))
                if result.rowcount == 0:
                    await session.rollback()
                    raise NotFoundError(f"Chat {chat_id} not found")
                await session.commit()
