"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from datetime import datetime
from functools import lru_cache
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from livechat.core.config import get_settings
from livechat.utils.datetime_utils import now_utc, to_naive_utc


def _utcnow_naive() -> datetime:
    return to_naive_utc(now_utc())


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class ChatORM(Base):
    """Support chat ORM model."""

    __tablename__ = "chats"

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=True)
    status = Column(String(10), nullable=False, default="open", index=True)
    assigned_admin = Column(String(255), nullable=True, index=True)
    unread = Column(Boolean, nullable=False, default=False)
    # Highest seq handed out; the next message gets message_count + 1
    message_count = Column(Integer, nullable=False, default=0)
    last_message_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow_naive, index=True)
    updated_at = Column(DateTime, default=_utcnow_naive, onupdate=_utcnow_naive)


class ChatMessageORM(Base):
    """Chat message ORM model."""

    __tablename__ = "chat_messages"
    __table_args__ = (UniqueConstraint("chat_id", "seq", name="uq_chat_messages_chat_seq"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    chat_id = Column(String(32), ForeignKey("chats.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    role = Column(String(10), nullable=False)
    text = Column(Text, nullable=False)
    author = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow_naive)


# ===========================================
# Database Session Management
# ===========================================


@lru_cache()
def get_engine() -> AsyncEngine:
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


def get_session_factory(engine: AsyncEngine | None = None):
    """Get async session factory."""
    return sessionmaker(engine or get_engine(), class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine | None = None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    """Close pooled connections on shutdown."""
    await get_engine().dispose()
