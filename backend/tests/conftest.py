"""
Shared test fixtures.
"""

import json
import os

os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from livechat.core.config import Settings
from livechat.infrastructure.local.chat_repository import SqliteChatRepository
from livechat.infrastructure.local.database import Base, get_session_factory
from livechat.infrastructure.local.mock_auth import MockAuthProvider
from livechat.services.connection import Connection
from livechat.services.realtime_service import RealtimeHub

ADMIN_TOKENS = {"carlos-token": "Carlos", "bia-token": "Bia"}


@pytest.fixture
def db_path(tmp_path):
    """SQLite file with the schema already created."""
    path = tmp_path / "livechat-test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def session_factory(db_path):
    # NullPool: no connection outlives the event loop that opened it
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    return get_session_factory(engine)


@pytest.fixture
def chat_repo(session_factory):
    return SqliteChatRepository(
        session_factory=session_factory,
        default_name="Anônimo",
        max_message_length=500,
    )


@pytest.fixture
def test_settings():
    return Settings(ENVIRONMENT="test", TYPING_EXPIRY_SECONDS=5.0, WS_SEND_QUEUE_SIZE=64)


@pytest.fixture
def hub(chat_repo, test_settings):
    return RealtimeHub(chat_repo, test_settings)


@pytest.fixture
def auth_provider():
    return MockAuthProvider(admin_tokens=ADMIN_TOKENS, enabled=True)


def _drain(connection: Connection) -> list[dict]:
    """Decode every frame queued on a connection."""
    return [json.loads(frame) for frame in connection.pending()]


@pytest.fixture
def drain():
    return _drain
