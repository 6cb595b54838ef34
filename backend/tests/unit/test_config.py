"""
Unit tests for settings, auth provider and datetime helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from livechat.core.config import Settings
from livechat.core.exceptions import AuthenticationError
from livechat.infrastructure.local.mock_auth import MockAuthProvider
from livechat.utils.datetime_utils import ensure_utc, monotonic_after, to_naive_utc


class TestSettings:
    """Tests for Settings helpers."""

    def test_admin_token_map_parsing(self):
        settings = Settings(ADMIN_TOKENS=" carlos-token:Carlos , bia-token: Bia ,, solo ")
        assert settings.admin_token_map() == {
            "carlos-token": "Carlos",
            "bia-token": "Bia",
            "solo": "solo",
        }

    def test_empty_admin_tokens(self):
        assert Settings(ADMIN_TOKENS="").admin_token_map() == {}

    def test_environment_flags(self):
        assert Settings(ENVIRONMENT="local").is_local
        assert Settings(ENVIRONMENT="test").is_test
        assert not Settings(ENVIRONMENT="test").is_local


class TestMockAuthProvider:
    """Tests for token verification."""

    @pytest.mark.asyncio
    async def test_admin_token(self):
        provider = MockAuthProvider(admin_tokens={"carlos-token": "Carlos"})
        user = await provider.verify_token("carlos-token")
        assert user.is_admin
        assert user.label == "Carlos"

    @pytest.mark.asyncio
    async def test_other_token_is_plain_user(self):
        provider = MockAuthProvider(admin_tokens={"carlos-token": "Carlos"})
        user = await provider.verify_token("visitor-42")
        assert not user.is_admin
        assert user.id == "visitor-42"

    @pytest.mark.asyncio
    async def test_empty_token_rejected(self):
        provider = MockAuthProvider()
        with pytest.raises(AuthenticationError):
            await provider.verify_token("  ")

    def test_enabled_flag(self):
        assert MockAuthProvider().is_enabled()
        assert not MockAuthProvider(enabled=False).is_enabled()


class TestDatetimeUtils:
    """Tests for UTC helpers."""

    def test_ensure_utc(self):
        naive = datetime(2026, 1, 1, 10, 0)
        assert ensure_utc(naive).tzinfo == timezone.utc
        assert ensure_utc(None) is None
        shifted = datetime(2026, 1, 1, 7, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert ensure_utc(shifted) == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_to_naive_utc(self):
        aware = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert to_naive_utc(aware) == datetime(2026, 1, 1, 10, 0)

    def test_monotonic_after(self):
        earlier = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(seconds=1)
        assert monotonic_after(later, None) == later
        assert monotonic_after(later, earlier) == later
        assert monotonic_after(earlier, later) == later
        assert monotonic_after(earlier, datetime(2026, 1, 1, 10, 0, 1)) == later
