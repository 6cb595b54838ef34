"""
Application configuration using Pydantic Settings.

Environment-based infrastructure switching is controlled by the ENVIRONMENT variable.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./livechat.db"
    DATABASE_ECHO: bool = False

    # ===========================================
    # Auth
    # ===========================================
    # Only the mock provider ships with this service; real session
    # handling lives in the main site and hands us bearer tokens.
    AUTH_PROVIDER: Literal["mock"] = "mock"
    AUTH_ENABLED: bool = True
    # Comma separated "token:Display Name" pairs recognised as admins
    ADMIN_TOKENS: str = "admin-token:Admin"

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # ===========================================
    # Chat
    # ===========================================
    DEFAULT_CHAT_NAME: str = "Anônimo"
    MAX_MESSAGE_LENGTH: int = 5000
    MAX_NAME_LENGTH: int = 120

    # ===========================================
    # Realtime
    # ===========================================
    TYPING_EXPIRY_SECONDS: float = 5.0
    TYPING_SWEEP_INTERVAL_SECONDS: float = 1.0
    WS_SEND_QUEUE_SIZE: int = 256

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"

    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT == "test"

    def admin_token_map(self) -> dict[str, str]:
        """Parse ADMIN_TOKENS into {token: display_name}."""
        tokens: dict[str, str] = {}
        for entry in self.ADMIN_TOKENS.split(","):
            entry = entry.strip()
            if not entry:
                continue
            token, _, name = entry.partition(":")
            token = token.strip()
            if token:
                tokens[token] = name.strip() or token
        return tokens


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
