"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App metadata
    APP_NAME: str = "Duoduo Bargain"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./data/bargain.db"

    # Remote chat endpoint (SecondMe)
    CHAT_API_BASE: str = "https://app.mindos.com/gate/lab"
    CHAT_MODEL: str = "secondme-chat"
    CHAT_TIMEOUT: int = 60  # seconds, read timeout

    # Negotiation loop
    MAX_BARGAIN_EXCHANGES: int = 10
    EXCHANGE_DELAY_MS: int = 2000

    # Demo publisher used when the real publisher has no credential
    MOCK_PUBLISHER_FALLBACK: bool = False
    MOCK_PUBLISHER_TOKEN: str = "mock-token"

    # CORS - comma-separated string
    CORS_ORIGINS: str = "http://localhost:3000"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/app.log"

    # Streaming / SSE
    SSE_PING_INTERVAL: int = 15  # seconds between keep-alive comments

    @field_validator("MAX_BARGAIN_EXCHANGES")
    @classmethod
    def validate_max_exchanges(cls, v: int) -> int:
        """At least one exchange is required for a negotiation to happen."""
        if v < 1:
            raise ValueError("MAX_BARGAIN_EXCHANGES must be >= 1")
        return v

    @field_validator("EXCHANGE_DELAY_MS")
    @classmethod
    def validate_exchange_delay(cls, v: int) -> int:
        if v < 0:
            raise ValueError("EXCHANGE_DELAY_MS must be >= 0")
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Accept CORS_ORIGINS as a list or a comma-separated string."""
        if isinstance(v, list):
            return ",".join(v)
        return v

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def exchange_delay_seconds(self) -> float:
        return self.EXCHANGE_DELAY_MS / 1000.0

    class Config:
        # Look for .env in repo root first, then backend/.env
        env_file = [
            str(Path(__file__).parent.parent.parent.parent / ".env"),
            str(Path(__file__).parent.parent.parent / ".env"),
        ]
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Singleton instance
settings = Settings()
