"""Configuration management for Inbox Sync.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the INBOX_SYNC_ prefix (e.g., INBOX_SYNC_API_BASE_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="INBOX_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Mailbox service
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Root URL of the remote mailbox service",
    )
    api_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for mailbox service requests in seconds",
    )

    # Inbox view
    page_size: int = Field(
        default=10,
        gt=0,
        description="Number of messages per page when a session starts",
    )
    refresh_interval_ms: int = Field(
        default=5000,
        gt=0,
        description="Polling interval used while auto refresh is enabled",
    )
    dedup_interval_ms: int = Field(
        default=2000,
        ge=0,
        description="Window in which identical list requests share one result",
    )
    clear_bulk_on_mailbox_switch: bool = Field(
        default=True,
        description=(
            "Drop the bulk selection when another mailbox is selected. "
            "Disable to keep ids selected across mailboxes."
        ),
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    @property
    def refresh_interval(self) -> float:
        """Polling interval in seconds."""
        return self.refresh_interval_ms / 1000

    @property
    def dedup_interval(self) -> float:
        """Dedup window in seconds."""
        return self.dedup_interval_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
