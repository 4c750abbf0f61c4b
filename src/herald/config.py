"""Configuration management using Pydantic settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_WEBHOOK_URL = "https://discord.com/api/webhooks/your-webhook-url-here"


class Settings(BaseSettings):
    """Herald settings loaded from environment variables (``HERALD_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="HERALD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Endpoint
    webhook_url: str = ""
    webhook_enabled: bool = True
    request_timeout: float = Field(default=10.0, gt=0)  # seconds per send

    # Update cycle
    update_interval: float = Field(default=60.0, gt=0)  # seconds between ticks
    send_full_updates: bool = False  # False = changed villagers only
    max_records_to_show: int = Field(default=25, ge=0)

    send_startup_notification: bool = True

    log_level: str = "INFO"

    @property
    def webhook_configured(self) -> bool:
        """True when a real endpoint URL has been supplied."""
        url = self.webhook_url.strip()
        return bool(url) and url != PLACEHOLDER_WEBHOOK_URL


settings = Settings()
