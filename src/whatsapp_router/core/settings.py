"""
Application settings loaded from environment variables.
"""

import functools

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./whatsapp_router.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    # WhatsApp Cloud API
    WHATSAPP_PROVIDER: str = "stub"  # meta, stub
    WHATSAPP_PHONE_NUMBER_ID: str = ""
    WHATSAPP_ACCESS_TOKEN: str = ""
    WHATSAPP_GRAPH_API_VERSION: str = "v21.0"
    WHATSAPP_WEBHOOK_VERIFY_TOKEN: str | None = None
    WHATSAPP_APP_SECRET: str | None = None
    WHATSAPP_TIMEOUT: float = 30.0

    # Media
    MEDIA_UPLOAD_DIR: str = "public/uploads"
    MEDIA_PUBLIC_PREFIX: str = "/uploads"

    # Project membership probes
    MEMBERSHIP_PROBE_TIMEOUT: float = 60.0

    # Notifications
    NOTIFICATIONS_STREAM: str = "wr:notifications"

    # Bot copy
    BOT_DISPLAY_NAME: str = "Alessandro"
    TEMPLATE_FOOTER: str = "Plataforma feita por Alessandro Cardoso"

    LOG_LEVEL: str = "INFO"


@functools.lru_cache()
def get_settings() -> Settings:
    """Get settings (cached)."""
    return Settings()
