from __future__ import annotations
"""statushub/core/config.py
~~~~~~~~~~~~~~~~~~~~~~~~
Paramètres (pydantic-settings).
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+psycopg://postgres:postgres@db:5432/statushub"
    DB_CONNECT_TIMEOUT: int = Field(5)
    REDIS_URL: str = "redis://redis:6379/0"

    # Secrets partagés (cron externe / webhooks Statuspage)
    CRON_SECRET: Optional[str] = None
    WEBHOOK_SECRET: Optional[str] = None

    SITE_URL: str = "https://statushub-seven.vercel.app"

    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: str = "StatusHub <alerts@statushub.dev>"
    SMTP_USE_TLS: bool = True

    # Boucle de polling
    POLL_INTERVAL_SECONDS: int = 180
    LIVE_CACHE_TTL_SECONDS: int = 120
    FETCH_TIMEOUT_SECONDS: float = 15.0
    FETCH_BATCH_SIZE: int = 10

    # Anti-spam (fenêtres glissantes sur email_alert_log)
    RATE_LIMIT_SERVICE_MINUTES: int = 30
    RATE_LIMIT_USER_WINDOW_MINUTES: int = 60
    RATE_LIMIT_USER_MAX: int = 10

    RESOLVED_RETENTION_HOURS: int = 72
    WHAT_HAPPENED_MAX_CHARS: int = 400

    CORS_ALLOW_ORIGINS: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def webhook_secret(self) -> Optional[str]:
        """Secret des webhooks ; retombe sur CRON_SECRET s'il n'est pas défini."""
        return self.WEBHOOK_SECRET or self.CRON_SECRET

settings = Settings()
