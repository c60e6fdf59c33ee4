"""
Application configuration.

Uses pydantic-settings to load values from environment variables / .env file.
All secrets (DB password, bot token, storage keys) come from .env — never hardcoded.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown env vars
    )

    # ── Database ──────────────────────────────────────────────
    postgres_db: str = "postgres"
    postgres_user: str = "postgres"
    postgres_password: str = "password"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy connection string for asyncpg."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # ── Telegram ──────────────────────────────────────────────
    telegram_bot_token: str = ""

    # ── Object storage (Supabase-compatible REST) ────────────
    storage_url: str = ""                 # e.g. "https://xyz.supabase.co"
    storage_api_key: str = ""             # service or anon key, sent as Bearer token
    storage_bucket: str = "property-images"
    # Optional server-side compression endpoint; empty → direct upload only
    image_compress_url: str = ""
    upload_timeout: float = 30.0

    # ── Listing wizard ───────────────────────────────────────
    max_images: int = 6
    draft_key_prefix: str = "listing_form"
    default_country: str = "Tanzania"

    # ── Admin API ────────────────────────────────────────────
    admin_api_key: str = ""

    # ── App ───────────────────────────────────────────────────
    log_level: str = "INFO"
    debug: bool = False


# Singleton — import this wherever config is needed
settings = Settings()
