from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Telegram settings
    BOT_TOKEN: str | None = None
    TG_API_ID: int | None = None
    TG_API_HASH: str | None = None

    # Development identity when no initData header is sent
    DEV_AUTH_BYPASS: bool = False  # also requires environment == "development"
    INIT_DATA_MAX_AGE_S: int = 86400  # 0 disables the auth_date check

    # Supabase / Postgres settings (credential store)
    SUPABASE_DB_URL: str | None = None

    # Redis settings (profile cache)
    REDIS_URL: str | None = None
    UPSTASH_REDIS_REST_URL: str | None = None
    UPSTASH_REDIS_REST_TOKEN: str | None = None

    ENCRYPTION_KEY: str | None = None

    # =================================================================
    # ENGAGEMENT ENGINE SETTINGS
    # =================================================================
    PROFILE_CACHE_TTL_S: int | None = None  # None keeps entries until invalidated
    CACHE_SYNTHESIZED_PROFILES: bool = True
    RECENCY_WINDOW_DAYS: int = 365
    MAX_CONVERSATIONS: int = 15
    MAX_MESSAGES_PER_CONVERSATION: int = 200
    TOP_CONTACTS_LIMIT: int = 15
    AGGREGATION_CONCURRENCY: int = 4
    AGGREGATION_TIMEOUT_S: float = 20.0
    PHOTO_LOOKUP_TIMEOUT_S: float = 5.0

    CORS_ALLOWED_ORIGINS: list[str] = ["*"]

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 8
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def redis_url(self) -> str | None:
        """
        Resolve the Redis connection URL.

        REDIS_URL wins; otherwise the Upstash REST host is turned into a native
        TLS URL, e.g. https://eu1-xyz.upstash.io -> rediss://default:<token>@eu1-xyz.upstash.io:6379
        """
        if self.REDIS_URL:
            return self.REDIS_URL
        if not self.UPSTASH_REDIS_REST_URL or not self.UPSTASH_REDIS_REST_TOKEN:
            return None
        host = urlparse(self.UPSTASH_REDIS_REST_URL).hostname or self.UPSTASH_REDIS_REST_URL.strip("/")
        return f"rediss://default:{self.UPSTASH_REDIS_REST_TOKEN}@{host}:6379"

    def telegram_api_configured(self) -> bool:
        return bool(self.TG_API_ID and self.TG_API_HASH)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 4, "timeout": 15.0})

        return config


settings = Settings()
