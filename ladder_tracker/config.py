from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Supabase Postgres (queue + snapshot tables)
    SUPABASE_DB_URL: str

    # Redis settings (optional, only needed for the shared Riot request budget)
    REDIS_URL: str | None = None

    # Riot API settings
    RIOT_API_KEY: str
    RIOT_DEFAULT_REGION: str = "la1"
    RIOT_REQUEST_TIMEOUT_SECONDS: float = 10.0
    RIOT_RATE_BUDGET_ENABLED: bool = False
    RIOT_RATE_LIMIT_PER_SECOND: int = 20
    RIOT_RATE_LIMIT_PER_TWO_MINUTES: int = 100

    # =================================================================
    # LP QUEUE SETTINGS
    # =================================================================
    LP_QUEUE_BATCH_SIZE: int = 20
    LP_QUEUE_REQUEST_DELAY_MS: int = 100
    # Requeues allowed per job; None = requeue forever on 429
    LP_QUEUE_MAX_RETRIES: int | None = Field(default=None, ge=1)
    LP_QUEUE_STALE_PROCESSING_MINUTES: int = 10  # 0 disables the sweep
    LP_QUEUE_INTERVAL_SECONDS: int = 60

    # Match history synchronizer, "package.module:function"
    MATCH_SYNC_HANDLER: str | None = None
    MATCH_SYNC_LIMIT: int = 20

    # Active match monitor
    ACTIVE_MONITOR_IN_GAME_LIMIT: int = 30
    ACTIVE_MONITOR_PASSIVE_LIMIT: int = 3
    ACTIVE_MONITOR_SYNC_LIMIT: int = 10

    # Shared secret for the cron trigger routes
    CRON_SECRET: str | None = None

    # =================================================================
    # DATABASE POOL SETTINGS - Simple and configurable
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
            # The worker is sequential; a couple of connections is plenty locally
            config.update(
                {
                    "min_size": 1,
                    "max_size": 4,
                    "timeout": 15.0,
                }
            )

        return config

    def get_riot_rate_limits(self) -> list[tuple[int, int]]:
        """Riot enforces two windows: (limit, window_seconds) pairs."""
        return [
            (self.RIOT_RATE_LIMIT_PER_SECOND, 1),
            (self.RIOT_RATE_LIMIT_PER_TWO_MINUTES, 120),
        ]

    def stale_processing_enabled(self) -> bool:
        return self.LP_QUEUE_STALE_PROCESSING_MINUTES > 0


settings = Settings()

# =================================================================
# QUICK CONFIGURATION REFERENCE
# =================================================================
"""
Riot API key tiers:

DEVELOPMENT KEY:
    RIOT_RATE_LIMIT_PER_SECOND: int = 20
    RIOT_RATE_LIMIT_PER_TWO_MINUTES: int = 100

PERSONAL / PRODUCTION KEY (check the developer portal for your app):
    RIOT_RATE_LIMIT_PER_SECOND: int = 500
    RIOT_RATE_LIMIT_PER_TWO_MINUTES: int = 30000

With LP_QUEUE_REQUEST_DELAY_MS = 100 a single worker stays at ~10 req/s,
which is why the shared budget is only needed with several workers.
"""
