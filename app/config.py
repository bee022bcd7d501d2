from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    LOG_LEVEL: str = "INFO"

    # Postgres store (optional - the in-memory store needs no database)
    DATABASE_URL: str | None = None

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    # =================================================================
    # MATCHING SETTINGS
    # =================================================================
    # Hard cap on rows pulled from the store per ranking call
    MATCH_CANDIDATE_CAP: int = 100
    MATCH_RESULT_LIMIT: int = 20
    MATCH_FEEDBACK_HISTORY_LIMIT: int = 100
    # Worker pool for the per-candidate fan-out, sized to the candidate cap
    SCORING_MAX_CONCURRENCY: int = 100

    # Response likelihood
    RESPONSE_ACTIVITY_WINDOW_DAYS: int = 30
    RESPONSE_HISTORY_LIMIT: int = 20

    # Collaboration lifecycle
    TRANSITION_MAX_RETRIES: int = 3

    # Notifications
    NOTIFY_TIMEOUT_SECONDS: float = 2.0

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
            config.update({"min_size": 1, "max_size": 4, "timeout": 15.0})

        return config

    def scoring_concurrency(self) -> int:
        """Fan-out width, never wider than the candidate cap."""
        return max(1, min(self.SCORING_MAX_CONCURRENCY, self.MATCH_CANDIDATE_CAP))


settings = Settings()
