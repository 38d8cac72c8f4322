from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from mongo_repository.database.collection import get_database_name
from mongo_repository.repository.retry import RetryPolicy, exponential_backoff, no_backoff


class Settings(BaseSettings):
    # --- Basic configuration ---
    APP_NAME: str = "Mongo Repository"
    APP_DESCRIPTION: str = "Generic MongoDB repository with a hierarchical category sample app"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"  # development, production, testing
    DEBUG: bool = True

    # --- Database (MongoDB) ---
    # Canonical URL form; the path segment names the database
    MONGODB_URL: str = "mongodb://localhost:27017/app_db"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # --- Read retry policy ---
    MONGODB_RETRY_COUNT: int = 3  # retries after the first attempt; 3 means up to 4 attempts
    MONGODB_RETRY_BACKOFF_SECONDS: float = 0.0  # 0 retries immediately

    @property
    def MONGODB_DATABASE(self) -> str:
        return get_database_name(self.MONGODB_URL)

    def build_retry_policy(self) -> RetryPolicy:
        """Retry policy for repositories built from these settings."""
        if self.MONGODB_RETRY_BACKOFF_SECONDS > 0:
            backoff = exponential_backoff(self.MONGODB_RETRY_BACKOFF_SECONDS)
        else:
            backoff = no_backoff
        return RetryPolicy(retries=self.MONGODB_RETRY_COUNT, backoff=backoff)

    # --- Logging ---
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # --- API route prefixes (optional, overridable in private projects) ---
    API_V1_CATEGORIES_PREFIX: str = "/api/v1/categories"

    # --- Pydantic ---
    # Load env from project root .env; priority: env vars > .env > defaults
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


# Singleton settings instance
settings = Settings()
