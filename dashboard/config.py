from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_VERSION: str = "0.8-beta"
    DATABASE_URL: str = "sqlite:///./dashboard.db"
    STORAGE_BACKEND: str = "sql"
    DATASTORE_PROJECT_ID: Optional[str] = None
    DATASTORE_NAMESPACE: Optional[str] = None

    # None locks the embedded backend only
    REPOSITORY_LOCK: Optional[bool] = None
    LOCK_TIMEOUT_SECONDS: Optional[float] = None
    SQL_STATEMENT_TIMEOUT_MS: Optional[int] = None

    CORS_ORIGINS: Union[str, List[str]] = ["http://localhost", "http://localhost:5173", "*"]
    LOG_LEVEL: str = "INFO"

    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/api/services/google/callback"
    OUTLOOK_CLIENT_ID: str = ""
    OUTLOOK_CLIENT_SECRET: str = ""
    OUTLOOK_REDIRECT_URI: str = "http://localhost:8000/api/services/outlook/callback"
    FRONTEND_BASE_URL: str = "http://localhost:5173"

    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    ADMIN_USER_IDS: Union[str, List[str]] = ["admin"]

    FEED_REFRESH_MINUTES: int = 15
    FEED_ITEMS_LIMIT: int = 100
    DEFAULT_DISPLAY_COUNT: int = 5
    EMAIL_PAGE_SIZE: int = 30
    FEED_STORE_BACKEND: str = "thread"
    FEED_STORE_WORKERS: int = 4

    # Celery Configuration
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"

    @field_validator("CORS_ORIGINS", "ADMIN_USER_IDS", mode="before")
    @classmethod
    def parse_comma_separated(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("STORAGE_BACKEND", "FEED_STORE_BACKEND")
    @classmethod
    def lower_case_choice(cls, v: str) -> str:
        return v.lower()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
