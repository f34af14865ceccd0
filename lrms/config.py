"""Application configuration using pydantic-settings"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Land Record Management System"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # API
    API_PREFIX: str = "/api"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./land_records.db"
    DATABASE_ECHO: bool = False

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # JSON upload settings
    MAX_UPLOAD_SIZE_MB: int = 10
    ALLOWED_UPLOAD_EXTENSIONS: str = ".json"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def allowed_extensions_list(self) -> List[str]:
        return [ext.strip().lower() for ext in self.ALLOWED_UPLOAD_EXTENSIONS.split(",")]

    # Ingestion defaults
    INVALID_REASON_SENTINEL: str = "NA"
    DEFAULT_TENURE: str = "Navi"
    DEFAULT_HUKAM_TYPE: str = "SSRD"

    @field_validator("INVALID_REASON_SENTINEL")
    @classmethod
    def validate_sentinel(cls, v: str) -> str:
        # An invalid nondh must always end up with a non-empty reason
        if not v.strip():
            raise ValueError("INVALID_REASON_SENTINEL must not be empty")
        return v

    @field_validator("DATABASE_URL")
    @classmethod
    def warn_sync_driver(cls, v: str) -> str:
        if v.startswith("sqlite") and "+aiosqlite" not in v:
            logger.warning(
                "DATABASE_URL uses a synchronous SQLite driver; "
                "the async engine expects sqlite+aiosqlite://"
            )
        return v

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
