"""Environment configuration management for the review ledger service."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import List, Optional
import logging
import os

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Allow extra env vars without error
    )

    # Server configuration
    APP_NAME: str = "Review Ledger"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # External services
    REVIEWS_UPSTREAM_URL: str = "http://128.199.96.56:8005/reviews"
    DEFAULT_PAGE_SIZE: int = 5
    REQUEST_TIMEOUT: float = 10.0  # seconds
    # Demo convenience only: serve flagged placeholder reviews when upstream is down
    REVIEWS_SAMPLE_FALLBACK: bool = False

    # Data storage
    DATA_VOLUME_PATH: str = "/app/data"
    RESULTS_FILE: str = "verification_results.json"
    BACKUP_FILE: str = "verification_results_backup.json"
    LOG_FILE: str = "verification_log.txt"
    LEDGER_BACKEND: str = "file"  # file | redis | memory
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_LEDGER_KEY: str = "review_ledger:verifications"
    LEDGER_IO_TIMEOUT: float = 5.0  # seconds

    # Metrics
    POSITIVE_LABEL: str = "INCIDENT"
    CONFIDENCE_HIGH: float = 0.8
    CONFIDENCE_MEDIUM: float = 0.5

    # CORS settings
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["*"]
    CORS_HEADERS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# Global settings instance
settings = Settings()


def get_data_path(filename: str) -> Path:
    """Resolve a file name inside the data volume."""
    return Path(settings.DATA_VOLUME_PATH) / filename


def get_results_file_path() -> Path:
    return get_data_path(settings.RESULTS_FILE)


def get_backup_file_path() -> Path:
    return get_data_path(settings.BACKUP_FILE)


def get_log_file_path() -> Path:
    return get_data_path(settings.LOG_FILE)


def get_cors_config() -> dict:
    """Get CORS configuration."""
    return {
        "allow_origins": settings.CORS_ORIGINS,
        "allow_credentials": settings.CORS_CREDENTIALS,
        "allow_methods": settings.CORS_METHODS,
        "allow_headers": settings.CORS_HEADERS,
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Apply LOG_LEVEL / LOG_FORMAT to the root logger."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=settings.LOG_FORMAT,
    )


def validate_config() -> List[str]:
    """Report settings that fell back to their defaults."""
    warnings: List[str] = []

    for name in ("REVIEWS_UPSTREAM_URL", "DATA_VOLUME_PATH"):
        if not os.getenv(name):
            warnings.append(f"{name} not set, using default")

    if settings.LEDGER_BACKEND not in ("file", "redis", "memory"):
        warnings.append(f"Unknown LEDGER_BACKEND {settings.LEDGER_BACKEND!r}, using file")

    if warnings:
        logger.warning(f"Config warnings: {warnings}")

    return warnings
