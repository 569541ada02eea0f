import logging
from enum import Enum
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)


_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class AppMode(str, Enum):
    DEV = "dev"
    PROD = "prod"


class Settings(BaseSettings):
    # Application mode - defaults to DEV
    APP_MODE: AppMode = AppMode.DEV

    # Debug mode - MUST be False in production
    DEBUG: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Google Gemini API. Empty key means generation is not configured.
    GOOGLE_API_KEY: str = ""

    # High-fidelity image tier, then the cheaper fallback tier
    GEMINI_IMAGE_MODEL: str = "gemini-3-pro-image-preview"
    GEMINI_IMAGE_FALLBACK_MODEL: str = "gemini-2.5-flash-image"
    # Structured-text model used for screenshot analysis and SEO metadata
    GEMINI_TEXT_MODEL: str = "gemini-2.5-flash"

    IMAGE_ASPECT_RATIO: str = "4:3"
    # Only requested from the high-fidelity tier
    IMAGE_SIZE: str = "4K"

    # Retry policy shared by every outbound model call
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_INITIAL_DELAY_MS: int = 2000
    API_TIMEOUT_SECONDS: int = 120

    # Local storage for generated images
    STORAGE_DIR: str = "storage"

    # Bulk export layout
    EXPORT_FOLDER_NAME: str = "MockupStudio_Package"
    EXPORT_ARCHIVE_NAME: str = "MockupStudio_Assets.zip"

    # Upload limits
    MAX_UPLOAD_SIZE_MB: int = 10
    MAX_SOURCES_PER_RUN: int = 10

    # CORS - comma-separated list of extra allowed origins
    CORS_ALLOWED_ORIGINS: str = ""

    LOG_LEVEL: str = "INFO"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """
        Get allowed CORS origins.

        In production only explicitly configured origins are allowed; an empty
        list disables cross-origin requests.
        """
        origins = list(_DEV_ORIGINS) if self.APP_MODE == AppMode.DEV else []

        if self.CORS_ALLOWED_ORIGINS:
            custom_origins = [
                o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()
            ]
            origins.extend(custom_origins)

        if not origins and self.APP_MODE == AppMode.PROD:
            logger.warning(
                "No CORS_ALLOWED_ORIGINS configured in production. "
                "Cross-origin requests will be blocked."
            )
        return origins

    @property
    def max_upload_size_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def ai_configured(self) -> bool:
        return bool(self.GOOGLE_API_KEY.strip())

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env variables


def _validate_settings(settings: Settings) -> Settings:
    """
    Validate settings and warn/error on misconfiguration.

    DEBUG in production is fatal; a missing API key only disables generation.
    """
    if settings.RETRY_MAX_ATTEMPTS < 1:
        raise ValueError("RETRY_MAX_ATTEMPTS must be at least 1")
    if settings.RETRY_INITIAL_DELAY_MS < 0:
        raise ValueError("RETRY_INITIAL_DELAY_MS cannot be negative")

    if settings.APP_MODE == AppMode.PROD:
        if settings.DEBUG:
            error_msg = (
                "CRITICAL: DEBUG=True in production! "
                "Debug mode exposes sensitive information in error responses. "
                "Set DEBUG=False or remove the DEBUG environment variable."
            )
            logger.critical(error_msg)
            raise ValueError(error_msg)

        if not settings.ai_configured:
            logger.warning(
                "GOOGLE_API_KEY not configured in production. "
                "Analysis and generation requests will be rejected."
            )

    return settings


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Settings are validated on first access.
    """
    settings = Settings()
    return _validate_settings(settings)
