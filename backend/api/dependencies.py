import logging
from typing import Optional

from fastapi import Depends, HTTPException, UploadFile, status
from pydantic import ValidationError

from config import Settings, get_settings
from schemas.mockup import MockupSettings
from services.asset_store import AssetStore
from services.asset_store import get_asset_store as _get_asset_store
from services.errors import MissingCredentialsError
from services.gemini import get_genai_client
from services.image_validation import (
    SourceImage,
    normalize_image_mime_type,
    validate_uploaded_image_payload,
)
from services.orchestrator import GenerationOrchestrator
from services.orchestrator import get_orchestrator as _get_orchestrator
from services.storage import StorageBackend
from services.storage import get_storage as _get_storage

logger = logging.getLogger(__name__)


def get_app_settings() -> Settings:
    return get_settings()


def get_asset_store() -> AssetStore:
    return _get_asset_store()


def get_storage() -> StorageBackend:
    return _get_storage()


def get_orchestrator() -> GenerationOrchestrator:
    return _get_orchestrator()


def require_ai_configured(settings: Settings = Depends(get_app_settings)) -> Settings:
    """503 when no Gemini API key is configured."""
    if not settings.ai_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI generation is not configured. Please set GOOGLE_API_KEY in .env",
        )
    return settings


def get_genai(settings: Settings = Depends(require_ai_configured)) -> object:
    """The shared Gemini SDK client."""
    try:
        return get_genai_client()
    except MissingCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )


async def read_source_upload(
    upload: UploadFile,
    *,
    max_size_bytes: int,
) -> SourceImage:
    """Read and validate one uploaded screenshot."""
    claimed_mime_type = normalize_image_mime_type(upload.content_type or "")
    if (
        claimed_mime_type
        and claimed_mime_type != "application/octet-stream"
        and not claimed_mime_type.startswith("image/")
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Allowed: PNG, JPG, WEBP",
        )

    try:
        content = await upload.read()
    except Exception:
        logger.exception("Failed to read uploaded screenshot")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to read uploaded file",
        )

    if len(content) == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file uploaded. Please select a valid image file.",
        )

    image_info = validate_uploaded_image_payload(
        content,
        claimed_mime_type=claimed_mime_type or None,
        max_size_bytes=max_size_bytes,
    )
    return SourceImage(
        data=content,
        mime_type=image_info.mime_type,
        filename=upload.filename or "",
    )


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text or None


def parse_settings_json(raw: Optional[str]) -> MockupSettings:
    """Parse the `settings` form field; absent or blank means defaults."""
    text = optional_text(raw)
    if text is None:
        return MockupSettings()
    try:
        return MockupSettings.model_validate_json(text)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[
                {"loc": ["body", "settings", *err["loc"]], "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ],
        )
