"""
Bulk export of generated assets.

Creates one ZIP with a single top-level folder holding, per asset:
  <title>.png       the generated mockup (extension follows the stored type)
  <title>_info.txt  plain-text record of metadata and settings used
"""

from __future__ import annotations

import logging
import re
import zipfile
from io import BytesIO
from typing import Iterable, Optional

from config import get_settings
from schemas.asset import GeneratedAsset
from services.errors import ExportFailed
from services.image_validation import extension_for_image_mime_type
from services.storage import StorageBackend

logger = logging.getLogger(__name__)

_UNSAFE_TITLE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_title(title: str) -> str:
    """Keep only ASCII letters, digits, hyphen and underscore."""
    return _UNSAFE_TITLE_CHARS.sub("", title or "")


def _value(value: object, default: str = "") -> str:
    if value is None:
        return default
    if hasattr(value, "value"):
        value = value.value
    text = str(value)
    return text if text else default


def build_info_record(asset: GeneratedAsset) -> str:
    score = asset.conversion_score if asset.conversion_score else "N/A"
    lines = [
        f"TITLE: {_value(asset.seo_title)}",
        f"TAGLINE: {_value(asset.tagline)}",
        f"VARIANT: {_value(asset.variant_label, 'Standard')}",
        "",
        f"CONVERSION SCORE: {score}/100",
        f"TARGET AUDIENCE: {_value(asset.target_audience, 'General')}",
        f"APP CATEGORY: {_value(asset.app_category, 'General')}",
        "",
        "DESCRIPTION (SHORT):",
        asset.description or asset.alt_text or "",
        "",
        "SEO KEYWORDS:",
        _value(asset.seo_keywords),
        "",
        "SOCIAL MEDIA CAPTION:",
        _value(asset.social_caption),
        "",
        "ALT TEXT:",
        _value(asset.alt_text),
        "",
        "SETTINGS USED:",
        f"Device: {_value(asset.device_type)}",
        f"Background: {_value(asset.background_style)}",
        f"Lighting: {_value(asset.lighting)}",
        f"Angle: {_value(asset.angle)}",
        f"Content Fit: {_value(asset.content_fit, 'Cover')}",
        f"Mood: {_value(asset.color_mood)}",
    ]
    return "\n".join(lines).strip()


def _unique_name(base: str, used: set[str]) -> str:
    name = base
    suffix = 2
    while name.lower() in used:
        name = f"{base}-{suffix}"
        suffix += 1
    used.add(name.lower())
    return name


async def build_export_archive(
    assets: Iterable[GeneratedAsset],
    storage: StorageBackend,
    *,
    folder_name: Optional[str] = None,
) -> bytes:
    """
    Bundle every asset into an in-memory ZIP.

    Fails as a whole: any fetch or archive error raises ExportFailed and no
    partial archive is returned.
    """
    folder = folder_name or get_settings().EXPORT_FOLDER_NAME
    items = list(assets)
    buffer = BytesIO()
    used: set[str] = set()

    try:
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for asset in items:
                safe_title = sanitize_title(asset.seo_title or "") or sanitize_title(
                    f"mockup_{asset.id}"
                )
                name = _unique_name(safe_title, used)
                extension = extension_for_image_mime_type(asset.image_mime_type) or ".png"

                data = await storage.download_bytes(asset.url)
                zf.writestr(f"{folder}/{name}{extension}", data)
                zf.writestr(f"{folder}/{name}_info.txt", build_info_record(asset))
    except Exception as e:
        logger.warning("Bulk export failed: %s", e)
        raise ExportFailed("Failed to generate zip file. Please try again.") from e

    archive = buffer.getvalue()
    logger.info("Export archive created: %d assets (%d KB)", len(items), len(archive) // 1024)
    return archive
