"""
Rebuild generation settings from a stored asset.

Used by replace-screen-content, refine and regenerate-metadata. Without
overrides the mapping is idempotent: reconciling, regenerating and
reconciling again yields field-identical settings.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from schemas.asset import GeneratedAsset
from schemas.mockup import (
    BackgroundStyle,
    CameraAngle,
    ContentFit,
    DeviceType,
    LightingStyle,
    MockupSettings,
    Variant,
    coerce_enum,
)
from services.image_validation import SourceImage, decode_source, extension_for_image_mime_type

logger = logging.getLogger(__name__)

RESTORED_FILENAME_STEM = "restored_screenshot"


@dataclass(frozen=True)
class RefineSeed:
    settings: MockupSettings
    source: Optional[SourceImage]


def settings_from_asset(asset: GeneratedAsset, **overrides: Any) -> MockupSettings:
    """Map an asset's denormalized fields back onto a settings value."""
    background = coerce_enum(
        BackgroundStyle, asset.background_style, BackgroundStyle.STUDIO
    )
    if background == BackgroundStyle.CUSTOM and not asset.custom_background_prompt:
        background = BackgroundStyle.STUDIO

    data: dict[str, Any] = {
        "device_type": coerce_enum(DeviceType, asset.device_type, DeviceType.SMARTPHONE),
        "background_style": background,
        "lighting": coerce_enum(LightingStyle, asset.lighting, LightingStyle.SOFT),
        "angle": coerce_enum(CameraAngle, asset.angle, CameraAngle.PERSPECTIVE),
        "content_fit": coerce_enum(ContentFit, asset.content_fit, ContentFit.COVER),
        "color_mood": asset.color_mood,
        "description": asset.description,
        "custom_background_prompt": asset.custom_background_prompt,
        "marketing_tagline": asset.tagline,
        "custom_prompt": asset.custom_prompt,
        "enable_ab_testing": False,
        "target_seo_title": None,
        "target_social_caption": None,
        "detected_app_category": asset.app_category,
        "detected_audience": asset.target_audience,
        "detected_colors": list(asset.dominant_colors),
        "suggested_props": list(asset.suggested_props),
    }
    data.update(overrides)
    return MockupSettings.model_validate(data)


def variant_for_asset(asset: GeneratedAsset) -> Variant:
    if asset.variant_label and "B" in asset.variant_label:
        return Variant.B
    return Variant.A


def settings_for_replacement(
    asset: GeneratedAsset, content_fit: Any = None
) -> MockupSettings:
    if content_fit is None:
        return settings_from_asset(asset)
    return settings_from_asset(
        asset, content_fit=coerce_enum(ContentFit, content_fit, ContentFit.COVER)
    )


def restore_source(asset: GeneratedAsset) -> Optional[SourceImage]:
    """Rebuild the original screenshot from the asset's retained payload."""
    extension = extension_for_image_mime_type(asset.original_mime_type) or ".png"
    try:
        return decode_source(
            asset.original_base64,
            asset.original_mime_type,
            filename=f"{RESTORED_FILENAME_STEM}{extension}",
        )
    except ValueError as e:
        logger.warning("Could not restore source for asset %s: %s", asset.id, e)
        return None


def refine_from_asset(asset: GeneratedAsset) -> RefineSeed:
    """Seed a new run from an asset: A/B off, current title and caption as overrides."""
    settings = settings_from_asset(
        asset,
        enable_ab_testing=False,
        target_seo_title=asset.seo_title,
        target_social_caption=asset.social_caption,
    )
    return RefineSeed(settings=settings, source=restore_source(asset))
