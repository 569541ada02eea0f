import time
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from services.mood_palette import accent_for_mood

from .mockup import BackgroundStyle, CameraAngle, ContentFit, DeviceType, LightingStyle


def new_asset_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


class GeneratedAsset(BaseModel):
    """A finished mockup plus everything needed to regenerate or refine it."""

    id: str = Field(default_factory=new_asset_id)
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")

    url: str
    image_mime_type: str = "image/png"
    # Verbatim source payload; never re-encoded
    original_base64: str
    original_mime_type: str

    device_type: DeviceType
    background_style: BackgroundStyle
    lighting: LightingStyle
    angle: CameraAngle
    color_mood: str
    content_fit: Optional[ContentFit] = ContentFit.COVER
    description: Optional[str] = None
    custom_prompt: Optional[str] = None
    custom_background_prompt: Optional[str] = None

    tagline: Optional[str] = None
    strategy: Optional[str] = None
    app_category: Optional[str] = None
    target_audience: Optional[str] = None
    dominant_colors: List[str] = Field(default_factory=list)
    suggested_props: List[str] = Field(default_factory=list)

    prompt: str = ""

    seo_title: Optional[str] = None
    seo_keywords: Optional[str] = None
    social_caption: Optional[str] = None
    alt_text: Optional[str] = None
    conversion_score: Optional[int] = Field(None, ge=0, le=100)
    variant_label: Optional[str] = None

    is_favorite: bool = False
    metadata_degraded: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def accent_color(self) -> str:
        return accent_for_mood(self.color_mood).name


class ReorderAssetsRequest(BaseModel):
    asset_ids: List[str] = Field(..., description="Every asset id, in the new order")


class AssetListResponse(BaseModel):
    items: List[GeneratedAsset]
    total: int = Field(..., ge=0)
