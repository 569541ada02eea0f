from enum import Enum
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .validators import normalize_optional_text


class DeviceType(str, Enum):
    AUTO = "Auto"
    SMARTPHONE = "Smartphone"
    MARKETING_HERO = "Marketing Hero"
    LAPTOP = "Laptop"
    DESKTOP = "Desktop"
    TABLET = "Tablet"
    SMART_WATCH = "Smart Watch"


class BackgroundStyle(str, Enum):
    AUTO = "Auto"
    CUSTOM = "Custom"
    STUDIO = "Studio"
    OFFICE = "Office"
    NATURE = "Nature"
    GRADIENT = "Gradient"
    DARK = "Dark"
    GEOMETRIC = "Geometric"
    CITY = "City"
    LIFESTYLE = "Lifestyle"


class LightingStyle(str, Enum):
    AUTO = "Auto"
    SOFT = "Soft"
    DRAMATIC = "Dramatic"
    NEON = "Neon"
    NATURAL = "Natural"
    STUDIO_BOX = "Studio Box"


class CameraAngle(str, Enum):
    AUTO = "Auto"
    PERSPECTIVE = "Perspective"
    FRONT = "Front"
    ISOMETRIC = "Isometric"
    FLOATING = "Floating"
    TOP_DOWN = "Top Down"


class ContentFit(str, Enum):
    COVER = "Cover"
    CONTAIN = "Contain"
    TOP_ALIGN = "Top Align"


class Variant(str, Enum):
    A = "A"
    B = "B"


E = TypeVar("E", bound=Enum)


def _fold(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch.isalnum())


def coerce_enum(enum_cls: Type[E], value: Any, default: E) -> E:
    """
    Coerce an untrusted value to a member of `enum_cls`, or return `default`.

    Accepts members, values and member names. Matching ignores case,
    whitespace and separators, so "top align", "TopAlign" and "TOP_ALIGN"
    all resolve to the same member.
    """
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default
    folded = _fold(value)
    if not folded:
        return default
    for member in enum_cls:
        if _fold(str(member.value)) == folded or _fold(member.name) == folded:
            return member
    return default


MOOD_MAX_LENGTH = 200
TAGLINE_MAX_LENGTH = 300
LABEL_MAX_LENGTH = 200
PROMPT_MAX_LENGTH = 2000

_OPTIONAL_TEXT_FIELDS = (
    "description",
    "custom_background_prompt",
    "marketing_tagline",
    "custom_prompt",
    "target_seo_title",
    "target_social_caption",
    "detected_app_category",
    "detected_audience",
)


class MockupSettings(BaseModel):
    """
    Everything that shapes a generation request.

    Values are immutable; workflows derive new settings with
    ``with_changes(...)`` so the caller's copy is never mutated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device_type: DeviceType = DeviceType.SMARTPHONE
    background_style: BackgroundStyle = BackgroundStyle.STUDIO
    lighting: LightingStyle = LightingStyle.SOFT
    angle: CameraAngle = CameraAngle.PERSPECTIVE
    content_fit: ContentFit = ContentFit.COVER
    color_mood: str = Field("Professional, Clean", max_length=MOOD_MAX_LENGTH)

    description: Optional[str] = Field(None, max_length=PROMPT_MAX_LENGTH)
    custom_background_prompt: Optional[str] = Field(None, max_length=PROMPT_MAX_LENGTH)
    marketing_tagline: Optional[str] = Field(None, max_length=TAGLINE_MAX_LENGTH)
    # Strategy note, usually "Visual Strategy: ..." after analysis
    custom_prompt: Optional[str] = Field(None, max_length=PROMPT_MAX_LENGTH)

    # One-shot overrides applied to the next metadata result only
    target_seo_title: Optional[str] = Field(None, max_length=TAGLINE_MAX_LENGTH)
    target_social_caption: Optional[str] = Field(None, max_length=PROMPT_MAX_LENGTH)

    enable_ab_testing: bool = False

    detected_app_category: Optional[str] = Field(None, max_length=LABEL_MAX_LENGTH)
    detected_audience: Optional[str] = Field(None, max_length=LABEL_MAX_LENGTH)
    detected_colors: List[str] = Field(default_factory=list)
    suggested_props: List[str] = Field(default_factory=list)

    @field_validator("device_type", mode="before")
    @classmethod
    def coerce_device_type(cls, value: Any) -> DeviceType:
        return coerce_enum(DeviceType, value, DeviceType.SMARTPHONE)

    @field_validator("background_style", mode="before")
    @classmethod
    def coerce_background_style(cls, value: Any) -> BackgroundStyle:
        return coerce_enum(BackgroundStyle, value, BackgroundStyle.STUDIO)

    @field_validator("lighting", mode="before")
    @classmethod
    def coerce_lighting(cls, value: Any) -> LightingStyle:
        return coerce_enum(LightingStyle, value, LightingStyle.SOFT)

    @field_validator("angle", mode="before")
    @classmethod
    def coerce_angle(cls, value: Any) -> CameraAngle:
        return coerce_enum(CameraAngle, value, CameraAngle.PERSPECTIVE)

    @field_validator("content_fit", mode="before")
    @classmethod
    def coerce_content_fit(cls, value: Any) -> ContentFit:
        return coerce_enum(ContentFit, value, ContentFit.COVER)

    @field_validator("color_mood", mode="before")
    @classmethod
    def normalize_color_mood(cls, value: Any) -> Any:
        normalized = normalize_optional_text(value)
        if normalized is None:
            return "Professional, Clean"
        return normalized

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def normalize_optional_fields(cls, value: Any) -> Any:
        return normalize_optional_text(value)

    @field_validator("detected_colors", "suggested_props", mode="before")
    @classmethod
    def normalize_text_lists(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [item.strip() for item in value if isinstance(item, str) and item.strip()]
        return value

    @model_validator(mode="after")
    def require_custom_background_text(self) -> "MockupSettings":
        if (
            self.background_style == BackgroundStyle.CUSTOM
            and not self.custom_background_prompt
        ):
            raise ValueError(
                "custom_background_prompt is required when background_style is Custom"
            )
        return self

    def with_changes(self, **changes: Any) -> "MockupSettings":
        """Return a validated copy with `changes` applied."""
        data = self.model_dump()
        data.update(changes)
        return MockupSettings.model_validate(data)


DEFAULT_SETTINGS = MockupSettings()


# Color mood shortcuts offered by the settings form
COLOR_PRESETS: List[str] = [
    "Vibrant",
    "Muted",
    "Professional Blue",
    "Warm Tones",
    "Cool Gradients",
    "Dark Mode",
    "Pastel",
    "Monochrome",
    "Cyberpunk Neon",
    "Earthy & Natural",
]
