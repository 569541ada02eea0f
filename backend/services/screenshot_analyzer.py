"""
Screenshot analysis using Gemini vision.

Sends an app screenshot to the text model in structured-output mode and
turns the reply into suggested mockup settings plus marketing signals.
Analysis is advisory: any failure yields a fixed degraded result instead of
an error.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from config import get_settings
from schemas.mockup import (
    LABEL_MAX_LENGTH,
    MOOD_MAX_LENGTH,
    PROMPT_MAX_LENGTH,
    TAGLINE_MAX_LENGTH,
    BackgroundStyle,
    CameraAngle,
    DeviceType,
    LightingStyle,
    MockupSettings,
    coerce_enum,
)
from services.errors import RunCancelled
from services.gemini import response_text, run_with_timeout
from services.generation_task_utils import (
    clamp_score,
    normalize_hex_colors,
    normalize_text,
    normalize_text_list,
)
from services.image_validation import normalize_image_mime_type
from services.retry import invoke_with_retry

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3
MAX_PROPS = 3
MAX_COLORS = 5

STRATEGY_PREFIX = "Visual Strategy: "


@dataclass(frozen=True)
class AnalysisResult:
    device_type: DeviceType
    background_style: BackgroundStyle
    lighting: LightingStyle
    angle: CameraAngle
    color_mood: str
    strategy: str
    tagline: str
    app_category: str
    target_audience: str
    detected_colors: list[str]
    conversion_score: int
    suggested_backgrounds: list[BackgroundStyle] = field(default_factory=list)
    suggested_props: list[str] = field(default_factory=list)
    degraded: bool = False


DEGRADED_ANALYSIS = AnalysisResult(
    device_type=DeviceType.SMARTPHONE,
    background_style=BackgroundStyle.GRADIENT,
    lighting=LightingStyle.SOFT,
    angle=CameraAngle.PERSPECTIVE,
    color_mood="Clean",
    strategy="Standard professional presentation",
    tagline="Experience the Future",
    app_category="Technology",
    target_audience="Users",
    detected_colors=["#333333"],
    conversion_score=80,
    suggested_backgrounds=[],
    suggested_props=[],
    degraded=True,
)


def _enum_values(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


ANALYSIS_PROMPT = f"""\
You are a Chief Marketing Officer (CMO) and Creative Director for a luxury design agency.

Analyze this UI screenshot to create an "Award-Winning" marketing mockup.

1. **Categorization**: Exact Industry (e.g., "Premium Fintech", "Gourmet F&B", "SaaS Enterprise").
2. **Audience**: Who is the high-value buyer? (e.g., "Affluent Foodies", "C-Suite Executives").
3. **Visual Psychology**: Top 3 hex colors. What is the "Vibe"? (e.g., "Warm Luxury", "Cool Professional", "Cyberpunk").
4. **Conversion Score**: 0-100 based on UI clarity and premium feel.
5. **Contextual Storytelling (CRITICAL)**: Suggest 3 specific "Premium Props" to place in the background (blurred) that tell a story.
   - F&B: "Crystal wine glass", "Artisan bread", "Linen napkin".
   - Fintech: "Montblanc pen", "Leather wallet", "Espresso cup".
   - SaaS: "Minimalist plant", "Ceramic coffee mug", "Designer glasses".

Map suggestions to these values:
DeviceTypes: {_enum_values(DeviceType)}
BackgroundStyles: {_enum_values(BackgroundStyle)}
LightingStyles: {_enum_values(LightingStyle)}
CameraAngles: {_enum_values(CameraAngle)}

Return a JSON object.
"""

ANALYSIS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "deviceType": {"type": "STRING"},
        "backgroundStyle": {"type": "STRING"},
        "suggestedBackgrounds": {"type": "ARRAY", "items": {"type": "STRING"}},
        "lighting": {"type": "STRING"},
        "angle": {"type": "STRING"},
        "colorMood": {"type": "STRING"},
        "marketingTagline": {"type": "STRING"},
        "visualStrategy": {"type": "STRING"},
        "appCategory": {"type": "STRING"},
        "targetAudience": {"type": "STRING"},
        "detectedColors": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Array of Hex Codes",
        },
        "conversionScore": {"type": "INTEGER"},
        "suggestedProps": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "List of 3 premium prop strings",
        },
    },
    "required": [
        "deviceType",
        "backgroundStyle",
        "lighting",
        "angle",
        "colorMood",
        "marketingTagline",
        "visualStrategy",
        "suggestedBackgrounds",
        "appCategory",
        "targetAudience",
        "detectedColors",
        "conversionScore",
        "suggestedProps",
    ],
}


def extract_json_payload(raw_text: str) -> Any:
    """
    Parse a JSON reply, tolerating markdown fences and surrounding prose.

    Raises ValueError when no JSON object can be recovered.
    """
    text = (raw_text or "").strip()
    if not text:
        raise ValueError("Empty model response")

    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
        text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start < 0 or end <= start:
            raise ValueError("Model response is not JSON")
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"Model response is not JSON: {e}") from e


def parse_analysis_payload(payload: Any) -> AnalysisResult:
    """Coerce every field of a model reply, falling back per field."""
    if not isinstance(payload, dict):
        raise ValueError("Analysis payload must be a JSON object")

    raw_suggestions = payload.get("suggestedBackgrounds")
    suggestions: list[BackgroundStyle] = []
    if isinstance(raw_suggestions, list):
        suggestions = [
            coerce_enum(BackgroundStyle, item, BackgroundStyle.GRADIENT)
            for item in raw_suggestions[:MAX_SUGGESTIONS]
        ]

    return AnalysisResult(
        device_type=coerce_enum(DeviceType, payload.get("deviceType"), DeviceType.SMARTPHONE),
        background_style=coerce_enum(
            BackgroundStyle, payload.get("backgroundStyle"), BackgroundStyle.GRADIENT
        ),
        lighting=coerce_enum(LightingStyle, payload.get("lighting"), LightingStyle.SOFT),
        angle=coerce_enum(CameraAngle, payload.get("angle"), CameraAngle.PERSPECTIVE),
        color_mood=normalize_text(
            payload.get("colorMood"), "Premium Dark", max_length=MOOD_MAX_LENGTH
        ),
        strategy=normalize_text(
            payload.get("visualStrategy"),
            "High-end editorial presentation",
            max_length=PROMPT_MAX_LENGTH - len(STRATEGY_PREFIX),
        ),
        tagline=normalize_text(
            payload.get("marketingTagline"), "Experience Excellence", max_length=TAGLINE_MAX_LENGTH
        ),
        app_category=normalize_text(
            payload.get("appCategory"), "General App", max_length=LABEL_MAX_LENGTH
        ),
        target_audience=normalize_text(
            payload.get("targetAudience"), "General Audience", max_length=LABEL_MAX_LENGTH
        ),
        detected_colors=normalize_hex_colors(
            payload.get("detectedColors"), default=["#000000", "#FFFFFF"], limit=MAX_COLORS
        ),
        conversion_score=clamp_score(payload.get("conversionScore"), default=85),
        suggested_backgrounds=suggestions,
        suggested_props=normalize_text_list(payload.get("suggestedProps"), limit=MAX_PROPS),
    )


async def analyze_screenshot(
    client: object,
    image_bytes: bytes,
    mime_type: str,
    *,
    model: Optional[str] = None,
    max_attempts: Optional[int] = None,
    initial_delay_ms: Optional[int] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> AnalysisResult:
    """
    Infer suggested settings and marketing signals from a screenshot.

    Never raises for model or parsing failures: the caller always gets a
    usable result, flagged ``degraded`` when it is the fixed fallback.
    """
    from google.genai import types

    settings = get_settings()
    model_name = model or settings.GEMINI_TEXT_MODEL
    normalized_mime = normalize_image_mime_type(mime_type) or "image/png"

    def _call_generate_content():
        return client.models.generate_content(
            model=model_name,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=normalized_mime),
                ANALYSIS_PROMPT,
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=ANALYSIS_RESPONSE_SCHEMA,
            ),
        )

    try:
        response = await invoke_with_retry(
            lambda: run_with_timeout(_call_generate_content),
            max_attempts=max_attempts or settings.RETRY_MAX_ATTEMPTS,
            initial_delay_ms=(
                settings.RETRY_INITIAL_DELAY_MS if initial_delay_ms is None else initial_delay_ms
            ),
            label="Screenshot analysis",
            cancel_event=cancel_event,
        )
        result = parse_analysis_payload(extract_json_payload(response_text(response)))
        logger.info(
            "Screenshot analyzed: category=%s device=%s background=%s score=%d",
            result.app_category,
            result.device_type.value,
            result.background_style.value,
            result.conversion_score,
        )
        return result
    except RunCancelled:
        raise
    except asyncio.TimeoutError:
        logger.warning("Screenshot analysis timed out; using degraded result")
        return DEGRADED_ANALYSIS
    except Exception as e:
        logger.warning("Screenshot analysis failed; using degraded result: %s", e)
        return DEGRADED_ANALYSIS


def merge_analysis_into_settings(
    settings: MockupSettings, analysis: AnalysisResult
) -> MockupSettings:
    """Apply analysis suggestions to `settings`, keeping the user's description."""
    background = analysis.background_style
    if background == BackgroundStyle.CUSTOM and not settings.custom_background_prompt:
        background = BackgroundStyle.GRADIENT

    return settings.with_changes(
        device_type=analysis.device_type,
        background_style=background,
        lighting=analysis.lighting,
        angle=analysis.angle,
        color_mood=analysis.color_mood,
        marketing_tagline=analysis.tagline,
        custom_prompt=f"{STRATEGY_PREFIX}{analysis.strategy}",
        detected_app_category=analysis.app_category,
        detected_audience=analysis.target_audience,
        detected_colors=list(analysis.detected_colors),
        suggested_props=list(analysis.suggested_props),
    )
