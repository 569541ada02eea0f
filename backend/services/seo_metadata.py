"""SEO and social metadata for generated mockups."""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
import time
from dataclasses import dataclass
from typing import Any, Optional

from config import get_settings
from schemas.mockup import MockupSettings
from services.errors import RunCancelled
from services.gemini import response_text, run_with_timeout
from services.retry import invoke_with_retry
from services.screenshot_analyzer import extract_json_payload

logger = logging.getLogger(__name__)

FALLBACK_KEYWORDS = "app, mockup, design, ui, ux, premium"
FALLBACK_CAPTION = "Check out this new design. #design #uiux"
FALLBACK_ALT_TEXT = "A premium app mockup displayed on a device."

_WHITESPACE_RE = re.compile(r"\s+")

SEO_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "seoTitle": {"type": "STRING", "description": "Hyphenated filename-ready title"},
        "seoKeywords": {"type": "STRING"},
        "socialCaption": {"type": "STRING"},
        "altText": {"type": "STRING"},
    },
    "required": ["seoTitle", "seoKeywords", "socialCaption", "altText"],
}


@dataclass(frozen=True)
class MetadataOverrides:
    title: Optional[str] = None
    caption: Optional[str] = None


@dataclass(frozen=True)
class SeoMetadata:
    seo_title: str
    seo_keywords: str
    social_caption: str
    alt_text: str
    degraded: bool = False


def hyphenate(text: str) -> str:
    """
    Collapse whitespace runs to single hyphens.

    Edge whitespace is dropped, so " Spring Launch " gives "Spring-Launch"
    rather than a title with leading or trailing hyphens.
    """
    return _WHITESPACE_RE.sub("-", text.strip())


def _fallback_title(tagline: Optional[str]) -> str:
    base = (tagline or "").strip() or "App Mockup"
    return f"{hyphenate(base)}-{int(time.time() * 1000)}"


def build_seo_prompt(settings: MockupSettings, tagline: str, seed: str) -> str:
    return f"""\
You are an expert SEO & Brand Strategist.

Your Goal: Create a production-ready filename and title for this marketing asset.

CONTEXT:
- Tagline: "{tagline}"
- Audience: {settings.detected_audience or 'General'}
- Category: {settings.detected_app_category or 'App'}
- Vibe: {settings.color_mood}
- Device: {settings.device_type.value}
- Seed: {seed}

INSTRUCTIONS:
1. **seoTitle**: MUST be a clean, brand-focused title suitable for a filename (e.g., "Fintech-Dashboard-iPhone15-Dark-Mode-Mockup"). Max 60 chars. No spaces allowed, use hyphens.
2. **seoKeywords**: Comma-separated high-volume keywords (e.g., "app design, ui ux, ios mockup, tech branding").
3. **socialCaption**: A ready-to-post Instagram/LinkedIn caption with 3 relevant hashtags.
4. **altText**: Descriptive accessibility text describing the UI and the device context.

Output valid JSON.
"""


def _field(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _apply_overrides(
    title: str, caption: str, overrides: Optional[MetadataOverrides]
) -> tuple[str, str]:
    if overrides is not None:
        if overrides.title:
            title = overrides.title
        if overrides.caption:
            caption = overrides.caption
    return hyphenate(title), caption


async def generate_seo_metadata(
    client: object,
    settings: MockupSettings,
    tagline: Optional[str],
    overrides: Optional[MetadataOverrides] = None,
    *,
    model: Optional[str] = None,
    max_attempts: Optional[int] = None,
    initial_delay_ms: Optional[int] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> SeoMetadata:
    """
    Produce title, keywords, caption and alt text for one asset.

    Overrides are substituted after the call, never sent to the model, so
    the user's exact text always wins. Failures return a fallback flagged
    ``degraded``; only cancellation propagates.
    """
    from google.genai import types

    app_settings = get_settings()
    model_name = model or app_settings.GEMINI_TEXT_MODEL
    # Fresh per call so repeated requests with the same settings differ
    seed = secrets.token_hex(4)
    prompt = build_seo_prompt(settings, tagline or "", seed)

    def _call_generate_content():
        return client.models.generate_content(
            model=model_name,
            contents=[prompt],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=SEO_RESPONSE_SCHEMA,
            ),
        )

    try:
        response = await invoke_with_retry(
            lambda: run_with_timeout(_call_generate_content),
            max_attempts=max_attempts or app_settings.RETRY_MAX_ATTEMPTS,
            initial_delay_ms=(
                app_settings.RETRY_INITIAL_DELAY_MS
                if initial_delay_ms is None
                else initial_delay_ms
            ),
            label="SEO metadata",
            cancel_event=cancel_event,
        )
        payload = extract_json_payload(response_text(response))
        if not isinstance(payload, dict):
            raise ValueError("SEO payload must be a JSON object")
    except RunCancelled:
        raise
    except Exception as e:
        logger.warning("SEO generation failed; using fallback metadata: %s", e)
        title, caption = _apply_overrides(
            _fallback_title(tagline), FALLBACK_CAPTION, overrides
        )
        return SeoMetadata(
            seo_title=title,
            seo_keywords=FALLBACK_KEYWORDS,
            social_caption=caption,
            alt_text=FALLBACK_ALT_TEXT,
            degraded=True,
        )

    title, caption = _apply_overrides(
        _field(payload, "seoTitle") or _fallback_title(tagline),
        _field(payload, "socialCaption") or FALLBACK_CAPTION,
        overrides,
    )
    return SeoMetadata(
        seo_title=title,
        seo_keywords=_field(payload, "seoKeywords") or FALLBACK_KEYWORDS,
        social_caption=caption,
        alt_text=_field(payload, "altText") or FALLBACK_ALT_TEXT,
    )
