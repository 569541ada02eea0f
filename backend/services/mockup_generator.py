"""
Mockup image generation using Gemini image models.

Tries the high-fidelity model first, then the cheaper fallback model. Each
tier is retry-wrapped independently.
"""

import asyncio
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Optional

from PIL import Image

from config import Settings, get_settings
from schemas.mockup import MockupSettings, Variant, coerce_enum
from services.errors import GenerationFailed, RunCancelled
from services.gemini import inline_image_bytes, iter_response_parts, run_with_timeout
from services.image_validation import (
    ALLOWED_IMAGE_MIME_TYPES,
    normalize_image_mime_type,
    sniff_image_mime_type,
)
from services.prompt_composer import compose_prompt
from services.retry import invoke_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str
    model: str


class NoImageInResponse(Exception):
    """The model answered without any decodable inline image."""


def extract_image_from_response(response: object) -> Optional[GeneratedImage]:
    """Return the first part whose inline data decodes as an image."""
    for part in iter_response_parts(response):
        try:
            found = inline_image_bytes(part)
        except Exception:
            continue
        if found is None:
            continue
        data, declared_mime = found
        try:
            with Image.open(BytesIO(data)) as image:
                image.load()
                image_format = (image.format or "").lower()
        except Exception:
            continue
        mime_type = (
            sniff_image_mime_type(data)
            or normalize_image_mime_type(declared_mime)
            or f"image/{image_format or 'png'}"
        )
        return GeneratedImage(data=data, mime_type=mime_type, model="")
    return None


class MockupImageGenerator:
    """Generate one mockup image from a screenshot and settings."""

    def __init__(self, client: object, settings: Optional[Settings] = None):
        self._client = client
        self._settings = settings or get_settings()

    @staticmethod
    def _normalize_source_mime_type(mime_type: str, data: bytes) -> str:
        normalized = normalize_image_mime_type(mime_type or "")
        if normalized in ALLOWED_IMAGE_MIME_TYPES:
            return normalized
        return sniff_image_mime_type(data) or "image/png"

    def _tiers(self) -> list[tuple[str, dict[str, Any]]]:
        s = self._settings
        return [
            (
                s.GEMINI_IMAGE_MODEL,
                {"aspect_ratio": s.IMAGE_ASPECT_RATIO, "image_size": s.IMAGE_SIZE},
            ),
            (s.GEMINI_IMAGE_FALLBACK_MODEL, {"aspect_ratio": s.IMAGE_ASPECT_RATIO}),
        ]

    async def _generate_with_model(
        self,
        model: str,
        image_config: dict[str, Any],
        contents: list[Any],
        cancel_event: Optional[asyncio.Event],
    ) -> GeneratedImage:
        from google.genai import types

        def _call_generate_content():
            return self._client.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                    image_config=types.ImageConfig(**image_config),
                ),
            )

        async def _attempt() -> GeneratedImage:
            response = await run_with_timeout(_call_generate_content)
            image = extract_image_from_response(response)
            if image is None:
                raise NoImageInResponse(f"No image returned from {model}")
            return GeneratedImage(data=image.data, mime_type=image.mime_type, model=model)

        return await invoke_with_retry(
            _attempt,
            max_attempts=self._settings.RETRY_MAX_ATTEMPTS,
            initial_delay_ms=self._settings.RETRY_INITIAL_DELAY_MS,
            label=f"Image generation ({model})",
            cancel_event=cancel_event,
        )

    async def generate(
        self,
        image_bytes: bytes,
        mime_type: str,
        mockup_settings: MockupSettings,
        variant: Any = Variant.A,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> GeneratedImage:
        """
        Generate a mockup for `image_bytes`.

        Raises GenerationFailed when both tiers fail and RunCancelled when the
        cancellation event is set between attempts.
        """
        from google.genai import types

        variant = coerce_enum(Variant, variant, Variant.A)
        prompt = compose_prompt(mockup_settings, variant)
        source_mime = self._normalize_source_mime_type(mime_type, image_bytes)
        contents = [
            prompt.generation_instruction,
            types.Part.from_bytes(data=image_bytes, mime_type=source_mime),
        ]

        tiers = self._tiers()
        last_error: Optional[Exception] = None
        for index, (model, image_config) in enumerate(tiers):
            logger.info("Generating with %s (Variant %s)...", model, variant.value)
            try:
                image = await self._generate_with_model(
                    model, image_config, contents, cancel_event
                )
                logger.info(
                    "Generated mockup with %s (%d bytes, %s)",
                    model,
                    len(image.data),
                    image.mime_type,
                )
                return image
            except RunCancelled:
                raise
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning("Model %s timed out", model)
            except Exception as e:
                last_error = e
                logger.warning("Model %s failed: %s", model, e)
            if index < len(tiers) - 1:
                logger.warning("Falling back to %s...", tiers[index + 1][0])

        raise GenerationFailed(
            "Failed to generate image. Please check API key or quota."
        ) from last_error
