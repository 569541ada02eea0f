"""
Test fixtures and configuration for pytest.
"""

import json
import os
import sys
from io import BytesIO
from types import SimpleNamespace
from typing import Any, AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Settings
from schemas.asset import GeneratedAsset
from services.asset_store import AssetStore
from services.image_validation import SourceImage

SEO_PAYLOAD = {
    "seoTitle": "Fintech Dashboard iPhone Mockup",
    "seoKeywords": "fintech app, dashboard ui, ios mockup",
    "socialCaption": "Money, beautifully managed. #fintech #uiux #appdesign",
    "altText": "A fintech dashboard on an iPhone resting on a leather desk pad.",
}

ANALYSIS_PAYLOAD = {
    "deviceType": "Smartphone",
    "backgroundStyle": "Office",
    "suggestedBackgrounds": ["Office", "City", "Gradient"],
    "lighting": "Dramatic",
    "angle": "Isometric",
    "colorMood": "Cool Professional",
    "marketingTagline": "Your money, in focus",
    "visualStrategy": "Executive desk scene with cool daylight",
    "appCategory": "Premium Fintech",
    "targetAudience": "C-Suite Executives",
    "detectedColors": ["#1d4ed8", "#FFFFFF", "0f172a"],
    "conversionScore": 91,
    "suggestedProps": ["Montblanc pen", "Espresso cup", "Leather wallet"],
}


def make_png_bytes(size: tuple[int, int] = (100, 100), color: str = "red") -> bytes:
    img = Image.new("RGB", size, color=color)
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def image_response(data: bytes, mime_type: str = "image/png") -> SimpleNamespace:
    """SDK-shaped response carrying one inline image part."""
    part = SimpleNamespace(
        inline_data=SimpleNamespace(data=data, mime_type=mime_type),
        text=None,
    )
    return SimpleNamespace(parts=[part], candidates=None, text=None)


def text_response(text: str) -> SimpleNamespace:
    return SimpleNamespace(parts=None, candidates=None, text=text)


def json_response(payload: Any) -> SimpleNamespace:
    return text_response(json.dumps(payload))


class FakeModels:
    """
    Stand-in for `client.models` that answers by request kind.

    Image models get an inline PNG, the SEO prompt gets SEO JSON and any
    other text request is treated as screenshot analysis.
    """

    def __init__(self, settings: Settings, image_bytes: bytes):
        self.settings = settings
        self.image_bytes = image_bytes
        self.seo_payload: Any = dict(SEO_PAYLOAD)
        self.analysis_payload: Any = dict(ANALYSIS_PAYLOAD)
        self.image_error: Optional[Exception] = None
        self.seo_error: Optional[Exception] = None
        self.calls: list[dict[str, Any]] = []

    def generate_content(self, *, model: str, contents: list, config: Any = None):
        kind = self._kind(model, contents)
        self.calls.append({"kind": kind, "model": model, "contents": contents, "config": config})
        if kind == "image":
            if self.image_error is not None:
                raise self.image_error
            return image_response(self.image_bytes)
        if kind == "seo":
            if self.seo_error is not None:
                raise self.seo_error
            return json_response(self.seo_payload)
        return json_response(self.analysis_payload)

    def _kind(self, model: str, contents: list) -> str:
        if model in (self.settings.GEMINI_IMAGE_MODEL, self.settings.GEMINI_IMAGE_FALLBACK_MODEL):
            return "image"
        if any(isinstance(item, str) and "SEO" in item for item in contents):
            return "seo"
        return "analysis"

    def calls_of(self, kind: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["kind"] == kind]


# ============== Settings Fixtures ==============


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fake key and no retry back-off."""
    return Settings(
        _env_file=None,
        GOOGLE_API_KEY="test-api-key",
        RETRY_MAX_ATTEMPTS=3,
        RETRY_INITIAL_DELAY_MS=0,
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(_env_file=None, GOOGLE_API_KEY="", RETRY_INITIAL_DELAY_MS=0)


# ============== Test Data Fixtures ==============


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Generate sample PNG image bytes for testing."""
    return make_png_bytes()


@pytest.fixture
def sample_jpeg_bytes() -> bytes:
    """Generate sample JPEG image bytes for testing."""
    img = Image.new("RGB", (100, 100), color="blue")
    buffer = BytesIO()
    img.save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def generated_png_bytes() -> bytes:
    """What the fake image model returns."""
    return make_png_bytes((64, 48), color="green")


@pytest.fixture
def sample_source(sample_image_bytes: bytes) -> SourceImage:
    return SourceImage(data=sample_image_bytes, mime_type="image/png", filename="home.png")


@pytest.fixture
def make_asset(sample_image_bytes: bytes):
    """Factory for stored assets with sensible defaults."""
    import base64

    def _make(**overrides: Any) -> GeneratedAsset:
        data: dict[str, Any] = {
            "url": "/storage/generated/sample.png",
            "image_mime_type": "image/png",
            "original_base64": base64.b64encode(sample_image_bytes).decode("ascii"),
            "original_mime_type": "image/png",
            "device_type": "Smartphone",
            "background_style": "Office",
            "lighting": "Soft",
            "angle": "Perspective",
            "color_mood": "Cool Professional",
            "content_fit": "Cover",
            "tagline": "Your money, in focus",
            "strategy": "Executive desk scene",
            "app_category": "Premium Fintech",
            "target_audience": "C-Suite Executives",
            "dominant_colors": ["#1D4ED8"],
            "suggested_props": ["Montblanc pen"],
            "prompt": "Smartphone | Office",
            "seo_title": "Fintech-Dashboard-Mockup",
            "seo_keywords": "fintech, dashboard",
            "social_caption": "Money, managed. #fintech",
            "alt_text": "A fintech dashboard on a phone.",
            "conversion_score": 90,
        }
        data.update(overrides)
        return GeneratedAsset.model_validate(data)

    return _make


# ============== Mock Fixtures ==============


@pytest.fixture
def fake_models(test_settings: Settings, generated_png_bytes: bytes) -> FakeModels:
    return FakeModels(test_settings, generated_png_bytes)


@pytest.fixture
def mock_genai_client(fake_models: FakeModels) -> SimpleNamespace:
    """Gemini SDK client whose `models` answers like the real service."""
    return SimpleNamespace(models=fake_models)


@pytest.fixture
def mock_storage(generated_png_bytes: bytes) -> MagicMock:
    """In-memory storage backend."""
    files: dict[str, bytes] = {}
    storage = MagicMock()

    async def _upload(data: bytes, key: str, content_type: str) -> str:
        url = f"/storage/{key}"
        files[url] = data
        return url

    async def _download(url_or_path: str) -> bytes:
        if url_or_path in files:
            return files[url_or_path]
        return generated_png_bytes

    async def _delete(url_or_path: str) -> None:
        files.pop(url_or_path, None)

    storage.files = files
    storage.upload_bytes = AsyncMock(side_effect=_upload)
    storage.download_bytes = AsyncMock(side_effect=_download)
    storage.delete_bytes = AsyncMock(side_effect=_delete)
    return storage


@pytest.fixture
def asset_store() -> AssetStore:
    return AssetStore()


@pytest.fixture
def orchestrator(asset_store, mock_storage, mock_genai_client, test_settings):
    import random

    from services.orchestrator import GenerationOrchestrator

    return GenerationOrchestrator(
        asset_store,
        mock_storage,
        client_factory=lambda: mock_genai_client,
        settings=test_settings,
        rng=random.Random(7),
    )


# ============== Client Fixtures ==============


@pytest_asyncio.fixture(scope="function")
async def client(
    test_settings, asset_store, mock_storage, orchestrator, mock_genai_client
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with service dependencies overridden."""
    from api import dependencies
    from main import app

    app.dependency_overrides[dependencies.get_app_settings] = lambda: test_settings
    app.dependency_overrides[dependencies.get_asset_store] = lambda: asset_store
    app.dependency_overrides[dependencies.get_storage] = lambda: mock_storage
    app.dependency_overrides[dependencies.get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[dependencies.get_genai] = lambda: mock_genai_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def unconfigured_client(
    unconfigured_settings, asset_store, mock_storage, orchestrator
) -> AsyncGenerator[AsyncClient, None]:
    """Test client without a Gemini API key."""
    from api import dependencies
    from main import app

    app.dependency_overrides[dependencies.get_app_settings] = lambda: unconfigured_settings
    app.dependency_overrides[dependencies.get_asset_store] = lambda: asset_store
    app.dependency_overrides[dependencies.get_storage] = lambda: mock_storage
    app.dependency_overrides[dependencies.get_orchestrator] = lambda: orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
