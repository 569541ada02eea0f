"""
Tests for SEO metadata generation.
"""

from unittest.mock import MagicMock

import pytest

from conftest import SEO_PAYLOAD, json_response, text_response
from schemas.mockup import MockupSettings
from services.seo_metadata import (
    FALLBACK_ALT_TEXT,
    FALLBACK_CAPTION,
    FALLBACK_KEYWORDS,
    MetadataOverrides,
    build_seo_prompt,
    generate_seo_metadata,
    hyphenate,
)


def _client(response=None, error=None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = response
    return client


class TestHelpers:
    def test_hyphenate_collapses_whitespace(self):
        assert hyphenate("  Fintech   Dashboard\tMockup ") == "Fintech-Dashboard-Mockup"

    def test_hyphenate_drops_edge_whitespace(self):
        assert hyphenate(" X") == "X"
        assert hyphenate("Spring Launch\n") == "Spring-Launch"

    def test_prompt_includes_context(self):
        settings = MockupSettings(
            detected_audience="Foodies", detected_app_category="Food Delivery", color_mood="Warm"
        )
        prompt = build_seo_prompt(settings, "Taste it first", "abcd1234")
        assert '- Tagline: "Taste it first"' in prompt
        assert "- Audience: Foodies" in prompt
        assert "- Category: Food Delivery" in prompt
        assert "- Seed: abcd1234" in prompt

    def test_prompt_defaults(self):
        prompt = build_seo_prompt(MockupSettings(), "", "seed")
        assert "- Audience: General" in prompt
        assert "- Category: App" in prompt


class TestGenerateSeoMetadata:
    @pytest.mark.asyncio
    async def test_success_hyphenates_title(self):
        client = _client(json_response(SEO_PAYLOAD))

        metadata = await generate_seo_metadata(
            client, MockupSettings(), "Your money, in focus", initial_delay_ms=0
        )

        assert metadata.seo_title == "Fintech-Dashboard-iPhone-Mockup"
        assert metadata.seo_keywords == SEO_PAYLOAD["seoKeywords"]
        assert metadata.social_caption == SEO_PAYLOAD["socialCaption"]
        assert metadata.alt_text == SEO_PAYLOAD["altText"]
        assert metadata.degraded is False

    @pytest.mark.asyncio
    async def test_overrides_win_and_are_not_sent(self):
        client = _client(json_response(SEO_PAYLOAD))
        overrides = MetadataOverrides(title="My Exact Title", caption="My exact caption")

        metadata = await generate_seo_metadata(
            client, MockupSettings(), "Tagline", overrides, initial_delay_ms=0
        )

        assert metadata.seo_title == "My-Exact-Title"
        assert metadata.social_caption == "My exact caption"
        assert metadata.seo_keywords == SEO_PAYLOAD["seoKeywords"]
        prompt = client.models.generate_content.call_args.kwargs["contents"][0]
        assert "My Exact Title" not in prompt
        assert "My exact caption" not in prompt

    @pytest.mark.asyncio
    async def test_missing_fields_fall_back_individually(self):
        client = _client(json_response({"seoTitle": "Only Title"}))

        metadata = await generate_seo_metadata(client, MockupSettings(), "Tagline", initial_delay_ms=0)

        assert metadata.seo_title == "Only-Title"
        assert metadata.seo_keywords == FALLBACK_KEYWORDS
        assert metadata.social_caption == FALLBACK_CAPTION
        assert metadata.alt_text == FALLBACK_ALT_TEXT
        assert metadata.degraded is False

    @pytest.mark.asyncio
    async def test_failure_returns_fallback(self):
        client = _client(error=RuntimeError("invalid argument"))

        metadata = await generate_seo_metadata(
            client, MockupSettings(), "Launch Day Hero", initial_delay_ms=0
        )

        assert metadata.degraded is True
        assert metadata.seo_title.startswith("Launch-Day-Hero-")
        assert metadata.seo_keywords == FALLBACK_KEYWORDS
        assert metadata.social_caption == FALLBACK_CAPTION

    @pytest.mark.asyncio
    async def test_failure_still_applies_overrides(self):
        client = _client(text_response("not json"))
        overrides = MetadataOverrides(title="Kept Title", caption=None)

        metadata = await generate_seo_metadata(
            client, MockupSettings(), "Tagline", overrides, initial_delay_ms=0
        )

        assert metadata.degraded is True
        assert metadata.seo_title == "Kept-Title"
        assert metadata.social_caption == FALLBACK_CAPTION

    @pytest.mark.asyncio
    async def test_padded_override_title_has_no_edge_hyphens(self):
        client = _client(json_response(SEO_PAYLOAD))

        metadata = await generate_seo_metadata(
            client,
            MockupSettings(),
            "Tagline",
            MetadataOverrides(title=" Spring Launch "),
            initial_delay_ms=0,
        )

        assert metadata.seo_title == "Spring-Launch"

    @pytest.mark.asyncio
    async def test_each_call_uses_fresh_seed(self):
        client = _client(json_response(SEO_PAYLOAD))

        await generate_seo_metadata(client, MockupSettings(), "Tagline", initial_delay_ms=0)
        await generate_seo_metadata(client, MockupSettings(), "Tagline", initial_delay_ms=0)

        prompts = [call.kwargs["contents"][0] for call in client.models.generate_content.call_args_list]
        assert prompts[0] != prompts[1]
