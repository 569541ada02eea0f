"""
Tests for screenshot analysis.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import ANALYSIS_PAYLOAD, json_response, text_response
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
)
from services.errors import RunCancelled
from services.screenshot_analyzer import (
    DEGRADED_ANALYSIS,
    STRATEGY_PREFIX,
    analyze_screenshot,
    extract_json_payload,
    merge_analysis_into_settings,
    parse_analysis_payload,
)


class TestExtractJsonPayload:
    def test_plain_json(self):
        assert extract_json_payload('{"a": 1}') == {"a": 1}

    def test_markdown_fence(self):
        assert extract_json_payload('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self):
        assert extract_json_payload('Here you go: {"a": 1} Enjoy!') == {"a": 1}

    def test_no_json_raises(self):
        with pytest.raises(ValueError):
            extract_json_payload("no structured output here")

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            extract_json_payload("   ")


class TestParseAnalysisPayload:
    def test_full_payload(self):
        result = parse_analysis_payload(ANALYSIS_PAYLOAD)

        assert result.device_type == DeviceType.SMARTPHONE
        assert result.background_style == BackgroundStyle.OFFICE
        assert result.lighting == LightingStyle.DRAMATIC
        assert result.angle == CameraAngle.ISOMETRIC
        assert result.app_category == "Premium Fintech"
        assert result.detected_colors == ["#1D4ED8", "#FFFFFF", "#0F172A"]
        assert result.conversion_score == 91
        assert result.suggested_backgrounds == [
            BackgroundStyle.OFFICE,
            BackgroundStyle.CITY,
            BackgroundStyle.GRADIENT,
        ]
        assert result.degraded is False

    def test_unknown_enum_values_fall_back(self):
        result = parse_analysis_payload(
            {"deviceType": "Hologram", "backgroundStyle": "Moon", "lighting": 3}
        )
        assert result.device_type == DeviceType.SMARTPHONE
        assert result.background_style == BackgroundStyle.GRADIENT
        assert result.lighting == LightingStyle.SOFT

    def test_missing_fields_use_defaults(self):
        result = parse_analysis_payload({})
        assert result.tagline == "Experience Excellence"
        assert result.detected_colors == ["#000000", "#FFFFFF"]
        assert result.conversion_score == 85
        assert result.suggested_props == []

    def test_score_is_clamped(self):
        assert parse_analysis_payload({"conversionScore": 240}).conversion_score == 100
        assert parse_analysis_payload({"conversionScore": -5}).conversion_score == 0

    def test_lists_are_capped(self):
        result = parse_analysis_payload(
            {"suggestedProps": ["a", "b", "c", "d"], "suggestedBackgrounds": ["City"] * 5}
        )
        assert result.suggested_props == ["a", "b", "c"]
        assert len(result.suggested_backgrounds) == 3

    def test_long_text_is_clipped_to_settings_limits(self):
        result = parse_analysis_payload(
            {
                "marketingTagline": "word " * 100,
                "colorMood": "x" * 400,
                "appCategory": "Fintech " * 50,
                "visualStrategy": "s" * 3000,
            }
        )

        assert 0 < len(result.tagline) <= TAGLINE_MAX_LENGTH
        assert result.tagline.startswith("word word")
        assert len(result.color_mood) == MOOD_MAX_LENGTH
        assert len(result.app_category) <= LABEL_MAX_LENGTH
        assert len(STRATEGY_PREFIX + result.strategy) <= PROMPT_MAX_LENGTH

    def test_lone_surrogate_falls_back(self):
        result = parse_analysis_payload({"targetAudience": "Traders \ud800"})
        assert result.target_audience == "General Audience"

    def test_non_object_raises(self):
        with pytest.raises(ValueError):
            parse_analysis_payload(["not", "an", "object"])


class TestAnalyzeScreenshot:
    @pytest.mark.asyncio
    async def test_success(self, sample_image_bytes):
        client = MagicMock()
        client.models.generate_content.return_value = json_response(ANALYSIS_PAYLOAD)

        result = await analyze_screenshot(
            client, sample_image_bytes, "image/png", model="text-model", initial_delay_ms=0
        )

        assert result.tagline == "Your money, in focus"
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "text-model"
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_fenced_reply_is_accepted(self, sample_image_bytes):
        client = MagicMock()
        client.models.generate_content.return_value = text_response(
            '```json\n{"appCategory": "Food Delivery"}\n```'
        )

        result = await analyze_screenshot(client, sample_image_bytes, "image/png", initial_delay_ms=0)

        assert result.app_category == "Food Delivery"
        assert result.degraded is False

    @pytest.mark.asyncio
    async def test_failure_returns_degraded_result(self, sample_image_bytes):
        client = MagicMock()
        client.models.generate_content.side_effect = RuntimeError("invalid argument")

        result = await analyze_screenshot(client, sample_image_bytes, "image/png", initial_delay_ms=0)

        assert result is DEGRADED_ANALYSIS
        assert result.degraded is True

    @pytest.mark.asyncio
    async def test_unparseable_reply_returns_degraded_result(self, sample_image_bytes):
        client = MagicMock()
        client.models.generate_content.return_value = text_response("I cannot help with that")

        result = await analyze_screenshot(client, sample_image_bytes, "image/png", initial_delay_ms=0)

        assert result.degraded is True

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, sample_image_bytes):
        client = MagicMock()
        cancel_event = asyncio.Event()
        cancel_event.set()

        with pytest.raises(RunCancelled):
            await analyze_screenshot(
                client, sample_image_bytes, "image/png", cancel_event=cancel_event
            )
        client.models.generate_content.assert_not_called()


class TestMergeAnalysisIntoSettings:
    def test_suggestions_replace_settings(self):
        current = MockupSettings(description="Show the chart")
        merged = merge_analysis_into_settings(current, parse_analysis_payload(ANALYSIS_PAYLOAD))

        assert merged.background_style == BackgroundStyle.OFFICE
        assert merged.marketing_tagline == "Your money, in focus"
        assert merged.custom_prompt == "Visual Strategy: Executive desk scene with cool daylight"
        assert merged.detected_app_category == "Premium Fintech"
        assert merged.suggested_props == ["Montblanc pen", "Espresso cup", "Leather wallet"]
        assert merged.description == "Show the chart"
        assert current.marketing_tagline is None

    def test_custom_without_text_becomes_gradient(self):
        analysis = parse_analysis_payload({"backgroundStyle": "Custom"})
        merged = merge_analysis_into_settings(MockupSettings(), analysis)
        assert merged.background_style == BackgroundStyle.GRADIENT

    def test_custom_with_text_is_kept(self):
        current = MockupSettings(
            background_style="Custom", custom_background_prompt="Rooftop at dusk"
        )
        analysis = parse_analysis_payload({"backgroundStyle": "Custom"})
        merged = merge_analysis_into_settings(current, analysis)
        assert merged.background_style == BackgroundStyle.CUSTOM

    @pytest.mark.asyncio
    async def test_oversized_reply_still_merges(self, sample_image_bytes):
        client = MagicMock()
        client.models.generate_content.return_value = json_response(
            {**ANALYSIS_PAYLOAD, "marketingTagline": "x" * 400, "colorMood": "Moody " * 60}
        )

        analysis = await analyze_screenshot(
            client, sample_image_bytes, "image/png", initial_delay_ms=0
        )
        merged = merge_analysis_into_settings(MockupSettings(), analysis)

        assert analysis.degraded is False
        assert merged.marketing_tagline == "x" * TAGLINE_MAX_LENGTH
        assert merged.color_mood.startswith("Moody")
        assert len(merged.color_mood) <= MOOD_MAX_LENGTH
