import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from api.dependencies import (
    get_app_settings,
    get_genai,
    parse_settings_json,
    read_source_upload,
)
from config import Settings
from schemas.analysis import AnalyzeResponse
from services.screenshot_analyzer import analyze_screenshot, merge_analysis_into_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analyze"])


@router.post("", response_model=AnalyzeResponse)
async def analyze(
    file: UploadFile = File(..., description="App screenshot (PNG, JPG, WEBP)"),
    settings_json: Optional[str] = Form(
        None, alias="settings", description="Current settings as JSON"
    ),
    client: object = Depends(get_genai),
    app_settings: Settings = Depends(get_app_settings),
):
    """
    Suggest mockup settings for a screenshot.

    The suggestions are merged onto the supplied settings. A failed model
    call still answers 200 with fixed defaults and `degraded: true`.
    """
    current = parse_settings_json(settings_json)
    source = await read_source_upload(file, max_size_bytes=app_settings.max_upload_size_bytes)

    analysis = await analyze_screenshot(
        client,
        source.data,
        source.mime_type,
        model=app_settings.GEMINI_TEXT_MODEL,
        max_attempts=app_settings.RETRY_MAX_ATTEMPTS,
        initial_delay_ms=app_settings.RETRY_INITIAL_DELAY_MS,
    )
    if analysis.degraded:
        logger.info("Returning degraded analysis for %s", source.filename or "upload")

    return AnalyzeResponse(
        settings=merge_analysis_into_settings(current, analysis),
        strategy=analysis.strategy,
        tagline=analysis.tagline,
        suggested_backgrounds=list(analysis.suggested_backgrounds),
        app_category=analysis.app_category,
        target_audience=analysis.target_audience,
        detected_colors=list(analysis.detected_colors),
        conversion_score=analysis.conversion_score,
        suggested_props=list(analysis.suggested_props),
        degraded=analysis.degraded,
    )
