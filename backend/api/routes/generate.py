import logging
from typing import List, Optional, Sequence

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    status,
)

from api.dependencies import (
    get_app_settings,
    get_orchestrator,
    parse_settings_json,
    read_source_upload,
    require_ai_configured,
)
from config import Settings
from schemas.generate import (
    CancelResponse,
    GenerateAcceptedResponse,
    RunStateName,
    RunStatusResponse,
)
from schemas.mockup import MockupSettings
from services.error_sanitizer import sanitize_public_error_message
from services.errors import MockupStudioError, RunCancelled, RunInProgressError
from services.image_validation import SourceImage
from services.orchestrator import GenerationOrchestrator, plan_jobs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generate"])


async def run_generation_in_background(
    orchestrator: GenerationOrchestrator,
    sources: Sequence[SourceImage],
    settings: MockupSettings,
) -> None:
    """Execute a claimed run; failures are recorded on the orchestrator state."""
    try:
        await orchestrator.run(sources, settings)
    except RunCancelled:
        logger.info("Generation run cancelled")
    except MockupStudioError as e:
        logger.warning("Generation run failed: %s", e)
    except Exception:
        logger.exception("Unexpected error in generation run")


@router.post(
    "",
    response_model=GenerateAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def generate(
    background_tasks: BackgroundTasks,
    files: Optional[List[UploadFile]] = File(
        None, description="Source screenshots (PNG, JPG, WEBP)"
    ),
    settings_json: Optional[str] = Form(
        None, alias="settings", description="Mockup settings as JSON"
    ),
    app_settings: Settings = Depends(get_app_settings),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Start a generation run for one or more screenshots.

    Every source is rendered once, or twice when A/B testing is enabled.
    Poll `/generate/status` for progress; assets appear in `/assets` only
    once the whole run has succeeded.
    """
    uploads = [f for f in (files or []) if f is not None]
    if not uploads:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload at least one screenshot.",
        )
    if len(uploads) > app_settings.MAX_SOURCES_PER_RUN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. Maximum is {app_settings.MAX_SOURCES_PER_RUN} per run",
        )

    require_ai_configured(app_settings)

    settings = parse_settings_json(settings_json)
    sources = [
        await read_source_upload(upload, max_size_bytes=app_settings.max_upload_size_bytes)
        for upload in uploads
    ]

    try:
        run_id = orchestrator.begin_run()
    except RunInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    total_jobs = len(plan_jobs(sources, settings))
    logger.info(
        "Accepted run %s: %d sources, %d jobs (ab_testing=%s)",
        run_id,
        len(sources),
        total_jobs,
        settings.enable_ab_testing,
    )
    background_tasks.add_task(run_generation_in_background, orchestrator, sources, settings)

    return GenerateAcceptedResponse(
        run_id=run_id,
        state=RunStateName.RUNNING,
        total_sources=len(sources),
        total_jobs=total_jobs,
    )


@router.get("/status", response_model=RunStatusResponse)
async def get_status(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    """Snapshot of the current or most recent run."""
    run = orchestrator.status()
    return RunStatusResponse(
        state=RunStateName(run.state.value),
        run_id=run.run_id,
        progress_label=run.progress_label,
        completed_jobs=run.completed_jobs,
        total_jobs=run.total_jobs,
        error_message=sanitize_public_error_message(run.error, fallback="Generation failed"),
        asset_ids=run.asset_ids,
    )


@router.post("/cancel", response_model=CancelResponse)
async def cancel_run(orchestrator: GenerationOrchestrator = Depends(get_orchestrator)):
    """Request cancellation of the running generation, if any."""
    cancelled = orchestrator.cancel()
    return CancelResponse(
        cancelled=cancelled,
        state=RunStateName(orchestrator.state.value),
    )
