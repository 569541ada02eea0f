import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from api.dependencies import (
    get_app_settings,
    get_asset_store,
    get_orchestrator,
    optional_text,
    read_source_upload,
    require_ai_configured,
)
from config import Settings
from schemas.asset import AssetListResponse, GeneratedAsset, ReorderAssetsRequest
from schemas.generate import RefineResponse
from schemas.mockup import ContentFit, coerce_enum
from services.asset_store import AssetStore
from services.error_sanitizer import sanitize_public_error_message
from services.errors import (
    AssetNotFoundError,
    GenerationFailed,
    MissingCredentialsError,
    RunCancelled,
    RunInProgressError,
)
from services.image_validation import encode_source
from services.orchestrator import GenerationOrchestrator
from services.reconciler import refine_from_asset

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assets", tags=["assets"])


def _not_found(e: AssetNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Asset not found: {e.asset_id}",
    )


@router.get("", response_model=AssetListResponse)
async def list_assets(store: AssetStore = Depends(get_asset_store)):
    """All generated assets, newest run first."""
    items = store.list()
    return AssetListResponse(items=items, total=len(items))


# Declared before /{asset_id} routes so "order" is never taken for an id
@router.put("/order", response_model=AssetListResponse)
async def reorder_assets(
    payload: ReorderAssetsRequest,
    store: AssetStore = Depends(get_asset_store),
):
    """Persist a user-defined ordering of the gallery."""
    try:
        items = store.reorder(payload.asset_ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return AssetListResponse(items=items, total=len(items))


@router.get("/{asset_id}", response_model=GeneratedAsset)
async def get_asset(asset_id: str, store: AssetStore = Depends(get_asset_store)):
    try:
        return store.get(asset_id)
    except AssetNotFoundError as e:
        raise _not_found(e)


@router.post("/{asset_id}/favorite", response_model=GeneratedAsset)
async def toggle_favorite(asset_id: str, store: AssetStore = Depends(get_asset_store)):
    try:
        return store.toggle_favorite(asset_id)
    except AssetNotFoundError as e:
        raise _not_found(e)


@router.post("/{asset_id}/replace", response_model=GeneratedAsset)
async def replace_screen_content(
    asset_id: str,
    file: UploadFile = File(..., description="New screenshot (PNG, JPG, WEBP)"),
    content_fit: Optional[str] = Form(None, description="Cover, Contain or Top Align"),
    app_settings: Settings = Depends(get_app_settings),
    store: AssetStore = Depends(get_asset_store),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Re-render an asset with a new screenshot in the same scene.

    SEO metadata, score and variant are kept. Runs inline and shares the
    single-run guard with `/generate`.
    """
    if store.find(asset_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Asset not found: {asset_id}",
        )
    require_ai_configured(app_settings)

    source = await read_source_upload(file, max_size_bytes=app_settings.max_upload_size_bytes)
    fit_text = optional_text(content_fit)
    fit = coerce_enum(ContentFit, fit_text, ContentFit.COVER) if fit_text else None

    try:
        return await orchestrator.replace_screen_content(asset_id, source, fit)
    except RunInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except AssetNotFoundError as e:
        raise _not_found(e)
    except MissingCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except RunCancelled as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except GenerationFailed as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=sanitize_public_error_message(str(e), fallback="Generation failed"),
        )


@router.post("/{asset_id}/metadata", response_model=GeneratedAsset)
async def regenerate_metadata(
    asset_id: str,
    app_settings: Settings = Depends(get_app_settings),
    store: AssetStore = Depends(get_asset_store),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Regenerate SEO title, keywords, caption and alt text for one asset.

    Model failures fall back to fixed metadata, flagged `metadata_degraded`.
    """
    if store.find(asset_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Asset not found: {asset_id}",
        )
    require_ai_configured(app_settings)

    try:
        return await orchestrator.regenerate_metadata(asset_id)
    except RunInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except AssetNotFoundError as e:
        raise _not_found(e)
    except MissingCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/{asset_id}/refine", response_model=RefineResponse)
async def refine_asset(asset_id: str, store: AssetStore = Depends(get_asset_store)):
    """
    Settings and source screenshot for starting a new run from an asset.

    A/B testing is switched off and the asset's title and caption become
    the target overrides.
    """
    try:
        asset = store.get(asset_id)
    except AssetNotFoundError as e:
        raise _not_found(e)

    seed = refine_from_asset(asset)
    if seed.source is None:
        return RefineResponse(settings=seed.settings)
    return RefineResponse(
        settings=seed.settings,
        source_base64=encode_source(seed.source),
        source_mime_type=seed.source.mime_type,
        source_filename=seed.source.filename,
        source_restored=True,
    )
