"""
Export API routes for Mockup Studio.
Bundles every generated asset, with its marketing info record, into one ZIP.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse, Response

from api.dependencies import get_app_settings, get_asset_store, get_storage
from config import Settings
from schemas.common import ErrorResponse
from services.asset_store import AssetStore
from services.errors import ExportFailed
from services.export import build_export_archive
from services.storage import StorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/export", tags=["export"])


@router.get(
    "/zip",
    responses={
        200: {"content": {"application/zip": {}}},
        502: {"model": ErrorResponse},
    },
)
async def export_zip(
    app_settings: Settings = Depends(get_app_settings),
    store: AssetStore = Depends(get_asset_store),
    storage: StorageBackend = Depends(get_storage),
):
    """
    Download all assets as a ZIP archive.

    Each asset contributes its image and a `<title>_info.txt` record inside
    a single top-level folder. The export either succeeds completely or
    fails with 502; retrying is always safe.
    """
    assets = store.list()
    if not assets:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No assets to export",
        )

    try:
        archive = await build_export_archive(
            assets, storage, folder_name=app_settings.EXPORT_FOLDER_NAME
        )
    except ExportFailed as e:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=ErrorResponse(detail=str(e), retryable=e.retryable).model_dump(),
        )

    filename = app_settings.EXPORT_ARCHIVE_NAME
    return Response(
        content=archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Total-Items": str(len(assets)),
        },
    )
