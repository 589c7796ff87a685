# asset_importer/api/v1/routers/uploads.py
"""
Single-file upload endpoint (v1).

Lets a client push assets to the blob store ahead of time and submit the
returned URLs to ``POST /imports`` instead of inline data.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from ....config import settings
from ....core.storage.blob_store import FOLDERS, BlobStore
from ....dependencies import get_blob_store
from ....models import UploadResponse

router = APIRouter(prefix="/uploads", tags=["Uploads"])

logger = logging.getLogger("asset_importer.api.uploads")


@router.post("", response_model=UploadResponse, summary="Upload one asset")
async def upload_asset(
    file: UploadFile = File(...),
    folder: str = Form("images"),
    blob_store: BlobStore = Depends(get_blob_store),
) -> UploadResponse:
    if folder not in FOLDERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid folder '{folder}'. Expected one of: {', '.join(FOLDERS)}",
        )

    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    if len(data) > settings.max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the maximum size of {settings.max_file_size} bytes",
        )

    file_name = file.filename or "unnamed"
    result = await blob_store.upload(data, file_name, folder)
    if not result.success or not result.url:
        logger.error(f"Upload of {file_name} to {folder} failed: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=result.error or "Upload failed",
        )

    return UploadResponse(success=True, url=result.url, file_name=file_name)
