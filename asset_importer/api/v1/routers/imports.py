# asset_importer/api/v1/routers/imports.py
"""
Bulk import endpoints (v1).

Endpoints:
    POST /imports               - Submit a batch of pairs (JSON; URLs or base64 data)
    POST /imports/files         - Submit raw files; pairing happens server-side
    POST /imports/preview       - Pair raw files without creating a job
    GET  /imports/{job_id}      - Job status and, once completed, the result
    GET  /imports/{job_id}/csv  - Completed job's CSV as a download

Submission returns as soon as the job is registered; clients poll the
status endpoint until the job is ``completed`` or ``failed``.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status

from ....config import settings
from ....core.ingestion.file_pairing import RawFile, pair_files, validate_pairs
from ....core.ingestion.import_service import (
    ImportRequestError,
    ImportService,
    policy_for,
    to_import_pairs,
)
from ....core.ops.job_store import JobStateError, JobStore
from ....dependencies import get_import_service, get_job_store
from ....models import (
    ImportAcceptedResponse,
    ImportRequest,
    JobStatus,
    JobStatusResponse,
    PairingMode,
    PairingPreviewResponse,
    PairPreview,
)

router = APIRouter(prefix="/imports", tags=["Imports"])

logger = logging.getLogger("asset_importer.api.imports")


async def _read_files(files: List[UploadFile]) -> List[RawFile]:
    raw_files = []
    for upload in files:
        data = await upload.read()
        if len(data) > settings.max_file_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f'File "{upload.filename}" exceeds the maximum size of {settings.max_file_size} bytes',
            )
        raw_files.append(RawFile(
            name=upload.filename or "unnamed",
            content_type=upload.content_type or "application/octet-stream",
            data=data,
        ))
    return raw_files


def _submit(service: ImportService, request: ImportRequest) -> ImportAcceptedResponse:
    try:
        job_id = service.submit(request)
    except ImportRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except JobStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ImportAcceptedResponse(job_id=job_id)


@router.post("", response_model=ImportAcceptedResponse, summary="Submit import batch")
async def create_import(
    request: ImportRequest,
    service: ImportService = Depends(get_import_service),
) -> ImportAcceptedResponse:
    """Accept pairs whose assets are pre-uploaded URLs or inline base64 data."""
    return _submit(service, request)


@router.post("/files", response_model=ImportAcceptedResponse, summary="Submit raw files")
async def create_import_from_files(
    files: List[UploadFile] = File(...),
    category_id: str = Form(...),
    category_name: str = Form(...),
    pairing_mode: PairingMode = Form(PairingMode.PAIRED),
    webhook_url: Optional[str] = Form(None),
    service: ImportService = Depends(get_import_service),
) -> ImportAcceptedResponse:
    raw_files = await _read_files(files)
    policy = policy_for(pairing_mode, settings)

    pairing = pair_files(raw_files, policy)
    validation = validate_pairs(pairing.pairs, policy, pairing.unmatched)
    if not validation.valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": validation.error,
                "errors": pairing.errors,
                "unmatched": [f.name for f in pairing.unmatched],
            },
        )

    request = ImportRequest(
        category_id=category_id,
        category_name=category_name,
        pairing_mode=pairing_mode,
        webhook_url=webhook_url or None,
        pairs=to_import_pairs(pairing.pairs),
    )
    return _submit(service, request)


@router.post("/preview", response_model=PairingPreviewResponse, summary="Preview file pairing")
async def preview_pairing(
    files: List[UploadFile] = File(...),
    pairing_mode: PairingMode = Form(PairingMode.PAIRED),
) -> PairingPreviewResponse:
    raw_files = await _read_files(files)
    policy = policy_for(pairing_mode, settings)

    pairing = pair_files(raw_files, policy)
    validation = validate_pairs(pairing.pairs, policy, pairing.unmatched)
    return PairingPreviewResponse(
        pairs=[
            PairPreview(
                id=p.id,
                base_name=p.base_name,
                primary_file=p.primary_asset.name,
                secondary_file=p.secondary_asset.name if p.secondary_asset else None,
            )
            for p in pairing.pairs
        ],
        unmatched=[f.name for f in pairing.unmatched],
        errors=pairing.errors,
        valid=validation.valid,
        error=validation.error,
    )


@router.get("/{job_id}", response_model=JobStatusResponse, summary="Get import status")
async def get_import_status(
    job_id: str,
    job_store: JobStore = Depends(get_job_store),
) -> JobStatusResponse:
    record = job_store.get(job_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return JobStatusResponse.from_record(record)


@router.get("/{job_id}/csv", summary="Download import CSV")
async def download_import_csv(
    job_id: str,
    job_store: JobStore = Depends(get_job_store),
) -> Response:
    record = job_store.get(job_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if record.status != JobStatus.COMPLETED or record.result is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Job is {record.status.value}; CSV is only available once completed",
        )

    return Response(
        content=record.result.csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="products-{job_id}.csv"'},
    )
