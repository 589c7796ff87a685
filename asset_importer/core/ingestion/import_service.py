"""
Import submission service.

Validates a batch, registers the job, stashes the batch payload in the job
store and hands the job id to a dispatcher (Celery task or in-process
background task). Submission returns as soon as the job is registered.
"""

import base64
import logging
import uuid
from typing import Callable, List, Optional, Sequence

from ...config import Settings, settings
from ...models import AssetPayload, ImportPair, ImportRequest, JobStatus, PairingMode
from ..ops.job_store import JobStore
from .file_pairing import CategoryPolicy, FilePair, RawFile, is_media_file, validate_pairs

logger = logging.getLogger("asset_importer.ingestion.service")


class ImportRequestError(ValueError):
    """Raised when a batch is rejected before a job is created."""


def policy_for(mode: PairingMode, cfg: Settings = settings) -> CategoryPolicy:
    return CategoryPolicy(mode=mode, max_units=cfg.max_products_per_import)


def _to_payload(f: RawFile) -> AssetPayload:
    return AssetPayload(
        name=f.name,
        data=base64.b64encode(f.data).decode("ascii"),
        content_type=f.content_type,
        size=f.size,
    )


def to_import_pairs(pairs: Sequence[FilePair]) -> List[ImportPair]:
    """Convert locally paired files into submission pairs with inline data."""
    return [
        ImportPair(
            id=p.id,
            base_name=p.base_name,
            image_file=_to_payload(p.primary_asset),
            download_file=_to_payload(p.secondary_asset) if p.secondary_asset else None,
        )
        for p in pairs
    ]


class ImportService:
    """
    Front door for bulk imports.

    ``dispatch`` receives the job id once the job record and its input are
    stored; it must not block on the pipeline itself.
    """

    def __init__(self, job_store: JobStore, dispatch: Callable[[str], None], cfg: Settings = settings):
        self.job_store = job_store
        self.dispatch = dispatch
        self.cfg = cfg

    def validate(self, request: ImportRequest) -> None:
        """
        Raises:
            ImportRequestError: With the first problem found in the batch
        """
        policy = policy_for(request.pairing_mode, self.cfg)
        validation = validate_pairs(request.pairs, policy)
        if not validation.valid:
            raise ImportRequestError(validation.error)

        for pair in request.pairs:
            for asset in (pair.image_file, pair.download_file):
                if asset is not None and not asset.has_source:
                    raise ImportRequestError(
                        f'Pair "{pair.base_name}": file "{asset.name}" has neither a URL nor data'
                    )
            if request.pairing_mode == PairingMode.SINGLE_FILE and not is_media_file(pair.image_file.name):
                raise ImportRequestError(f'Unsupported file type for "{pair.image_file.name}"')

    def submit(self, request: ImportRequest, job_id: Optional[str] = None) -> str:
        """
        Validate, register and dispatch an import job.

        Returns:
            The job id (caller-supplied or generated)

        Raises:
            ImportRequestError: If the batch is invalid
            JobStateError: If the job id is already registered
        """
        self.validate(request)

        job_id = job_id or request.job_id or str(uuid.uuid4())
        self.job_store.create(job_id)
        self.job_store.stash_input(job_id, request.model_dump(mode="json"))

        logger.info(
            f"Submitted import {job_id}: {len(request.pairs)} pairs into "
            f"{request.category_name!r} ({request.pairing_mode.value})"
        )
        try:
            self.dispatch(job_id)
        except Exception as e:
            logger.error(f"Dispatch of import {job_id} failed: {e}")
            self.job_store.update(job_id, JobStatus.FAILED, error=f"Dispatch failed: {e}")
            raise
        return job_id
