"""
Bulk import pipeline.

Runs one import job through four sequential stages:

1. upload-assets      pass through pre-uploaded URLs or upload inline
                      (base64) payloads to the blob store
2. generate-metadata  caption every uploaded pair, bounded by the
                      concurrency ceiling of the batch's category type
3. generate-csv       render every product record, failed ones included
4. complete           write the terminal job record, then notify the webhook

Each stage consumes only the previous stage's output and persists it as a
job checkpoint, so a retried run (Celery retry) resumes after the last
completed stage instead of uploading or captioning twice.

Item-level problems never raise out of a stage: an upload or caption
failure degrades that item's ``ProductRecord`` to ``failed`` and the batch
carries on. Only an exception in the orchestration itself fails the job.
"""

import asyncio
import base64
import binascii
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from pydantic import TypeAdapter

from ...config import Settings, settings
from ...models import (
    AssetPayload,
    AssetUpload,
    ImportPair,
    ImportRequest,
    ImportResult,
    ItemStatus,
    JobRecord,
    JobStatus,
    JobStatusResponse,
    PairingMode,
    ProductRecord,
)
from ..llm.captioner import Captioner
from ..notify.webhook import WebhookNotifier
from ..ops.job_store import JobNotFoundError, JobStateError, JobStore
from ..storage.blob_store import BlobStore
from ..utils.concurrency import map_with_concurrency
from .csv_export import generate_csv
from .file_pairing import is_image_file, is_video_file

logger = logging.getLogger("asset_importer.pipeline")

STAGE_UPLOAD = "upload-assets"
STAGE_METADATA = "generate-metadata"
STAGE_CSV = "generate-csv"

_UPLOADS = TypeAdapter(List[AssetUpload])
_PRODUCTS = TypeAdapter(List[ProductRecord])
_CSV = TypeAdapter(str)


class ImportInputMissingError(RuntimeError):
    """Raised when a job has no stashed input (expired or never submitted)."""


class ImportPipeline:
    """Orchestrates the stages of one import job."""

    def __init__(
        self,
        job_store: JobStore,
        blob_store: BlobStore,
        captioner: Captioner,
        notifier: WebhookNotifier,
        cfg: Settings = settings,
    ):
        self.job_store = job_store
        self.blob_store = blob_store
        self.captioner = captioner
        self.notifier = notifier
        self.cfg = cfg

    # ========================================================================
    # Entry points
    # ========================================================================

    async def run(self, job_id: str) -> ImportResult:
        """
        Run (or resume) the job's pipeline to completion.

        Raises:
            ImportInputMissingError: If no input was stashed for the job
            JobNotFoundError: If the job record does not exist
            JobStateError: If the job already failed
        """
        record = self.job_store.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        if record.status == JobStatus.COMPLETED and record.result is not None:
            logger.info(f"[{job_id}] Already completed; skipping redelivered run")
            return record.result
        if record.status == JobStatus.FAILED:
            raise JobStateError(f"Job {job_id} already failed: {record.error}")

        raw = self.job_store.fetch_input(job_id)
        if raw is None:
            raise ImportInputMissingError(f"No stashed input for job {job_id}")
        request = ImportRequest.model_validate(raw)

        logger.info(
            f"[{job_id}] Import started: {len(request.pairs)} pairs, "
            f"category={request.category_name!r}, mode={request.pairing_mode.value}"
        )

        uploads = await self._stage(
            job_id, STAGE_UPLOAD, _UPLOADS, lambda: self.acquire_assets(request)
        )
        products = await self._stage(
            job_id, STAGE_METADATA, _PRODUCTS, lambda: self.generate_metadata(request, uploads)
        )
        csv_content = await self._stage(
            job_id, STAGE_CSV, _CSV, lambda: self._render_csv(products)
        )

        successful = sum(1 for p in products if p.status == ItemStatus.SUCCESS)
        result = ImportResult(
            job_id=job_id,
            total_products=len(products),
            successful=successful,
            failed=len(products) - successful,
            csv_content=csv_content,
        )
        await self.complete(job_id, result, webhook_url=request.webhook_url or self.cfg.import_webhook_url)
        return result

    def fail(self, job_id: str, error: Any) -> Optional[JobRecord]:
        """Mark a job failed after a fatal pipeline error."""
        message = str(error) or type(error).__name__
        try:
            return self.job_store.update(job_id, JobStatus.FAILED, error=message)
        except JobNotFoundError:
            logger.error(f"[{job_id}] Cannot mark unknown job as failed: {message}")
        except JobStateError as e:
            logger.warning(f"[{job_id}] Not marking job failed: {e}")
        return None

    async def complete(self, job_id: str, result: ImportResult, webhook_url: Optional[str] = None) -> JobRecord:
        """Write the terminal record, then notify the webhook (best effort)."""
        record = self.job_store.update(job_id, JobStatus.COMPLETED, result=result)
        self.job_store.clear_checkpoints(job_id)
        logger.info(
            f"[{job_id}] Import completed: {result.successful}/{result.total_products} successful, "
            f"{result.failed} failed"
        )

        if webhook_url:
            payload = JobStatusResponse.from_record(record).model_dump(mode="json")
            try:
                await self.notifier.notify(webhook_url, payload)
            except Exception as e:
                logger.error(f"[{job_id}] Webhook notification raised: {e}")
        return record

    # ========================================================================
    # Stage 1: acquire assets
    # ========================================================================

    async def acquire_assets(self, request: ImportRequest) -> List[AssetUpload]:
        results = await map_with_concurrency(
            request.pairs,
            self.cfg.upload_concurrency,
            lambda pair, _index: self._acquire_pair(pair),
        )

        uploads = []
        for pair, settled in zip(request.pairs, results):
            if settled.ok:
                uploads.append(settled.value)
            else:
                uploads.append(AssetUpload(
                    pair_id=pair.id,
                    base_name=pair.base_name,
                    download_file_name=(pair.download_file or pair.image_file).name,
                    errors=[f"Upload failed: {settled.reason}"],
                ))

        failed = sum(1 for u in uploads if u.errors)
        logger.info(f"Asset stage finished: {len(uploads) - failed} ready, {failed} with errors")
        return uploads

    async def _acquire_pair(self, pair: ImportPair) -> AssetUpload:
        record = AssetUpload(
            pair_id=pair.id,
            base_name=pair.base_name,
            download_file_name=(pair.download_file or pair.image_file).name,
        )

        if pair.download_file is None:
            # single-file unit: one asset is both preview and deliverable
            url, error = await self._acquire_asset(pair.image_file, _media_folder(pair.image_file.name))
            record.image_url = record.download_url = url
            if error:
                record.errors.append(error)
            return record

        (image_url, image_error), (download_url, download_error) = await asyncio.gather(
            self._acquire_asset(pair.image_file, "images"),
            self._acquire_asset(pair.download_file, "downloads"),
        )
        record.image_url = image_url
        record.download_url = download_url
        record.errors.extend(e for e in (image_error, download_error) if e)
        return record

    async def _acquire_asset(self, asset: AssetPayload, folder: str) -> Tuple[Optional[str], Optional[str]]:
        """Return ``(url, error)``; exactly one of them is set."""
        if asset.url:
            return asset.url, None
        if not asset.data:
            return None, f"No URL or data provided for {asset.name}"

        try:
            data = base64.b64decode(asset.data, validate=True)
        except (binascii.Error, ValueError):
            return None, f"Invalid base64 data for {asset.name}"

        try:
            result = await self.blob_store.upload(data, asset.name, folder)
        except Exception as e:
            logger.error(f"Blob store raised while uploading {asset.name}: {e}")
            return None, f"Failed to upload {asset.name}: {e}"

        if not result.success or not result.url:
            return None, f"Failed to upload {asset.name}: {result.error or 'no URL returned'}"
        return result.url, None

    # ========================================================================
    # Stage 2: metadata
    # ========================================================================

    def metadata_concurrency(self, request: ImportRequest) -> int:
        """Captioner ceiling for the batch's category type and payload kind."""
        if request.pairing_mode == PairingMode.SINGLE_FILE:
            if all(is_image_file(p.image_file.name) for p in request.pairs):
                return self.cfg.metadata_concurrency_single_image
            return self.cfg.metadata_concurrency_single_media

        pre_uploaded = all(
            p.image_file.url and (p.download_file is None or p.download_file.url)
            for p in request.pairs
        )
        if pre_uploaded:
            return self.cfg.metadata_concurrency_url_import
        return self.cfg.metadata_concurrency_paired

    async def generate_metadata(self, request: ImportRequest, uploads: List[AssetUpload]) -> List[ProductRecord]:
        limit = self.metadata_concurrency(request)
        logger.info(f"Generating metadata for {len(uploads)} items (concurrency={limit})")

        async def _caption(upload: AssetUpload, _index: int) -> ProductRecord:
            if not upload.ready:
                return self._failed_record(request, upload, "; ".join(upload.errors) or "Missing URLs")
            try:
                metadata = await self.captioner.caption(
                    upload.image_url, upload.download_file_name, request.category_name
                )
            except Exception as e:
                logger.warning(f"Metadata generation failed for {upload.base_name}: {e}")
                return self._failed_record(request, upload, str(e) or "Metadata generation failed")

            return ProductRecord(
                name=metadata.name,
                description=metadata.description,
                price=self.cfg.default_product_price,
                category_id=request.category_id,
                download_url=upload.download_url,
                image_url=[upload.image_url],
                keywords=metadata.keywords,
                status=ItemStatus.SUCCESS,
            )

        results = await map_with_concurrency(uploads, limit, _caption)

        products = []
        for upload, settled in zip(uploads, results):
            if settled.ok:
                products.append(settled.value)
            else:
                products.append(self._failed_record(request, upload, str(settled.reason) or "Unknown error"))
        return products

    def _failed_record(self, request: ImportRequest, upload: AssetUpload, error: str) -> ProductRecord:
        return ProductRecord(
            name=upload.base_name,
            price=self.cfg.default_product_price,
            category_id=request.category_id,
            image_url=[upload.image_url] if upload.image_url else [],
            status=ItemStatus.FAILED,
            error=error,
        )

    # ========================================================================
    # Stage 3: CSV
    # ========================================================================

    async def _render_csv(self, products: List[ProductRecord]) -> str:
        return generate_csv(products)

    # ========================================================================
    # Checkpointing
    # ========================================================================

    async def _stage(
        self,
        job_id: str,
        name: str,
        adapter: TypeAdapter,
        compute: Callable[[], Awaitable[Any]],
    ) -> Any:
        cached = self.job_store.load_checkpoint(job_id, name)
        if cached is not None:
            logger.info(f"[{job_id}] {name}: reusing checkpoint")
            return adapter.validate_python(cached)

        logger.info(f"[{job_id}] {name}: started")
        value = await compute()
        self.job_store.save_checkpoint(job_id, name, adapter.dump_python(value, mode="json"))
        return value


def _media_folder(file_name: str) -> str:
    return "videos" if is_video_file(file_name) else "images"
