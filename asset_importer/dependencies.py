# asset_importer/dependencies.py
"""
Service wiring shared by the API, the Celery worker and the CLI.

Each collaborator is built lazily on first use from ``settings`` and then
reused for the life of the process. Routers receive them through FastAPI
``Depends``, so tests swap them with ``app.dependency_overrides``.

Usage:
    from fastapi import Depends
    from asset_importer.dependencies import get_import_service

    @router.post("/imports")
    async def create_import(service: ImportService = Depends(get_import_service)):
        ...
"""

import logging
from typing import Optional

from .config import settings
from .core.ingestion.import_pipeline import ImportPipeline
from .core.ingestion.import_service import ImportService
from .core.llm.captioner import Captioner
from .core.notify.webhook import WebhookNotifier
from .core.ops.job_store import JobStore, build_job_store
from .core.storage.blob_store import BlobStore, MinIOBlobStore

logger = logging.getLogger("asset_importer.dependencies")

_job_store: Optional[JobStore] = None
_blob_store: Optional[BlobStore] = None
_captioner: Optional[Captioner] = None
_notifier: Optional[WebhookNotifier] = None
_pipeline: Optional[ImportPipeline] = None
_import_service: Optional[ImportService] = None


def get_job_store() -> JobStore:
    global _job_store
    if _job_store is None:
        _job_store = build_job_store(settings)
    return _job_store


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = MinIOBlobStore(settings)
    return _blob_store


def get_captioner() -> Captioner:
    global _captioner
    if _captioner is None:
        _captioner = Captioner(settings)
    return _captioner


def get_notifier() -> WebhookNotifier:
    global _notifier
    if _notifier is None:
        _notifier = WebhookNotifier(settings)
    return _notifier


def get_pipeline() -> ImportPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ImportPipeline(
            job_store=get_job_store(),
            blob_store=get_blob_store(),
            captioner=get_captioner(),
            notifier=get_notifier(),
            cfg=settings,
        )
    return _pipeline


def get_import_service() -> ImportService:
    global _import_service
    if _import_service is None:
        # Import here to avoid circular imports
        from .core.tasks.imports import enqueue_import
        _import_service = ImportService(get_job_store(), enqueue_import, settings)
    return _import_service


def reset_services() -> None:
    """Drop cached collaborators (tests, settings reloads)."""
    global _job_store, _blob_store, _captioner, _notifier, _pipeline, _import_service
    _job_store = _blob_store = _captioner = _notifier = _pipeline = _import_service = None
