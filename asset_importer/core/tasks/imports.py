"""
Celery tasks wrapping the bulk import pipeline.

The task message carries only the job id; the batch itself was stashed in
the job store at submission. With ``USE_CELERY=false`` the same pipeline
runs as an in-process background task instead.
"""
import asyncio
import logging
from typing import Any, Dict, Set

from celery import Task

from ...celery_app import celery_app
from ...config import settings
from ..ingestion.import_pipeline import ImportInputMissingError
from ..ops.job_store import JobNotFoundError, JobStateError

logger = logging.getLogger("asset_importer.tasks")

# keeps in-process tasks referenced until they finish
_background_tasks: Set[asyncio.Task] = set()


class ImportTask(Task):
    def on_retry(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo):
        job_id = kwargs.get("job_id") or (args[0] if args else None)
        logger.warning(f"[{job_id}] Import attempt failed, retrying: {exc}")

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo):
        job_id = kwargs.get("job_id") or (args[0] if args else None)
        if not job_id:
            return
        from ...dependencies import get_pipeline
        get_pipeline().fail(job_id, exc)


@celery_app.task(
    name="asset_importer.bulk_import",
    bind=True,
    base=ImportTask,
    autoretry_for=(Exception,),
    dont_autoretry_for=(ImportInputMissingError, JobNotFoundError, JobStateError),
    retry_backoff=True,
    retry_kwargs={"max_retries": settings.import_task_max_retries},
)
def bulk_import_task(self, job_id: str) -> Dict[str, Any]:
    from ...dependencies import get_pipeline

    logger.info(f"[{job_id}] Import task started (attempt {self.request.retries + 1})")
    result = asyncio.run(get_pipeline().run(job_id))
    return {
        "job_id": job_id,
        "total_products": result.total_products,
        "successful": result.successful,
        "failed": result.failed,
    }


async def run_import_inline(job_id: str) -> None:
    """Run a job in the current event loop, failing it on any fatal error."""
    from ...dependencies import get_pipeline

    pipeline = get_pipeline()
    try:
        await pipeline.run(job_id)
    except Exception as e:
        logger.exception(f"[{job_id}] Import failed: {e}")
        pipeline.fail(job_id, e)


def enqueue_import(job_id: str) -> None:
    """Dispatch a submitted job to Celery, or to the running event loop."""
    if settings.use_celery:
        bulk_import_task.apply_async(kwargs={"job_id": job_id}, queue=settings.import_queue)
        logger.info(f"[{job_id}] Enqueued on Celery queue '{settings.import_queue}'")
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.info(f"[{job_id}] No running event loop; running import synchronously")
        asyncio.run(run_import_inline(job_id))
        return

    task = loop.create_task(run_import_inline(job_id))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    logger.info(f"[{job_id}] Scheduled in-process import")
