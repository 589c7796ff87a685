import logging

from fastapi import APIRouter, Depends

from ....config import settings
from ....core.llm.captioner import Captioner
from ....core.ops.job_store import JobStore
from ....dependencies import get_captioner, get_job_store
from ....models import HealthStatus

router = APIRouter()

logger = logging.getLogger("asset_importer.api.system")


@router.get("/health", response_model=HealthStatus, tags=["System"])
async def health_check(
    captioner: Captioner = Depends(get_captioner),
    job_store: JobStore = Depends(get_job_store),
):
    """Health check endpoint."""
    job_store_ok = job_store.ping()
    return HealthStatus(
        status="healthy" if job_store_ok else "degraded",
        version=settings.api_version,
        llm_connected=captioner.is_available,
        job_store_connected=job_store_ok,
    )
