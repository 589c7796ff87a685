# ============================================================================
# Asset Importer - FastAPI Application Entry Point
# ============================================================================
"""
Main FastAPI application module for the bulk asset importer.

This module sets up the FastAPI application with:
- Logging configuration
- CORS middleware for the browser upload client
- Startup logging of the configured backends
- v1 API routers under /api/v1 and the health check under /api

Usage:
    Direct: python -m asset_importer.main
    Docker: uvicorn asset_importer.main:app --host 0.0.0.0 --port 8000
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1 import api_router
from .api.v1.routers import system
from .config import settings
from .dependencies import get_captioner, get_job_store

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("asset_importer.main")

# ============================================================================
# APPLICATION INITIALIZATION
# ============================================================================

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=(
        "Bulk product import API\n\n"
        "Pairs preview images with downloadable deliverables, uploads them, "
        "generates product metadata with an LLM and returns an import CSV."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# ============================================================================
# APPLICATION EVENT HANDLERS
# ============================================================================


@app.on_event("startup")
async def startup_event() -> None:
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")
    logger.info(
        f"Job store: {settings.job_store_backend}, "
        f"dispatch: {'celery' if settings.use_celery else 'in-process'}"
    )
    llm_status = "available" if get_captioner().is_available else "unavailable (fallback metadata)"
    logger.info(f"Captioner: {llm_status}")
    if not get_job_store().ping():
        logger.warning("Job store is not reachable; submissions will fail until it is")


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(api_router, prefix="/api/v1")
app.include_router(system.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("asset_importer.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
