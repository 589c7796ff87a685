from fastapi import APIRouter

# Aggregate all v1 routers here
from .routers import imports, uploads

api_router = APIRouter()
api_router.include_router(imports.router)
api_router.include_router(uploads.router)

__all__ = ["api_router"]
