"""
Blob store for product assets.

The import pipeline only needs one operation from durable storage:
``upload(data, file_name, folder) -> UploadResult``. Failures are reported
in the result instead of raised, so the pipeline can record them against
the item that caused them.

``MinIOBlobStore`` implements the contract on any S3-compatible endpoint.
The ``minio`` client is synchronous, so uploads run in a worker thread to
keep the event loop free while bytes are in transit.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from minio import Minio
from minio.error import S3Error

from ...config import Settings, settings
from ..utils.text_utils import get_extension, safe_object_name

logger = logging.getLogger("asset_importer.storage")

FOLDERS = ("images", "downloads", "videos")

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "psd": "image/vnd.adobe.photoshop",
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "pdf": "application/pdf",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "webm": "video/webm",
}


def guess_content_type(file_name: str) -> str:
    return CONTENT_TYPES.get(get_extension(file_name), "application/octet-stream")


@dataclass(frozen=True)
class UploadResult:
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


class BlobStore(ABC):
    """Durable storage for uploaded assets."""

    @abstractmethod
    async def upload(self, data: bytes, file_name: str, folder: str = "images") -> UploadResult:
        ...


class MinIOBlobStore(BlobStore):
    """
    MinIO (S3-compatible) blob store.

    Objects are written to ``<bucket>/<folder>/<safe file name>`` and
    addressed by ``asset_public_base_url`` when configured (CDN / pull zone),
    otherwise by the MinIO endpoint itself.
    """

    def __init__(self, cfg: Settings = settings):
        self.endpoint = cfg.minio_endpoint
        self.access_key = cfg.minio_access_key
        self.secret_key = cfg.minio_secret_key
        self.secure = cfg.minio_secure
        self.bucket = cfg.minio_bucket_assets
        self.public_base_url = cfg.asset_public_base_url
        self._client: Optional[Minio] = None
        self._bucket_ready = False

    @property
    def client(self) -> Minio:
        """Get or create MinIO client (lazy initialization)."""
        if self._client is None:
            self._client = Minio(
                endpoint=self.endpoint,
                access_key=self.access_key,
                secret_key=self.secret_key,
                secure=self.secure,
            )
            logger.info(f"MinIO client initialized (endpoint={self.endpoint}, secure={self.secure})")
        return self._client

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        protocol = "https" if self.secure else "http"
        return f"{protocol}://{self.endpoint}/{self.bucket}/{key}"

    def ensure_bucket(self) -> None:
        """Create the asset bucket if it doesn't exist."""
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)
            logger.info(f"Created bucket: {self.bucket}")
        self._bucket_ready = True

    def _put(self, data: bytes, key: str, content_type: str) -> None:
        self.ensure_bucket()
        self.client.put_object(
            bucket_name=self.bucket,
            object_name=key,
            data=BytesIO(data),
            length=len(data),
            content_type=content_type,
        )

    async def upload(self, data: bytes, file_name: str, folder: str = "images") -> UploadResult:
        if folder not in FOLDERS:
            return UploadResult(success=False, error=f"Unknown folder: {folder}")

        key = f"{folder}/{safe_object_name(file_name)}"
        try:
            await asyncio.to_thread(self._put, data, key, guess_content_type(file_name))
        except S3Error as e:
            logger.error(f"Upload of {file_name} failed: {e.code} {e.message}")
            return UploadResult(success=False, error=e.message or e.code or "Upload failed")
        except Exception as e:
            logger.error(f"Upload of {file_name} failed: {e}")
            return UploadResult(success=False, error=str(e) or "Upload failed")

        logger.info(f"Uploaded {self.bucket}/{key} ({len(data)} bytes)")
        return UploadResult(success=True, url=self.public_url(key))
