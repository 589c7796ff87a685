# asset_importer/models.py
"""
Shared Pydantic models for the import API, the job store and the pipeline.

Request models accept both the snake_case field names and the camelCase
names used by browser clients (``baseName``, ``imageFile``...). Responses
are always serialized with snake_case names.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PairingMode(str, Enum):
    PAIRED = "paired"
    SINGLE_FILE = "single-file"


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


class ItemStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


# ============================================================================
# SUBMISSION
# ============================================================================

class AssetPayload(BaseModel):
    """One asset of a pair: either already uploaded (url) or inline (base64 data)."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    url: Optional[str] = None
    data: Optional[str] = Field(default=None, description="Base64-encoded file bytes")
    content_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("content_type", "contentType", "type")
    )
    size: Optional[int] = None

    @property
    def has_source(self) -> bool:
        return bool(self.url) or bool(self.data)


class ImportPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    base_name: str = Field(validation_alias=AliasChoices("base_name", "baseName"))
    image_file: AssetPayload = Field(validation_alias=AliasChoices("image_file", "imageFile"))
    download_file: Optional[AssetPayload] = Field(
        default=None, validation_alias=AliasChoices("download_file", "downloadFile")
    )

    @property
    def primary_asset(self) -> AssetPayload:
        return self.image_file

    @property
    def secondary_asset(self) -> Optional[AssetPayload]:
        return self.download_file


class ImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("job_id", "jobId"))
    category_id: str = Field(validation_alias=AliasChoices("category_id", "categoryId"))
    category_name: str = Field(validation_alias=AliasChoices("category_name", "categoryName"))
    pairing_mode: PairingMode = Field(
        default=PairingMode.PAIRED, validation_alias=AliasChoices("pairing_mode", "pairingMode")
    )
    webhook_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("webhook_url", "webhookUrl")
    )
    pairs: List[ImportPair]


class ImportAcceptedResponse(BaseModel):
    job_id: str
    status: JobStatus = JobStatus.PROCESSING


# ============================================================================
# PIPELINE RECORDS
# ============================================================================

class AssetUpload(BaseModel):
    """Output of the acquire-assets stage for one pair."""
    pair_id: str
    base_name: str
    download_file_name: str
    image_url: Optional[str] = None
    download_url: Optional[str] = None
    errors: List[str] = Field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.errors and bool(self.image_url) and bool(self.download_url)


class ProductRecord(BaseModel):
    name: str
    description: str = ""
    price: str
    category_id: str
    download_url: str = ""
    image_url: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    is_featured: bool = False
    is_archived: bool = False
    status: ItemStatus = ItemStatus.SUCCESS
    error: Optional[str] = None


class ImportResult(BaseModel):
    job_id: str
    total_products: int
    successful: int
    failed: int
    csv_content: str


# ============================================================================
# JOB RECORDS
# ============================================================================

class JobRecord(BaseModel):
    job_id: str
    status: JobStatus
    result: Optional[ImportResult] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    csv_content: Optional[str] = None
    successful: Optional[int] = None
    failed: Optional[int] = None
    total_products: Optional[int] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: JobRecord) -> "JobStatusResponse":
        result = record.result
        return cls(
            job_id=record.job_id,
            status=record.status,
            csv_content=result.csv_content if result else None,
            successful=result.successful if result else None,
            failed=result.failed if result else None,
            total_products=result.total_products if result else None,
            error=record.error,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


# ============================================================================
# MISC RESPONSES
# ============================================================================

class PairPreview(BaseModel):
    id: str
    base_name: str
    primary_file: str
    secondary_file: Optional[str] = None


class PairingPreviewResponse(BaseModel):
    pairs: List[PairPreview]
    unmatched: List[str]
    errors: List[str]
    valid: bool
    error: Optional[str] = None


class UploadResponse(BaseModel):
    success: bool
    url: str
    file_name: str


class HealthStatus(BaseModel):
    status: str
    version: str
    llm_connected: bool
    job_store_connected: bool
