# ============================================================================
# Asset Importer - Application Configuration
# ============================================================================
"""
Application configuration module using Pydantic Settings.

This module defines all configuration parameters for the bulk asset importer,
including:
- API/CORS settings
- OpenAI/LLM configuration used by the captioner
- Object storage (MinIO / S3-compatible) settings
- Task queue and job store backends
- Import policy limits and concurrency ceilings

Usage:
    from asset_importer.config import settings
    limit = settings.max_products_per_import
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # =========================================================================
    # API SETTINGS
    # =========================================================================
    api_title: str = "Asset Importer API"
    api_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Enable verbose logging")

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed origins for CORS",
    )

    # =========================================================================
    # OPENAI/LLM CONFIGURATION
    # =========================================================================
    openai_api_key: Optional[str] = Field(default=None, description="LLM API key")
    openai_model: str = Field(default="gpt-4o-mini", description="LLM model name")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="LLM base URL")
    openai_verify_ssl: bool = Field(default=True, description="Verify SSL for LLM requests")
    openai_timeout: float = Field(default=60.0, description="Timeout (s) for LLM requests")
    openai_max_retries: int = Field(default=3, description="Retry count for LLM requests")
    caption_temperature: float = Field(default=0.7, description="Sampling temperature for product copy")
    caption_max_tokens: int = Field(default=500, description="Token ceiling per caption response")

    # =========================================================================
    # OBJECT STORAGE (MinIO / S3-compatible)
    # =========================================================================
    minio_endpoint: str = Field(default="minio:9000", description="MinIO host:port")
    minio_access_key: str = Field(default="admin", description="MinIO access key")
    minio_secret_key: str = Field(default="changeme", description="MinIO secret key")
    minio_secure: bool = Field(default=False, description="Use TLS for MinIO")
    minio_bucket_assets: str = Field(default="product-assets", description="Bucket for uploaded assets")
    asset_public_base_url: Optional[str] = Field(
        default=None,
        description="Public base URL (CDN / pull zone) used to build asset URLs",
    )

    # =========================================================================
    # TASK QUEUE
    # =========================================================================
    use_celery: bool = Field(default=True, description="Dispatch imports to Celery workers")
    celery_broker_url: str = Field(default="redis://redis:6379/0")
    celery_result_backend: str = Field(default="redis://redis:6379/1")
    import_queue: str = Field(default="imports", description="Celery queue for import jobs")
    import_task_max_retries: int = Field(default=2, description="Celery retries before a job is failed")

    # =========================================================================
    # JOB STORE
    # =========================================================================
    job_store_backend: str = Field(default="redis", description="'redis' or 'memory'")
    job_redis_url: str = Field(default="redis://redis:6379/2")
    job_status_ttl_seconds: int = Field(default=259200, description="Retention of job keys (3 days); 0 disables expiry")

    # =========================================================================
    # IMPORT POLICY
    # =========================================================================
    max_products_per_import: int = Field(default=100, description="Maximum units per batch")
    default_product_price: str = Field(default="0.20")
    max_file_size: int = Field(default=500 * 1024 * 1024, description="Max upload size in bytes")
    upload_concurrency: int = Field(default=4, description="Pairs uploaded at once")

    # Captioner ceilings, tuned to provider rate limits and asset sizes
    metadata_concurrency_url_import: int = Field(default=20)
    metadata_concurrency_paired: int = Field(default=8)
    metadata_concurrency_single_image: int = Field(default=25)
    metadata_concurrency_single_media: int = Field(default=15)

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================
    import_webhook_url: Optional[str] = Field(default=None, description="Default completion webhook")
    webhook_timeout: int = Field(default=30)
    webhook_retry_count: int = Field(default=2)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance (imported elsewhere)
settings = Settings()
