import os
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Configure the app for tests before importing any asset_importer modules.
os.environ.setdefault("USE_CELERY", "false")
os.environ.setdefault("JOB_STORE_BACKEND", "memory")
os.environ["OPENAI_API_KEY"] = ""
os.environ.setdefault("IMPORT_WEBHOOK_URL", "")

from asset_importer.config import Settings  # noqa: E402
from asset_importer.core.llm.captioner import ProductMetadata  # noqa: E402
from asset_importer.core.ops.job_store import InMemoryJobStore  # noqa: E402
from asset_importer.core.storage.blob_store import BlobStore, UploadResult  # noqa: E402


class FakeBlobStore(BlobStore):
    """Records uploads; file names listed in ``fail_names`` fail."""

    def __init__(self, fail_names=()):
        self.fail_names = set(fail_names)
        self.uploads: List[Tuple[str, str, bytes]] = []

    async def upload(self, data: bytes, file_name: str, folder: str = "images") -> UploadResult:
        self.uploads.append((folder, file_name, data))
        if file_name in self.fail_names:
            return UploadResult(success=False, error=f"storage rejected {file_name}")
        return UploadResult(success=True, url=f"https://cdn.test/{folder}/{file_name}")


class FakeCaptioner:
    """Deterministic captioner; raises for file names listed in ``fail_names``."""

    is_available = True

    def __init__(self, fail_names=()):
        self.fail_names = set(fail_names)
        self.calls: List[Tuple[str, str, str]] = []

    async def caption(self, asset_url: str, file_name: str, category_name: str) -> ProductMetadata:
        self.calls.append((asset_url, file_name, category_name))
        if file_name in self.fail_names:
            raise RuntimeError(f"captioner exploded on {file_name}")
        return ProductMetadata(
            name=f"Product {file_name}",
            description=f"A {category_name} product",
            keywords=[category_name.lower(), "digital"],
        )


class FakeNotifier:
    def __init__(self, result: bool = True, exc: Optional[Exception] = None):
        self.result = result
        self.exc = exc
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def notify(self, url: str, payload: Dict[str, Any]) -> bool:
        self.calls.append((url, payload))
        if self.exc is not None:
            raise self.exc
        return self.result


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key=None,
        job_store_backend="memory",
        use_celery=False,
        import_webhook_url=None,
        upload_concurrency=2,
    )


@pytest.fixture
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def captioner() -> FakeCaptioner:
    return FakeCaptioner()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()
