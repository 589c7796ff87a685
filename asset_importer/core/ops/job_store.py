"""
Job lifecycle store for import jobs.

Responsibilities:
- Create and transition job status records (processing -> completed | failed)
- Stash oversized job inputs so the task queue only carries the job id
- Persist per-stage checkpoints so a retried pipeline run can resume

Two backends share the ``JobStore`` contract:
- ``RedisJobStore``: JSON values with a TTL, shared by API and workers
- ``InMemoryJobStore``: process-local dicts for single-instance runs and tests

Terminal records are immutable. Re-writing a terminal job with the exact
same outcome is accepted as a no-op (task retries may repeat the final
write); any other write raises ``JobStateError``.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis

from ...config import Settings, settings
from ...models import ImportResult, JobRecord, JobStatus

logger = logging.getLogger("asset_importer.job_store")


JOB_KEY = "import:job:{job_id}"
INPUT_KEY = "import:job:{job_id}:input"
CHECKPOINT_KEY = "import:job:{job_id}:checkpoints"


class JobNotFoundError(KeyError):
    """Raised when updating a job id that was never created."""


class JobStateError(RuntimeError):
    """Raised on an illegal status transition (duplicate create, terminal rewrite)."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobStore(ABC):
    """
    Key-value lifecycle tracker for import jobs.

    Subclasses provide raw record/input/checkpoint storage; the status
    state machine lives here so every backend enforces the same rules.
    """

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _read(self, job_id: str) -> Optional[JobRecord]:
        ...

    @abstractmethod
    def _write(self, record: JobRecord) -> None:
        ...

    @abstractmethod
    def stash_input(self, job_id: str, payload: Dict[str, Any]) -> None:
        """Store the job's submission payload outside the task message."""
        ...

    @abstractmethod
    def fetch_input(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Return the stashed payload, or None when nothing was stashed."""
        ...

    @abstractmethod
    def save_checkpoint(self, job_id: str, stage: str, data: Any) -> None:
        ...

    @abstractmethod
    def load_checkpoint(self, job_id: str, stage: str) -> Optional[Any]:
        ...

    @abstractmethod
    def clear_checkpoints(self, job_id: str) -> None:
        ...

    @abstractmethod
    def ping(self) -> bool:
        ...

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get(self, job_id: str) -> Optional[JobRecord]:
        """Return the job record, or None if the id is unknown."""
        return self._read(job_id)

    def create(self, job_id: str) -> JobRecord:
        """Register a new job in ``processing`` state."""
        if self._read(job_id) is not None:
            raise JobStateError(f"Job {job_id} already exists")
        ts = _now()
        record = JobRecord(job_id=job_id, status=JobStatus.PROCESSING, created_at=ts, updated_at=ts)
        self._write(record)
        logger.info(f"Created job {job_id}")
        return record

    def update(
        self,
        job_id: str,
        status: JobStatus,
        result: Optional[ImportResult] = None,
        error: Optional[str] = None,
    ) -> JobRecord:
        """
        Transition a job.

        Raises:
            JobNotFoundError: If the job was never created
            JobStateError: If the job is terminal and the write differs from
                the stored outcome, or the outcome is incomplete
        """
        status = JobStatus(status)
        record = self._read(job_id)
        if record is None:
            raise JobNotFoundError(job_id)

        if status == JobStatus.COMPLETED and result is None:
            raise JobStateError(f"Job {job_id}: completed status requires a result")
        if status == JobStatus.FAILED and not error:
            error = "Import failed"

        if record.status.is_terminal:
            if record.status == status and record.result == result and record.error == error:
                logger.debug(f"Job {job_id} already {status.value}; ignoring identical write")
                return record
            raise JobStateError(
                f"Job {job_id} is already {record.status.value}; refusing transition to {status.value}"
            )

        record = record.model_copy(update={
            "status": status,
            "result": result if status == JobStatus.COMPLETED else None,
            "error": error if status == JobStatus.FAILED else None,
            "updated_at": _now(),
        })
        self._write(record)
        logger.info(f"Job {job_id} -> {status.value}")
        return record


class InMemoryJobStore(JobStore):
    """Process-local job store. Not shared between API and Celery workers."""

    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._inputs: Dict[str, Dict[str, Any]] = {}
        self._checkpoints: Dict[str, Dict[str, Any]] = {}

    def _read(self, job_id: str) -> Optional[JobRecord]:
        return self._jobs.get(job_id)

    def _write(self, record: JobRecord) -> None:
        self._jobs[record.job_id] = record

    def stash_input(self, job_id: str, payload: Dict[str, Any]) -> None:
        self._inputs[job_id] = payload

    def fetch_input(self, job_id: str) -> Optional[Dict[str, Any]]:
        return self._inputs.get(job_id)

    def save_checkpoint(self, job_id: str, stage: str, data: Any) -> None:
        self._checkpoints.setdefault(job_id, {})[stage] = data

    def load_checkpoint(self, job_id: str, stage: str) -> Optional[Any]:
        return self._checkpoints.get(job_id, {}).get(stage)

    def clear_checkpoints(self, job_id: str) -> None:
        self._checkpoints.pop(job_id, None)

    def ping(self) -> bool:
        return True


class RedisJobStore(JobStore):
    """Redis-backed job store; keys expire after ``ttl`` seconds (0 keeps them)."""

    def __init__(self, client: redis.Redis, ttl: int = 259200):
        self._redis = client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int = 259200) -> "RedisJobStore":
        return cls(redis.Redis.from_url(url), ttl=ttl)

    def _read(self, job_id: str) -> Optional[JobRecord]:
        raw = self._redis.get(JOB_KEY.format(job_id=job_id))
        if not raw:
            return None
        return JobRecord.model_validate_json(raw)

    def _write(self, record: JobRecord) -> None:
        self._redis.set(JOB_KEY.format(job_id=record.job_id), record.model_dump_json(), ex=self.ttl or None)

    def stash_input(self, job_id: str, payload: Dict[str, Any]) -> None:
        self._redis.set(INPUT_KEY.format(job_id=job_id), json.dumps(payload), ex=self.ttl or None)

    def fetch_input(self, job_id: str) -> Optional[Dict[str, Any]]:
        raw = self._redis.get(INPUT_KEY.format(job_id=job_id))
        if not raw:
            return None
        return json.loads(raw)

    def save_checkpoint(self, job_id: str, stage: str, data: Any) -> None:
        key = CHECKPOINT_KEY.format(job_id=job_id)
        self._redis.hset(key, stage, json.dumps(data, default=str))
        if self.ttl:
            self._redis.expire(key, self.ttl)

    def load_checkpoint(self, job_id: str, stage: str) -> Optional[Any]:
        raw = self._redis.hget(CHECKPOINT_KEY.format(job_id=job_id), stage)
        if raw is None:
            return None
        return json.loads(raw)

    def clear_checkpoints(self, job_id: str) -> None:
        self._redis.delete(CHECKPOINT_KEY.format(job_id=job_id))

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.RedisError as e:
            logger.error(f"Job store ping failed: {e}")
            return False


def build_job_store(cfg: Settings = settings) -> JobStore:
    """Construct the job store selected by ``JOB_STORE_BACKEND``."""
    backend = cfg.job_store_backend.lower()
    if backend == "memory":
        logger.info("Using in-memory job store")
        return InMemoryJobStore()
    if backend == "redis":
        logger.info("Using Redis job store")
        return RedisJobStore.from_url(cfg.job_redis_url, ttl=cfg.job_status_ttl_seconds)
    raise ValueError(f"Unknown job store backend: {cfg.job_store_backend}")
