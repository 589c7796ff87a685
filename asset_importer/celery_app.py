"""
Celery application setup for the asset importer.

Workers and the API share the broker/result backend configured in
``asset_importer.config``. Import jobs run on their own queue so a long
batch never delays other work on the broker.

Start a worker with:
    celery -A asset_importer.celery_app worker -Q imports --loglevel=info
"""
from celery import Celery
from kombu import Queue

from .config import settings

app = Celery(
    "asset_importer",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["asset_importer.core.tasks.imports"],
)

app.conf.task_queues = (
    Queue(settings.import_queue, routing_key=settings.import_queue),
)

app.conf.update(
    # a job is only acknowledged once its pipeline finished; a crashed
    # worker hands it to the next one, which resumes from checkpoints
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_soft_time_limit=1800,
    task_time_limit=2100,
    result_expires=settings.job_status_ttl_seconds or None,
    task_default_queue=settings.import_queue,
    task_routes={
        "asset_importer.bulk_import": {"queue": settings.import_queue},
    },
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
)

celery_app = app
