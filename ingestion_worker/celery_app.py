from __future__ import annotations

import os

from celery import Celery

from ingestion_worker.app_config import bootstrap

bootstrap()

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ingest_site.settings")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


app = Celery("ingestion_worker")

# broker / backend / eager mode come from Django settings (CELERY_*)
app.config_from_object("django.conf:settings", namespace="CELERY")

app.conf.update(
    task_track_started=True,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,
    task_ignore_result=_env_flag("CELERY_TASK_IGNORE_RESULT", True),
    result_expires=_env_int("CELERY_RESULT_EXPIRES", 3600),
    # one file per worker process at a time; long runs should not hoard messages
    worker_prefetch_multiplier=_env_int("CELERY_PREFETCH_MULTIPLIER", 1),
    task_acks_late=_env_flag("CELERY_TASK_ACKS_LATE", True),
    broker_pool_limit=_env_int("CELERY_BROKER_POOL_LIMIT", 10),
    broker_connection_retry_on_startup=True,
)

app.autodiscover_tasks(["ingestion_worker"])
