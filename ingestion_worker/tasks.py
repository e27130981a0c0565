from __future__ import annotations

import logging
from typing import Any, Dict

from ingestion_worker.app_config import get_config
from ingestion_worker.celery_app import app

logger = logging.getLogger("ingestion_worker.tasks")

_cfg = get_config()


def run_job(payload: Dict[str, Any], final_attempt: bool = True) -> Dict[str, Any]:
    # Lazy import: models need the Django app registry, which is ready only after worker start
    from file_ingestion.errors import NotFoundError, SystemFault
    from file_ingestion.services.gateway import IngestJob
    from ingestion_worker.pipeline import CsvIngestionWorker, release_staged

    job = IngestJob.from_payload(payload)
    try:
        return CsvIngestionWorker().run(job).as_dict()
    except NotFoundError:
        logger.error("record=%s vanished before processing, dropping %s", job.record_id, job.staged_path)
        release_staged(job.staged_path)
        return {"record_id": job.record_id, "status": "missing"}
    except SystemFault:
        if final_attempt:
            logger.error("record=%s failed permanently, releasing %s", job.record_id, job.staged_path)
            release_staged(job.staged_path)
        raise


@app.task(
    name="ingestion_worker.ingest_file",
    bind=True,
    max_retries=_cfg.max_attempts - 1,
    time_limit=_cfg.time_limit,
    soft_time_limit=_cfg.soft_time_limit,
    acks_late=True,
    # a hard kill at time_limit requeues the message; begin_attempt caps the restarts
    reject_on_worker_lost=True,
)
def ingest_file(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    from file_ingestion.errors import SystemFault

    final_attempt = self.request.retries >= self.max_retries
    try:
        return run_job(payload, final_attempt=final_attempt)
    except SystemFault as exc:
        if final_attempt:
            raise
        countdown = _cfg.retry_backoff * (2 ** self.request.retries)
        logger.warning(
            "record=%s attempt %s/%s faulted, retrying in %.0fs: %s",
            payload.get("record_id"),
            self.request.retries + 1,
            self.max_retries + 1,
            countdown,
            exc,
        )
        raise self.retry(exc=exc, countdown=countdown)
