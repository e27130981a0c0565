from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from ..errors import NotFoundError
from ..models import FileRecord

logger = logging.getLogger("file_ingestion.progress")

STAGE_HISTORY_LIMIT = 120

# a run may (re)enter processing from these; processing covers a redelivered task
RESTARTABLE_STATUSES = (FileRecord.STATUS_QUEUED, FileRecord.STATUS_PROCESSING, FileRecord.STATUS_FAILED)
ACTIVE_STATUSES = (FileRecord.STATUS_QUEUED, FileRecord.STATUS_PROCESSING)


def merge_runtime_meta(current: Optional[dict], incoming: Optional[dict] = None, *, stage: str = "", progress: Optional[int] = None) -> dict:
    meta = dict(current) if isinstance(current, dict) else {}

    if isinstance(incoming, dict):
        for k, v in incoming.items():
            meta[k] = v

    if stage:
        history = meta.get("stage_history")
        if not isinstance(history, list):
            history = []

        event = {
            "stage": stage,
            "ts": timezone.now().isoformat(timespec="seconds"),
        }
        if progress is not None:
            event["progress"] = progress

        should_append = True
        if history:
            last = history[-1]
            if isinstance(last, dict) and last.get("stage") == stage and last.get("progress") == progress:
                should_append = False

        if should_append:
            history.append(event)
            if len(history) > STAGE_HISTORY_LIMIT:
                history = history[-STAGE_HISTORY_LIMIT:]
        meta["stage_history"] = history

    meta["updated_at"] = timezone.now().isoformat(timespec="seconds")
    return meta


class ProgressStore:
    """
    Persisted FileRecord state.

    Every mutation is a single conditional UPDATE (or a row-locked read/modify/write
    when runtime_meta has to be merged), so concurrent pollers only ever see whole
    checkpoints. Checkpoints carry the attempt number; writes from a superseded
    attempt are rejected.
    """

    def get(self, record_id) -> FileRecord:
        try:
            return FileRecord.objects.get(pk=record_id)
        except (FileRecord.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("file record", record_id) from None

    def get_by_fingerprint(self, fingerprint: str) -> Optional[FileRecord]:
        return FileRecord.objects.filter(file_hash=fingerprint).first()

    def create(self, file_name: str, fingerprint: str) -> FileRecord:
        return FileRecord.objects.create(
            file_name=file_name,
            file_hash=fingerprint,
            status=FileRecord.STATUS_QUEUED,
            runtime_meta=merge_runtime_meta({}, stage=FileRecord.STATUS_QUEUED, progress=0),
        )

    def list_all(self) -> List[FileRecord]:
        return list(FileRecord.objects.order_by("-created_at", "-id"))

    def begin_attempt(self, record_id, max_attempts: Optional[int] = None) -> Optional[int]:
        """
        Move the record to ``processing`` with zeroed counters and return the new attempt
        number, or ``None`` when the record already completed or has used up
        ``max_attempts`` (it is then left ``failed``).
        """
        with transaction.atomic():
            record = FileRecord.objects.select_for_update().filter(pk=record_id).first()
            if record is None:
                raise NotFoundError("file record", record_id)
            if record.status not in RESTARTABLE_STATUSES:
                return None
            if max_attempts is not None and record.attempts >= max_attempts:
                if record.status != FileRecord.STATUS_FAILED:
                    # redelivered after a hard kill with no attempts left
                    FileRecord.objects.filter(pk=record_id).update(
                        status=FileRecord.STATUS_FAILED,
                        error_message=f"Gave up after {record.attempts} attempt(s)",
                        completed_at=timezone.now(),
                        runtime_meta=merge_runtime_meta(record.runtime_meta, stage=FileRecord.STATUS_FAILED),
                    )
                logger.warning("record=%s out of attempts (%s), not restarting", record_id, record.attempts)
                return None

            attempt = record.attempts + 1
            FileRecord.objects.filter(pk=record_id).update(
                status=FileRecord.STATUS_PROCESSING,
                attempts=attempt,
                total_rows=0,
                processed_rows=0,
                successful_rows=0,
                failed_rows=0,
                error_message=None,
                completed_at=None,
                runtime_meta=merge_runtime_meta(
                    record.runtime_meta,
                    {"attempts": attempt, "row_errors": [], "row_errors_truncated": False},
                    stage=FileRecord.STATUS_PROCESSING,
                    progress=0,
                ),
            )
        logger.info("record=%s attempt=%s processing", record_id, attempt)
        return attempt

    def set_total(self, record_id, attempt: int, total_rows: int) -> bool:
        return bool(
            FileRecord.objects.filter(
                pk=record_id, attempts=attempt, status=FileRecord.STATUS_PROCESSING
            ).update(total_rows=total_rows)
        )

    def checkpoint(self, record_id, attempt: int, processed: int, successful: int, failed: int) -> bool:
        """Persist counters; never lowers processed_rows within an attempt."""
        updated = FileRecord.objects.filter(
            pk=record_id,
            attempts=attempt,
            status=FileRecord.STATUS_PROCESSING,
            processed_rows__lte=processed,
        ).update(processed_rows=processed, successful_rows=successful, failed_rows=failed)
        logger.debug("record=%s attempt=%s checkpoint processed=%s applied=%s", record_id, attempt, processed, bool(updated))
        return bool(updated)

    def finish(
        self,
        record_id,
        attempt: int,
        processed: int,
        successful: int,
        failed: int,
        row_errors: Iterable[str] = (),
        row_errors_truncated: bool = False,
    ) -> Optional[str]:
        """Terminal success path. Returns the final status, or ``None`` if the attempt was superseded."""
        status = FileRecord.STATUS_COMPLETED_WITH_ERRORS if failed > 0 else FileRecord.STATUS_COMPLETED
        with transaction.atomic():
            record = FileRecord.objects.select_for_update().filter(
                pk=record_id, attempts=attempt, status=FileRecord.STATUS_PROCESSING
            ).first()
            if record is None:
                return None

            FileRecord.objects.filter(pk=record_id).update(
                status=status,
                processed_rows=processed,
                successful_rows=successful,
                failed_rows=failed,
                completed_at=timezone.now(),
                runtime_meta=merge_runtime_meta(
                    record.runtime_meta,
                    {"row_errors": list(row_errors), "row_errors_truncated": row_errors_truncated},
                    stage=status,
                    progress=100,
                ),
            )
        return status

    def fail(
        self,
        record_id,
        message: str,
        attempt: Optional[int] = None,
        row_errors: Iterable[str] = (),
        row_errors_truncated: bool = False,
    ) -> bool:
        """Whole-job failure. Counters keep whatever the last checkpoint wrote."""
        with transaction.atomic():
            qs = FileRecord.objects.select_for_update().filter(pk=record_id, status__in=ACTIVE_STATUSES)
            if attempt is not None:
                qs = qs.filter(attempts=attempt)
            record = qs.first()
            if record is None:
                return False

            FileRecord.objects.filter(pk=record_id).update(
                status=FileRecord.STATUS_FAILED,
                error_message=message,
                completed_at=timezone.now(),
                runtime_meta=merge_runtime_meta(
                    record.runtime_meta,
                    {"row_errors": list(row_errors), "row_errors_truncated": row_errors_truncated},
                    stage=FileRecord.STATUS_FAILED,
                ),
            )
        logger.warning("record=%s attempt=%s failed: %s", record_id, attempt, message)
        return True
