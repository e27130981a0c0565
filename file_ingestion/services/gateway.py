"""
Intake: fingerprint -> dedup -> header pre-check -> stage -> FileRecord -> schedule.

The worker never sees a submission that failed here. Re-submitting byte-identical
content is answered with the existing record, whatever state that record is in.
"""

from __future__ import annotations

import csv
import hashlib
import logging
import os
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction

from ingestion_worker.app_config import get_config
from packages.row_contract import HeaderError, clean_text, read_header

from ..errors import IntakeValidationError
from ..models import FileRecord
from .progress import ProgressStore

logger = logging.getLogger("file_ingestion.gateway")

CHUNK_SIZE = 64 * 1024

OUTCOME_QUEUED = "queued"
OUTCOME_SKIPPED = "skipped"
OUTCOME_REJECTED = "rejected"


@dataclass(frozen=True)
class IngestJob:
    """Self-contained descriptor handed to the worker."""

    record_id: int
    staged_path: str
    file_name: str

    def as_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IngestJob":
        return cls(
            record_id=int(payload["record_id"]),
            staged_path=str(payload["staged_path"]),
            file_name=str(payload.get("file_name") or ""),
        )


@dataclass(frozen=True)
class SubmitResult:
    file_name: str
    record_id: Optional[int]
    outcome: str
    message: str

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def enqueue_job(job: IngestJob) -> None:
    # Lazy import: the celery app is only needed once something is actually scheduled
    from ingestion_worker.tasks import ingest_file

    ingest_file.delay(job.as_payload())


def _iter_chunks(stream: BinaryIO) -> Iterator[bytes]:
    chunks = getattr(stream, "chunks", None)
    if callable(chunks):
        source: Iterable[Any] = chunks()
    else:
        source = iter(lambda: stream.read(CHUNK_SIZE), b"")
    for chunk in source:
        if not chunk:
            continue
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


def _staged_suffix(file_name: str) -> str:
    suffix = Path(file_name).suffix.lower()
    return suffix if suffix in {".csv", ".txt"} else ".csv"


class IngestionGateway:
    def __init__(
        self,
        store: Optional[ProgressStore] = None,
        staging_dir: Optional[Path] = None,
        schedule: Optional[Callable[[IngestJob], None]] = None,
        delimiter: Optional[str] = None,
    ):
        self.store = store or ProgressStore()
        self.staging_dir = Path(staging_dir or getattr(settings, "INGEST_STAGING_DIR", Path(settings.MEDIA_ROOT) / "staging"))
        self.schedule = schedule or enqueue_job
        self.delimiter = delimiter or get_config().delimiter

    def submit(self, stream: BinaryIO, original_name: str) -> SubmitResult:
        file_name = clean_text(Path(original_name or "").name) or "upload.csv"
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.staging_dir / f"incoming_{uuid.uuid4().hex}.part"

        try:
            fingerprint, size = self._stage(stream, tmp_path)

            existing = self.store.get_by_fingerprint(fingerprint)
            if existing is not None:
                return self._skipped(file_name, existing)

            try:
                read_header(tmp_path, self.delimiter)
            except HeaderError as e:
                logger.info("rejected %s: %s", file_name, e)
                raise IntakeValidationError(str(e), file_name=file_name) from e
            except csv.Error as e:
                logger.info("rejected %s: malformed header: %s", file_name, e)
                raise IntakeValidationError(f"malformed header: {e}", file_name=file_name) from e

            try:
                record = self._create_and_schedule(file_name, fingerprint, tmp_path)
            except IntegrityError:
                # lost a race on the unique fingerprint
                existing = self.store.get_by_fingerprint(fingerprint)
                if existing is None:
                    raise
                return self._skipped(file_name, existing)
        finally:
            tmp_path.unlink(missing_ok=True)

        logger.info("queued %s as record=%s (%s bytes, sha256=%s)", file_name, record.id, size, fingerprint[:12])
        return SubmitResult(
            file_name=file_name,
            record_id=record.id,
            outcome=OUTCOME_QUEUED,
            message="File uploaded. Processing in background.",
        )

    def submit_many(self, files: Iterable[Tuple[BinaryIO, str]]) -> List[SubmitResult]:
        results = []
        for stream, name in files:
            try:
                results.append(self.submit(stream, name))
            except IntakeValidationError as e:
                results.append(SubmitResult(file_name=e.file_name or name, record_id=None, outcome=OUTCOME_REJECTED, message=e.message))
        return results

    def _stage(self, stream: BinaryIO, tmp_path: Path) -> Tuple[str, int]:
        h = hashlib.sha256()
        size = 0
        with open(tmp_path, "wb") as f:
            for chunk in _iter_chunks(stream):
                h.update(chunk)
                f.write(chunk)
                size += len(chunk)
        return h.hexdigest(), size

    def _create_and_schedule(self, file_name: str, fingerprint: str, tmp_path: Path) -> FileRecord:
        with transaction.atomic():
            record = self.store.create(file_name, fingerprint)
            final_path = self.staging_dir / f"{record.id}_{fingerprint}{_staged_suffix(file_name)}"
            os.replace(tmp_path, final_path)
            job = IngestJob(record_id=record.id, staged_path=str(final_path.resolve()), file_name=file_name)
            transaction.on_commit(lambda: self._dispatch(job))
        return record

    def _dispatch(self, job: IngestJob) -> None:
        try:
            self.schedule(job)
        except Exception as e:
            logger.exception("scheduling record=%s failed", job.record_id)
            self.store.fail(job.record_id, f"submit to worker failed: {e}")

    def _skipped(self, file_name: str, existing: FileRecord) -> SubmitResult:
        logger.info("skipped %s: same content as record=%s (%s)", file_name, existing.id, existing.status)
        return SubmitResult(
            file_name=file_name,
            record_id=existing.id,
            outcome=OUTCOME_SKIPPED,
            message="File already uploaded (idempotent)",
        )
