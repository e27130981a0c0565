"""
CSV ingestion run for one staged file.

queued -> processing -> completed | completed_with_errors | failed

A run is a pure function of its IngestJob and the persisted record: every attempt
re-scans the file from the top with counters reset. Rows are upserted one at a
time and never rolled back, so a fault part way through leaves the rows written
so far in place.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from django.db import DataError

from file_ingestion.errors import HeaderValidationError, IntakeValidationError, NotFoundError, SystemFault
from file_ingestion.models import FileRecord
from file_ingestion.services.details import DetailStore
from file_ingestion.services.gateway import IngestJob
from file_ingestion.services.progress import ProgressStore
from ingestion_worker.app_config import get_config
from packages.row_contract import (
    HeaderError,
    HeaderIndex,
    RowInvalid,
    RowSkippedBlank,
    count_data_rows,
    iter_data_records,
    iter_records,
    open_text,
    project_row,
)

logger = logging.getLogger("ingestion_worker.pipeline")


class SupersededRun(Exception):
    """A newer attempt owns the record; this one stops without touching it."""


@dataclass
class RowCounters:
    max_errors: int = 100
    processed: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    errors_truncated: bool = False

    def success(self) -> None:
        self.successful += 1

    def failure(self, line_no: int, reason: str) -> None:
        self.failed += 1
        message = f"Row {self.processed} (line {line_no}): {reason}"
        logger.debug(message)
        if len(self.errors) < self.max_errors:
            self.errors.append(message)
        else:
            self.errors_truncated = True


@dataclass(frozen=True)
class RunSummary:
    record_id: int
    status: str
    attempt: int
    total_rows: int = 0
    processed_rows: int = 0
    successful_rows: int = 0
    failed_rows: int = 0
    error_message: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: FileRecord) -> "RunSummary":
        return cls(
            record_id=record.id,
            status=record.status,
            attempt=record.attempts,
            total_rows=record.total_rows,
            processed_rows=record.processed_rows,
            successful_rows=record.successful_rows,
            failed_rows=record.failed_rows,
            error_message=record.error_message,
        )


def release_staged(path) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning("could not remove staged file %s: %s", path, e)


class CsvIngestionWorker:
    def __init__(
        self,
        progress: Optional[ProgressStore] = None,
        details: Optional[DetailStore] = None,
        batch_size: Optional[int] = None,
        max_row_errors: Optional[int] = None,
        delimiter: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ):
        cfg = get_config()
        self.progress = progress or ProgressStore()
        self.details = details or DetailStore()
        self.batch_size = max(1, batch_size or cfg.batch_size)
        self.max_row_errors = cfg.max_row_errors if max_row_errors is None else max(0, max_row_errors)
        self.delimiter = delimiter or cfg.delimiter
        self.max_attempts = max_attempts or cfg.max_attempts

    def run(self, job: IngestJob) -> RunSummary:
        """
        Content problems end in a terminal ``failed`` summary. Faults mark the record
        ``failed`` and are re-raised as SystemFault so the task layer can retry.
        """
        try:
            attempt = self.progress.begin_attempt(job.record_id, max_attempts=self.max_attempts)
        except NotFoundError:
            raise
        except Exception as e:
            raise SystemFault(f"{type(e).__name__}: {e}") from e

        if attempt is None:
            record = self.progress.get(job.record_id)
            logger.info("record=%s already %s, nothing to do", job.record_id, record.status)
            release_staged(job.staged_path)
            return RunSummary.from_record(record)

        counters = RowCounters(max_errors=self.max_row_errors)
        logger.info("record=%s attempt=%s start file=%s", job.record_id, attempt, job.file_name)

        try:
            header = self._read_header(job)
            total = self._count_rows(job)
            self._require(self.progress.set_total(job.record_id, attempt, total))

            self._ingest_rows(job, attempt, header, counters)

            self._checkpoint(job, attempt, counters)
            status = self.progress.finish(
                job.record_id,
                attempt,
                counters.processed,
                counters.successful,
                counters.failed,
                row_errors=counters.errors,
                row_errors_truncated=counters.errors_truncated,
            )
            self._require(status is not None)

        except SupersededRun:
            logger.warning("record=%s attempt=%s superseded by a newer attempt, stopping", job.record_id, attempt)
            return RunSummary.from_record(self.progress.get(job.record_id))

        except IntakeValidationError as e:
            self.progress.fail(
                job.record_id,
                e.message,
                attempt=attempt,
                row_errors=counters.errors,
                row_errors_truncated=counters.errors_truncated,
            )
            release_staged(job.staged_path)
            return RunSummary.from_record(self.progress.get(job.record_id))

        except Exception as e:
            logger.exception("record=%s attempt=%s fault", job.record_id, attempt)
            message = f"{type(e).__name__}: {e}"
            try:
                self.progress.fail(
                    job.record_id,
                    message,
                    attempt=attempt,
                    row_errors=counters.errors,
                    row_errors_truncated=counters.errors_truncated,
                )
            except Exception:
                # store unreachable too; the task layer still sees the original fault
                logger.exception("record=%s could not be marked failed", job.record_id)
            raise SystemFault(message) from e

        release_staged(job.staged_path)
        logger.info(
            "record=%s attempt=%s %s total=%s processed=%s ok=%s failed=%s",
            job.record_id,
            attempt,
            status,
            total,
            counters.processed,
            counters.successful,
            counters.failed,
        )
        return RunSummary(
            record_id=job.record_id,
            status=status,
            attempt=attempt,
            total_rows=total,
            processed_rows=counters.processed,
            successful_rows=counters.successful,
            failed_rows=counters.failed,
        )

    def _read_header(self, job: IngestJob) -> HeaderIndex:
        with open_text(job.staged_path) as fh:
            try:
                return HeaderIndex.parse(next(iter_records(fh, self.delimiter), None))
            except HeaderError as e:
                raise HeaderValidationError(f"{job.file_name}: {e}", file_name=job.file_name) from e
            except csv.Error as e:
                raise HeaderValidationError(f"{job.file_name}: malformed header: {e}", file_name=job.file_name) from e

    def _count_rows(self, job: IngestJob) -> int:
        try:
            return count_data_rows(job.staged_path, self.delimiter)
        except csv.Error as e:
            raise IntakeValidationError(f"{job.file_name}: malformed CSV: {e}", file_name=job.file_name) from e

    def _ingest_rows(self, job: IngestJob, attempt: int, header: HeaderIndex, counters: RowCounters) -> None:
        with open_text(job.staged_path) as fh:
            for line_no, values, error in iter_data_records(fh, self.delimiter):
                if error is not None:
                    outcome = RowInvalid(f"Malformed CSV record: {error}")
                else:
                    outcome = project_row(header, values)
                if isinstance(outcome, RowSkippedBlank):
                    continue

                counters.processed += 1
                if isinstance(outcome, RowInvalid):
                    counters.failure(line_no, outcome.reason)
                else:
                    try:
                        self.details.upsert(outcome.row, job.record_id)
                    except DataError as e:
                        counters.failure(line_no, f"rejected by store: {e}")
                    else:
                        counters.success()

                if counters.processed % self.batch_size == 0:
                    self._checkpoint(job, attempt, counters)

    def _checkpoint(self, job: IngestJob, attempt: int, counters: RowCounters) -> None:
        self._require(
            self.progress.checkpoint(job.record_id, attempt, counters.processed, counters.successful, counters.failed)
        )

    @staticmethod
    def _require(applied: bool) -> None:
        if not applied:
            raise SupersededRun()
