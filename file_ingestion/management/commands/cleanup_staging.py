from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone as dt_timezone
from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from file_ingestion.models import FileRecord

# {record_id}_{sha256}.csv as written by the gateway
_STAGED_NAME = re.compile(r"^(?P<record_id>\d+)_(?P<sha>[0-9a-f]{64})\.[A-Za-z0-9]+$")


class Command(BaseCommand):
    help = "Delete staged upload copies left behind by failed or abandoned ingestion runs."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Keep staged files for N days (default: settings.STAGING_RETENTION_DAYS or 7).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only print what would be deleted.",
        )

    def handle(self, *args, **options):
        days = options.get("days")
        if days is None:
            days = int(getattr(settings, "STAGING_RETENTION_DAYS", 7))

        if days < 0:
            self.stdout.write(self.style.WARNING("retention < 0, nothing to cleanup."))
            return

        staging_dir = Path(getattr(settings, "INGEST_STAGING_DIR", Path(settings.MEDIA_ROOT) / "staging"))
        if not staging_dir.is_dir():
            self.stdout.write(f"staging dir {staging_dir} does not exist, nothing to cleanup.")
            return

        cutoff = timezone.now() - timedelta(days=days)
        dry_run = bool(options.get("dry_run"))

        candidates = {}
        for p in staging_dir.iterdir():
            if not p.is_file():
                continue
            mtime = datetime.fromtimestamp(p.stat().st_mtime, tz=dt_timezone.utc)
            if mtime >= cutoff:
                continue
            m = _STAGED_NAME.match(p.name)
            if m:
                candidates[p] = int(m.group("record_id"))
            elif p.name.startswith("incoming_") and p.suffix == ".part":
                # half-written intake temp file, no record yet
                candidates[p] = None

        record_ids = {rid for rid in candidates.values() if rid is not None}
        live = {pk for pk, record in FileRecord.objects.in_bulk(record_ids).items() if not record.is_terminal}

        count = 0
        for p, rid in sorted(candidates.items()):
            if rid is not None and rid in live:
                continue
            count += 1
            if dry_run:
                self.stdout.write(f"[dry-run] remove {p}")
            else:
                p.unlink(missing_ok=True)

        self.stdout.write(self.style.SUCCESS(f"cleanup done. affected files: {count}"))
