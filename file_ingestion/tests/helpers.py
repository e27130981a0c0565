import hashlib
import tempfile
from pathlib import Path

from file_ingestion.services.gateway import IngestJob
from file_ingestion.services.progress import ProgressStore

CATALOG_HEADER = "UNIQUE_KEY,PRODUCT_TITLE,PRODUCT_DESCRIPTION,STYLE#,SANMAR_MAINFRAME_COLOR,SIZE,COLOR_NAME,PIECE_PRICE"


def csv_bytes(*lines: str) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


def make_staging_dir(testcase) -> Path:
    tmp = tempfile.TemporaryDirectory()
    testcase.addCleanup(tmp.cleanup)
    return Path(tmp.name)


def stage_record(staging_dir: Path, content: bytes, file_name: str = "catalog.csv") -> IngestJob:
    """Create a queued FileRecord plus its staged copy, the way the gateway leaves them."""
    fingerprint = hashlib.sha256(content).hexdigest()
    record = ProgressStore().create(file_name, fingerprint)
    path = staging_dir / f"{record.id}_{fingerprint}.csv"
    path.write_bytes(content)
    return IngestJob(record_id=record.id, staged_path=str(path), file_name=file_name)
