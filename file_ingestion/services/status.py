from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import NotFoundError
from ..models import DetailRecord, FileRecord
from .details import DetailStore
from .progress import ProgressStore


def progress_percentage(processed_rows: int, total_rows: int) -> float:
    if not total_rows:
        return 0
    return round(processed_rows / total_rows * 100, 2)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_record(record: FileRecord) -> Dict[str, Any]:
    meta = record.runtime_meta if isinstance(record.runtime_meta, dict) else {}
    return {
        "id": record.id,
        "file_name": record.file_name,
        "status": record.status,
        "total_rows": record.total_rows,
        "processed_rows": record.processed_rows,
        "successful_rows": record.successful_rows,
        "failed_rows": record.failed_rows,
        "progress_percentage": progress_percentage(record.processed_rows, record.total_rows),
        "error_message": record.error_message,
        "attempts": record.attempts,
        "row_errors": meta.get("row_errors") or [],
        "row_errors_truncated": bool(meta.get("row_errors_truncated")),
        "created_at": _iso(record.created_at),
        "completed_at": _iso(record.completed_at),
    }


def serialize_detail(detail: DetailRecord) -> Dict[str, Any]:
    owner = detail.file_record
    return {
        "id": detail.id,
        "UNIQUE_KEY": detail.unique_key,
        "PRODUCT_TITLE": detail.product_title,
        "PRODUCT_DESCRIPTION": detail.product_description,
        "STYLE#": detail.style,
        "SANMAR_MAINFRAME_COLOR": detail.sanmar_mainframe_color,
        "SIZE": detail.size,
        "COLOR_NAME": detail.color_name,
        "PIECE_PRICE": str(detail.piece_price) if detail.piece_price is not None else None,
        "file_record_id": detail.file_record_id,
        "file_record": {
            "id": owner.id,
            "file_name": owner.file_name,
            "status": owner.status,
            "created_at": _iso(owner.created_at),
        },
        "created_at": _iso(detail.created_at),
        "updated_at": _iso(detail.updated_at),
    }


class StatusQueryService:
    """Read-only projections for polling clients."""

    def __init__(self, progress: Optional[ProgressStore] = None, details: Optional[DetailStore] = None):
        self.progress = progress or ProgressStore()
        self.details = details or DetailStore()

    def get_status(self, record_id) -> Dict[str, Any]:
        return serialize_record(self.progress.get(record_id))

    def list(self) -> List[Dict[str, Any]]:
        return [serialize_record(r) for r in self.progress.list_all()]

    def lookup_by_key(self, unique_key: str) -> List[Dict[str, Any]]:
        key = (unique_key or "").strip()
        found = self.details.lookup(key) if key else []
        if not found:
            raise NotFoundError("detail record", unique_key)
        return [serialize_detail(d) for d in found]
