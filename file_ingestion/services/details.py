from __future__ import annotations

from typing import List

from packages.row_contract import CatalogRow

from ..models import DetailRecord


class DetailStore:
    def upsert(self, row: CatalogRow, file_record_id: int) -> DetailRecord:
        """Insert or overwrite by natural key; the latest writer owns the record."""
        defaults = row.as_defaults()
        defaults["file_record_id"] = file_record_id
        obj, _ = DetailRecord.objects.update_or_create(unique_key=row.unique_key, defaults=defaults)
        return obj

    def lookup(self, unique_key: str) -> List[DetailRecord]:
        return list(
            DetailRecord.objects.filter(unique_key=unique_key).select_related("file_record").order_by("-updated_at")
        )
