from .rows import (
    OPTIONAL_TEXT_COLUMNS,
    PIECE_PRICE,
    REQUIRED_COLUMNS,
    SKIPPED_BLANK,
    UNIQUE_KEY,
    CatalogRow,
    HeaderError,
    HeaderIndex,
    RowInvalid,
    RowOutcome,
    RowSkippedBlank,
    RowSuccess,
    parse_price,
    project_row,
)
from .reader import DataRecord, count_data_rows, iter_data_records, iter_records, open_text, read_header
from .text import clean_fields, clean_text, is_blank, repair_utf8

__all__ = [
    "OPTIONAL_TEXT_COLUMNS",
    "PIECE_PRICE",
    "REQUIRED_COLUMNS",
    "SKIPPED_BLANK",
    "UNIQUE_KEY",
    "CatalogRow",
    "DataRecord",
    "HeaderError",
    "HeaderIndex",
    "RowInvalid",
    "RowOutcome",
    "RowSkippedBlank",
    "RowSuccess",
    "clean_fields",
    "clean_text",
    "count_data_rows",
    "is_blank",
    "iter_data_records",
    "iter_records",
    "open_text",
    "parse_price",
    "project_row",
    "read_header",
    "repair_utf8",
]
