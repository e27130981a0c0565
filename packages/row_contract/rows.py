from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from .text import clean_fields, clean_text, is_blank


UNIQUE_KEY = "UNIQUE_KEY"
PRODUCT_TITLE = "PRODUCT_TITLE"
PRODUCT_DESCRIPTION = "PRODUCT_DESCRIPTION"
PIECE_PRICE = "PIECE_PRICE"

REQUIRED_COLUMNS: Tuple[str, ...] = (UNIQUE_KEY, PRODUCT_TITLE, PRODUCT_DESCRIPTION)

# csv column -> DetailRecord field
OPTIONAL_TEXT_COLUMNS: Dict[str, str] = {
    "STYLE#": "style",
    "SANMAR_MAINFRAME_COLOR": "sanmar_mainframe_color",
    "SIZE": "size",
    "COLOR_NAME": "color_name",
}

TEXT_MAX_LENGTH = 255
PRICE_MAX_DIGITS = 10
PRICE_DECIMAL_PLACES = 2
_PRICE_QUANT = Decimal(1).scaleb(-PRICE_DECIMAL_PLACES)
_PRICE_LIMIT = Decimal(10) ** (PRICE_MAX_DIGITS - PRICE_DECIMAL_PLACES)


class HeaderError(ValueError):
    pass


@dataclass(frozen=True)
class HeaderIndex:
    """Column name -> position lookup built once per file."""

    names: Tuple[str, ...]
    positions: Dict[str, int]

    @classmethod
    def parse(cls, raw: Optional[Sequence[Any]]) -> "HeaderIndex":
        if not raw:
            raise HeaderError("File is empty or has no header row")

        names = tuple(clean_fields(raw))
        if not any(names):
            raise HeaderError("Header row is blank")

        positions: Dict[str, int] = {}
        for idx, name in enumerate(names):
            # first occurrence wins on duplicated column names
            if name and name not in positions:
                positions[name] = idx

        missing = [c for c in REQUIRED_COLUMNS if c not in positions]
        if missing:
            raise HeaderError(
                "Header is missing required column(s): "
                + ", ".join(missing)
                + f" (found: {', '.join(n for n in names if n) or 'none'})"
            )
        return cls(names=names, positions=positions)

    @property
    def width(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class CatalogRow:
    unique_key: str
    product_title: str
    product_description: str
    style: Optional[str] = None
    sanmar_mainframe_color: Optional[str] = None
    size: Optional[str] = None
    color_name: Optional[str] = None
    piece_price: Optional[Decimal] = None

    def as_defaults(self) -> Dict[str, Any]:
        return {
            "product_title": self.product_title,
            "product_description": self.product_description,
            "style": self.style,
            "sanmar_mainframe_color": self.sanmar_mainframe_color,
            "size": self.size,
            "color_name": self.color_name,
            "piece_price": self.piece_price,
        }


@dataclass(frozen=True)
class RowSuccess:
    row: CatalogRow


@dataclass(frozen=True)
class RowSkippedBlank:
    pass


@dataclass(frozen=True)
class RowInvalid:
    reason: str


RowOutcome = Union[RowSuccess, RowSkippedBlank, RowInvalid]

SKIPPED_BLANK = RowSkippedBlank()


def parse_price(raw: Any) -> Optional[Decimal]:
    """Empty -> None. Anything non-empty that is not a finite amount raises ValueError."""
    text = clean_text(raw)
    if not text:
        return None

    normalized = text.replace("$", "").replace(",", "").strip()
    try:
        value = Decimal(normalized)
    except InvalidOperation:
        raise ValueError(f"Invalid {PIECE_PRICE} value: {text!r}") from None

    if not value.is_finite() or abs(value) >= _PRICE_LIMIT:
        raise ValueError(f"{PIECE_PRICE} out of range: {text!r}")
    return value.quantize(_PRICE_QUANT, rounding=ROUND_HALF_UP)


def project_row(header: HeaderIndex, values: Sequence[Any]) -> RowOutcome:
    if is_blank(values):
        return SKIPPED_BLANK

    if len(values) != header.width:
        return RowInvalid(f"Column count mismatch (expected {header.width}, got {len(values)})")

    fields = clean_fields(values)

    def pick(name: str) -> str:
        pos = header.positions.get(name)
        return fields[pos] if pos is not None else ""

    missing = [c for c in REQUIRED_COLUMNS if not pick(c)]
    if missing:
        return RowInvalid("Missing required fields: " + ", ".join(missing))

    too_long = [c for c in (UNIQUE_KEY, *OPTIONAL_TEXT_COLUMNS) if len(pick(c)) > TEXT_MAX_LENGTH]
    if too_long:
        return RowInvalid(f"Value longer than {TEXT_MAX_LENGTH} characters: " + ", ".join(too_long))

    try:
        price = parse_price(pick(PIECE_PRICE))
    except ValueError as e:
        return RowInvalid(str(e))

    optional = {field: (pick(column) or None) for column, field in OPTIONAL_TEXT_COLUMNS.items()}
    return RowSuccess(
        CatalogRow(
            unique_key=pick(UNIQUE_KEY),
            product_title=pick(PRODUCT_TITLE),
            product_description=pick(PRODUCT_DESCRIPTION),
            piece_price=price,
            **optional,
        )
    )
