from __future__ import annotations

import re
from typing import Any, Iterable, List

# C0 controls and DEL, keeping \t \n \r
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
BOM = "\ufeff"


def repair_utf8(value: Any) -> str:
    """Return ``value`` as valid UTF-8 text, dropping undecodable bytes and lone surrogates."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="ignore")
    return str(value).encode("utf-8", errors="ignore").decode("utf-8", errors="ignore")


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    text = repair_utf8(value).lstrip(BOM)
    text = _CONTROL_CHARS.sub("", text)
    return text.strip()


def clean_fields(values: Iterable[Any]) -> List[str]:
    return [clean_text(v) for v in values]


def is_blank(values: Iterable[Any]) -> bool:
    return all(not clean_text(v) for v in values)
