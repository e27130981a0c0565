from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from .rows import HeaderIndex
from .text import is_blank

PathLike = Union[str, Path]

# (line number, values or None, csv error message or None)
DataRecord = Tuple[int, Optional[List[str]], Optional[str]]


def open_text(path: PathLike) -> io.TextIOWrapper:
    # utf-8-sig drops a leading BOM; undecodable bytes are dropped rather than fatal
    return open(path, "r", encoding="utf-8-sig", errors="ignore", newline="")


def iter_records(handle: io.TextIOBase, delimiter: str = ",") -> Iterator[List[str]]:
    return csv.reader(handle, delimiter=delimiter)


def iter_data_records(handle: io.TextIOBase, delimiter: str = ",") -> Iterator[DataRecord]:
    """
    Records after the header. A record the csv module cannot parse (oversized field,
    stray newline in an unquoted field) is yielded with its error message instead of
    values; reading resumes on the next physical line.
    """
    reader = iter_records(handle, delimiter)
    next(reader, None)
    while True:
        try:
            values = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            yield reader.line_num, None, str(e)
            continue
        yield reader.line_num, values, None


def read_header(path: PathLike, delimiter: str = ",") -> HeaderIndex:
    with open_text(path) as fh:
        return HeaderIndex.parse(next(iter_records(fh, delimiter), None))


def count_data_rows(path: PathLike, delimiter: str = ",") -> int:
    """Non-blank records after the header, malformed ones included."""
    with open_text(path) as fh:
        return sum(
            1 for _, values, error in iter_data_records(fh, delimiter) if error is not None or not is_blank(values)
        )
