# ingest/readers/delimited.py
"""
Delimited text reader (.csv / .tsv / .txt).

If the first non-blank row, split with the sniffed dialect, is a header
(name + at least one more known column), the file is read as a table.
Anything else, including prose menus whose lines happen to contain commas,
is read one record per line.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import List

from ingest.contracts import RawRecord
from ingest.errors import FormatError
from ingest.readers.headers import detect_header_mapping, rows_to_records

log = logging.getLogger(__name__)

_DELIMITERS = ",;\t|"


def _decode(data: bytes) -> str:
    if b"\x00" in data[:4096]:
        raise FormatError("delimited", "binary content")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise FormatError("delimited", f"not valid UTF-8: {exc}") from exc


def read_delimited(data: bytes) -> List[RawRecord]:
    text = _decode(data)
    lines = text.splitlines()
    first = next((ln for ln in lines if ln.strip()), "")

    delimiters: List[str] = []
    if first:
        try:
            delimiters.append(csv.Sniffer().sniff(first, delimiters=_DELIMITERS).delimiter)
        except csv.Error:
            pass
        delimiters.extend(d for d in _DELIMITERS if d in first and d not in delimiters)

    for delimiter in delimiters:
        header_cells = next(csv.reader([first], delimiter=delimiter))
        if detect_header_mapping(header_cells):
            rows = list(csv.reader(io.StringIO(text), delimiter=delimiter))
            log.debug("delimited: table with delimiter %r, %d rows", delimiter, len(rows))
            return rows_to_records(rows)

    return [
        RawRecord(text=line.strip(), line_no=i)
        for i, line in enumerate(lines, start=1)
        if line.strip()
    ]
