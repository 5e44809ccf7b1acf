# ingest/readers/tabular.py
"""
Spreadsheet reader (.xlsx / .xlsm) on openpyxl.

Every worksheet is read in order. A worksheet with a real title contributes
an "=== Title ===" marker line, which the extractor treats as a section
header.
"""

from __future__ import annotations

import io
import logging
import re
from typing import List
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ingest.contracts import RawRecord
from ingest.errors import FormatError
from ingest.readers.headers import rows_to_records

log = logging.getLogger(__name__)

_DEFAULT_SHEET_RE = re.compile(r"^sheet\s*\d*$", re.IGNORECASE)


def read_tabular(data: bytes) -> List[RawRecord]:
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
        raise FormatError("tabular", f"cannot open workbook: {exc}") from exc

    records: List[RawRecord] = []
    line_no = 0
    try:
        for ws in wb.worksheets:
            title = (ws.title or "").strip()
            if title and not _DEFAULT_SHEET_RE.match(title):
                line_no += 1
                records.append(RawRecord(text=f"=== {title} ===", line_no=line_no))

            rows = [tuple(r) for r in ws.iter_rows(values_only=True)]
            sheet_records = rows_to_records(rows, start_line=line_no + 1)
            records.extend(sheet_records)
            line_no += len(rows)
            log.debug("sheet %r: %d rows, %d records", title, len(rows), len(sheet_records))
    finally:
        wb.close()

    return records
