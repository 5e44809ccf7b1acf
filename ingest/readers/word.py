# ingest/readers/word.py
"""
Word reader (.docx) on python-docx: body paragraphs in document order,
then table rows. A table whose first row is a header yields keyed records.
"""

from __future__ import annotations

import io
import logging
from typing import List
from zipfile import BadZipFile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from ingest.contracts import RawRecord
from ingest.errors import FormatError
from ingest.readers.headers import rows_to_records

log = logging.getLogger(__name__)


def read_word(data: bytes) -> List[RawRecord]:
    try:
        doc = Document(io.BytesIO(data))
    except (BadZipFile, PackageNotFoundError, KeyError, ValueError) as exc:
        raise FormatError("word", f"cannot open document: {exc}") from exc

    records: List[RawRecord] = []
    line_no = 0
    for para in doc.paragraphs:
        line_no += 1
        # Soft line breaks inside one paragraph are separate menu lines.
        for line in (para.text or "").splitlines():
            if line.strip():
                records.append(RawRecord(text=line.strip(), line_no=line_no))

    for table in doc.tables:
        rows = [[cell.text.strip() for cell in row.cells] for row in table.rows]
        table_records = rows_to_records(rows, start_line=line_no + 1)
        records.extend(table_records)
        line_no += len(rows)

    log.debug("word: %d paragraphs, %d tables", len(doc.paragraphs), len(doc.tables))
    return records
