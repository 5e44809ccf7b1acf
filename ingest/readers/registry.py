# ingest/readers/registry.py
"""
Format dispatch for the readers: ``read_document(data, fmt)`` and
``sniff_format(filename, data)`` for uploads that do not declare a format.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from ingest.contracts import DocumentFormat, RawRecord
from ingest.errors import FormatError
from ingest.readers.delimited import read_delimited
from ingest.readers.pdf import read_pdf
from ingest.readers.structured import read_structured
from ingest.readers.tabular import read_tabular
from ingest.readers.word import read_word

log = logging.getLogger(__name__)

READERS: Dict[DocumentFormat, Callable[[bytes], List[RawRecord]]] = {
    DocumentFormat.TABULAR: read_tabular,
    DocumentFormat.PDF: read_pdf,
    DocumentFormat.WORD: read_word,
    DocumentFormat.DELIMITED: read_delimited,
    DocumentFormat.STRUCTURED: read_structured,
}

_EXTENSIONS: Dict[str, DocumentFormat] = {
    ".xlsx": DocumentFormat.TABULAR,
    ".xlsm": DocumentFormat.TABULAR,
    ".pdf": DocumentFormat.PDF,
    ".docx": DocumentFormat.WORD,
    ".csv": DocumentFormat.DELIMITED,
    ".tsv": DocumentFormat.DELIMITED,
    ".txt": DocumentFormat.DELIMITED,
    ".json": DocumentFormat.STRUCTURED,
}


def sniff_format(filename: Optional[str], data: bytes) -> DocumentFormat:
    """Extension first, then magic bytes. Raises FormatError when neither helps."""
    ext = Path(filename or "").suffix.lower()
    if ext in _EXTENSIONS:
        return _EXTENSIONS[ext]

    head = (data or b"")[:8].lstrip()
    if head.startswith(b"%PDF"):
        return DocumentFormat.PDF
    if head.startswith(b"PK"):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                names = zf.namelist()
        except zipfile.BadZipFile as exc:
            raise FormatError("unknown", f"corrupt archive: {exc}") from exc
        if any(n.startswith("word/") for n in names):
            return DocumentFormat.WORD
        if any(n.startswith("xl/") for n in names):
            return DocumentFormat.TABULAR
    if head[:1] in (b"{", b"["):
        return DocumentFormat.STRUCTURED

    raise FormatError("unknown", f"cannot determine format of {filename or 'upload'!r}")


def read_document(data: bytes, fmt: Union[str, DocumentFormat]) -> List[RawRecord]:
    """
    Decode ``data`` as ``fmt`` into raw records. Raises FormatError on a
    decode failure or when the document holds no records at all.
    """
    try:
        doc_format = DocumentFormat.parse(fmt)
    except ValueError as exc:
        raise FormatError(str(fmt), str(exc)) from exc

    if not data:
        raise FormatError(doc_format.value, "empty file")

    records = READERS[doc_format](data)
    if not records:
        raise FormatError(doc_format.value, "document contains no readable content")

    log.info("read %s document: %d records", doc_format.value, len(records))
    return records
