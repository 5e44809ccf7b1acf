# ingest/readers/pdf.py
"""
PDF reader.

Text-layer PDFs are read with pdfplumber, page by page. When no page yields
any text (a scanned menu), each page is rasterized with pdf2image (+poppler)
and OCR'd with pytesseract, using the same TESSERACT_* / POPPLER_PATH knobs
as the portal.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import List

import pdfplumber
import pytesseract
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError
from PIL import ImageFilter, ImageOps

from ingest import config
from ingest.contracts import RawRecord
from ingest.errors import FormatError

log = logging.getLogger(__name__)

if config.TESSERACT_CMD and Path(config.TESSERACT_CMD).exists():
    pytesseract.pytesseract.tesseract_cmd = config.TESSERACT_CMD


def _lines_to_records(pages: List[str]) -> List[RawRecord]:
    records: List[RawRecord] = []
    line_no = 0
    for page_text in pages:
        for line in page_text.splitlines():
            line_no += 1
            if line.strip():
                records.append(RawRecord(text=line.strip(), line_no=line_no))
    return records


def _text_layer(data: bytes) -> List[str]:
    pages: List[str] = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text(layout=False) or "")
    except Exception as exc:
        # pdfminer raises a zoo of types (PDFSyntaxError, PSEOF, KeyError...)
        raise FormatError("pdf", f"cannot read PDF: {exc}") from exc
    return pages


def _ocr_pages(data: bytes) -> List[str]:
    """Rasterize each page at 300 dpi and OCR it."""
    try:
        images = convert_from_bytes(data, dpi=300, poppler_path=config.POPPLER_PATH)
    except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError) as exc:
        raise FormatError("pdf", f"no text layer and rasterizing failed: {exc}") from exc

    pages: List[str] = []
    for img in images:
        img = ImageOps.autocontrast(img.convert("L")).filter(ImageFilter.SHARPEN)
        try:
            txt = pytesseract.image_to_string(
                img,
                lang=config.TESSERACT_LANG,
                config=config.TESSERACT_CONFIG,
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise FormatError("pdf", "no text layer and tesseract is not installed") from exc
        pages.append(txt or "")
    return pages


def read_pdf(data: bytes) -> List[RawRecord]:
    if not data.lstrip()[:5].startswith(b"%PDF"):
        raise FormatError("pdf", "missing %PDF header")

    pages = _text_layer(data)
    if any(p.strip() for p in pages):
        log.info("pdf: %d page(s) from text layer", len(pages))
        return _lines_to_records(pages)

    log.info("pdf: no text layer on %d page(s), falling back to OCR", len(pages))
    return _lines_to_records(_ocr_pages(data))
