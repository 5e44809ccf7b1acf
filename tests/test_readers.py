"""
Format readers: bytes -> RawRecord lines / keyed rows.

Covers:
  Tabular (openpyxl):
  - header row becomes keyed records with canonical field names
  - named worksheet contributes a "=== Title ===" section marker
  - default "Sheet" titles do not
  - non-workbook bytes -> FormatError

  Word (python-docx):
  - paragraphs become text lines in order
  - table with a header row becomes keyed records
  - non-docx bytes -> FormatError

  PDF:
  - missing %PDF header -> FormatError
  - corrupt PDF body -> FormatError

  Delimited text:
  - CSV with a name/price header -> keyed records
  - prose lines with commas stay text lines
  - binary / non-UTF-8 -> FormatError

  Structured JSON:
  - items array, sections with inherited category, {"menu": {...}} wrapper
  - alias keys (itemName, itemType)
  - extra keys / columns stating a facet (grapeVariety, "Gluten Free") carried on the record
  - invalid JSON / unexpected shape -> FormatError

  Registry:
  - sniff_format by extension and by magic bytes
  - empty file / no content / unknown format -> FormatError
"""

from __future__ import annotations

import io
import json

import pytest
from docx import Document
from openpyxl import Workbook

from ingest.contracts import DocumentFormat
from ingest.errors import FormatError
from ingest.readers.delimited import read_delimited
from ingest.readers.headers import detect_header_mapping, facet_fields, render_row
from ingest.readers.pdf import read_pdf
from ingest.readers.registry import read_document, sniff_format
from ingest.readers.structured import menu_name_of, read_structured
from ingest.readers.tabular import read_tabular
from ingest.readers.word import read_word


# ---------------------------------------------------------------------------
# Fixture builders
# ---------------------------------------------------------------------------

def _xlsx_bytes(title="Cocktails", rows=None) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows or [
        ["Name", "Description", "Price"],
        ["Mojito", "White rum, lime, mint", 9.5],
        ["Negroni", "Gin, Campari, vermouth", 10],
    ]:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _docx_bytes(paragraphs=(), table_rows=None) -> bytes:
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


# ===========================================================================
# SECTION 1: Header helpers
# ===========================================================================

class TestHeaderHelpers:
    """detect_header_mapping(), facet_fields() and render_row()."""

    def test_mapping_needs_name(self):
        assert detect_header_mapping(["Description", "Price"]) == {}

    def test_mapping_needs_second_field(self):
        assert detect_header_mapping(["Name"]) == {}

    def test_mapping_aliases(self):
        mapping = detect_header_mapping(["Item Name", "Section", "Cost", "Type"])
        assert mapping == {"name": 0, "category": 1, "price": 2, "item_type": 3}

    def test_render_row_numeric_price(self):
        assert render_row(["Mojito", None, 9]) == "Mojito | 9.00"

    def test_facet_fields_aliases(self):
        fields = {
            "name": "Reserva",
            "price": 34,
            "grapeVariety": ["Tempranillo"],
            "gluten free": "yes",
            "abv": "",
            "pairings": "lamb",
        }
        assert facet_fields(fields) == {"grape_varieties": ["Tempranillo"], "is_gluten_free": "yes"}

    def test_facet_fields_nested_groups(self):
        fields = {"name": "Reserva", "wine": {"vintage": 2018, "region": None, "producer": "Muga"}}
        assert facet_fields(fields) == {"vintage": 2018, "producer": "Muga"}

    def test_facet_fields_first_value_wins(self):
        assert facet_fields({"Vintage": 2018, "year": 2019}) == {"vintage": 2018}


# ===========================================================================
# SECTION 2: Tabular
# ===========================================================================

class TestTabularReader:
    """read_tabular() over in-memory workbooks."""

    def test_keyed_records(self):
        records = read_tabular(_xlsx_bytes())
        keyed = [r for r in records if r.fields is not None]
        assert len(keyed) == 2
        assert keyed[0].fields["name"] == "Mojito"
        assert keyed[0].fields["price"] == 9.5
        assert keyed[0].fields["description"] == "White rum, lime, mint"

    def test_sheet_title_marker(self):
        records = read_tabular(_xlsx_bytes())
        assert records[0].text == "=== Cocktails ==="
        assert records[0].fields is None

    def test_default_sheet_title_has_no_marker(self):
        records = read_tabular(_xlsx_bytes(title="Sheet1"))
        assert not any(r.text.startswith("===") for r in records)

    def test_rows_without_header_are_text(self):
        records = read_tabular(_xlsx_bytes(rows=[["Burger", 12.5], ["Fries", 3]]))
        texts = [r.text for r in records if r.fields is None and not r.text.startswith("===")]
        assert texts == ["Burger | 12.50", "Fries | 3.00"]

    def test_not_a_workbook(self):
        with pytest.raises(FormatError) as exc:
            read_tabular(b"this is not a spreadsheet")
        assert exc.value.fmt == "tabular"


# ===========================================================================
# SECTION 3: Word
# ===========================================================================

class TestWordReader:
    """read_word() over in-memory documents."""

    def test_paragraph_lines(self):
        data = _docx_bytes(["DESSERTS", "Tiramisu - mascarpone, coffee £7.00"])
        records = read_word(data)
        assert [r.text for r in records] == ["DESSERTS", "Tiramisu - mascarpone, coffee £7.00"]
        assert all(r.fields is None for r in records)

    def test_blank_paragraphs_skipped(self):
        records = read_word(_docx_bytes(["Mains", "", "Burger £12"]))
        assert [r.text for r in records] == ["Mains", "Burger £12"]

    def test_table_with_header(self):
        data = _docx_bytes(table_rows=[["Name", "Price"], ["Espresso", "2.80"]])
        records = read_word(data)
        keyed = [r for r in records if r.fields is not None]
        assert len(keyed) == 1
        assert keyed[0].fields == {"name": "Espresso", "price": "2.80"}

    def test_not_a_docx(self):
        with pytest.raises(FormatError) as exc:
            read_word(b"plain bytes")
        assert exc.value.fmt == "word"


# ===========================================================================
# SECTION 4: PDF
# ===========================================================================

class TestPdfReader:
    """read_pdf() failure modes (no fixture PDFs needed)."""

    def test_missing_header(self):
        with pytest.raises(FormatError) as exc:
            read_pdf(b"hello world")
        assert "%PDF" in str(exc.value)

    def test_corrupt_body(self):
        with pytest.raises(FormatError) as exc:
            read_pdf(b"%PDF-1.4\n this is not really a pdf \n%%EOF")
        assert exc.value.fmt == "pdf"


# ===========================================================================
# SECTION 5: Delimited
# ===========================================================================

class TestDelimitedReader:
    """read_delimited() table vs text detection."""

    def test_csv_table(self):
        data = b"name,description,price\nMojito,\"White rum, lime\",9.50\n"
        records = read_delimited(data)
        assert len(records) == 1
        assert records[0].fields["name"] == "Mojito"
        assert records[0].fields["description"] == "White rum, lime"
        assert records[0].fields["price"] == "9.50"

    def test_semicolon_table(self):
        records = read_delimited("Item;Prix;Price\nCroque Monsieur;x;8,50\n".encode("utf-8"))
        assert records[0].fields["name"] == "Croque Monsieur"
        assert records[0].fields["price"] == "8,50"

    def test_extra_columns_kept_lowercased(self):
        records = read_delimited(b"Name,Price,Allergens\nBrownie,6,nuts\n")
        assert records[0].fields["allergens"] == "nuts"

    def test_prose_lines(self):
        data = "COCKTAILS\nMojito - White rum, lime juice £10.50\n\nNegroni £11\n".encode("utf-8")
        records = read_delimited(data)
        assert [r.text for r in records] == [
            "COCKTAILS",
            "Mojito - White rum, lime juice £10.50",
            "Negroni £11",
        ]
        assert [r.line_no for r in records] == [1, 2, 4]
        assert all(r.fields is None for r in records)

    def test_bom_is_stripped(self):
        records = read_delimited("\ufeffname,price\nChips,3.50\n".encode("utf-8"))
        assert records[0].fields["name"] == "Chips"

    def test_binary_rejected(self):
        with pytest.raises(FormatError):
            read_delimited(b"\x00\x01\x02binary")

    def test_invalid_utf8_rejected(self):
        with pytest.raises(FormatError):
            read_delimited(b"Caf\xe9 au lait \xff\xfe")


# ===========================================================================
# SECTION 6: Structured JSON
# ===========================================================================

class TestStructuredReader:
    """read_structured() shapes and aliases."""

    def test_items_array(self):
        data = json.dumps({"name": "Bar", "items": [{"name": "Mojito", "price": 9.5}]}).encode()
        records = read_structured(data)
        assert len(records) == 1
        assert records[0].fields["name"] == "Mojito"
        assert "category" not in records[0].fields

    def test_top_level_list(self):
        data = json.dumps([{"itemName": "Chips", "itemType": "food", "price": "3.50"}]).encode()
        records = read_structured(data)
        assert records[0].fields == {"name": "Chips", "item_type": "food", "price": "3.50"}

    def test_sections_inherit_category(self):
        data = json.dumps({
            "sections": [
                {"name": "Wines", "items": [{"name": "Rioja Reserva", "price": 9}]},
                {"name": "Mains", "items": [{"name": "Burger", "category": "Grill", "price": 12}]},
            ]
        }).encode()
        records = read_structured(data)
        assert records[0].fields["category"] == "Wines"
        assert records[1].fields["category"] == "Grill"

    def test_menu_wrapper_and_name(self):
        data = json.dumps({"menu": {"name": "Brunch", "items": [{"name": "Pancakes", "price": 8}]}}).encode()
        assert menu_name_of(data) == "Brunch"
        assert read_structured(data)[0].fields["name"] == "Pancakes"

    def test_invalid_json(self):
        with pytest.raises(FormatError) as exc:
            read_structured(b"{not json")
        assert exc.value.fmt == "structured"

    def test_unexpected_shape(self):
        with pytest.raises(FormatError):
            read_structured(b'{"foo": 1}')
        with pytest.raises(FormatError):
            read_structured(b'"just a string"')


# ===========================================================================
# SECTION 7: Registry
# ===========================================================================

class TestRegistry:
    """sniff_format() and read_document()."""

    def test_sniff_by_extension(self):
        assert sniff_format("menu.csv", b"") is DocumentFormat.DELIMITED
        assert sniff_format("MENU.XLSX", b"") is DocumentFormat.TABULAR
        assert sniff_format("drinks.json", b"") is DocumentFormat.STRUCTURED

    def test_sniff_by_magic_bytes(self):
        assert sniff_format(None, b"%PDF-1.7 ...") is DocumentFormat.PDF
        assert sniff_format("upload", b'{"items": []}') is DocumentFormat.STRUCTURED
        assert sniff_format("upload", _docx_bytes(["Hi"])) is DocumentFormat.WORD
        assert sniff_format("upload", _xlsx_bytes()) is DocumentFormat.TABULAR

    def test_sniff_unknown(self):
        with pytest.raises(FormatError):
            sniff_format("upload", b"hello")

    def test_empty_file(self):
        with pytest.raises(FormatError) as exc:
            read_document(b"", "csv")
        assert "empty" in str(exc.value)

    def test_no_content(self):
        with pytest.raises(FormatError) as exc:
            read_document(b"\n \n", "csv")
        assert "no readable content" in str(exc.value)

    def test_unknown_format_tag(self):
        with pytest.raises(FormatError):
            read_document(b"abc", "rtf")

    def test_aliases(self):
        records = read_document(b"Burger 12.50\n", "txt")
        assert records[0].text == "Burger 12.50"
