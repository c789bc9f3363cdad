from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Iterable, Optional

from rbo.domain.errors import ExtractionError
from rbo.domain.models import Category, DocumentFormat
from rbo.domain.results import Empty, ExtractionResult, ParseError
from rbo.extraction.csv_rows import parse_csv
from rbo.extraction.numbers import decode_text
from rbo.extraction.pdf_text import parse_pdf_text, read_pdf_text
from rbo.extraction.spreadsheet import parse_spreadsheet
from rbo.extraction.tax import DEFAULT_TAX_RATE
from rbo.extraction.xml_dte import parse_dte_xml

log = logging.getLogger("rbo.intake")

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_BY_EXTENSION = {
    ".xml": DocumentFormat.XML_DTE,
    ".csv": DocumentFormat.CSV,
    ".xlsx": DocumentFormat.SPREADSHEET,
    ".xlsm": DocumentFormat.SPREADSHEET,
    ".pdf": DocumentFormat.PDF_TEXT,
    ".txt": DocumentFormat.PDF_TEXT,
}
_BY_MIME = {
    "application/xml": DocumentFormat.XML_DTE,
    "text/xml": DocumentFormat.XML_DTE,
    "text/csv": DocumentFormat.CSV,
    XLSX_MIME: DocumentFormat.SPREADSHEET,
    "application/pdf": DocumentFormat.PDF_TEXT,
}


def sniff_format(file_name: str, mime_type: Optional[str] = None) -> Optional[DocumentFormat]:
    """Extension wins over MIME type; None when neither is known."""
    ext = PurePath(file_name or "").suffix.lower()
    if ext in _BY_EXTENSION:
        return _BY_EXTENSION[ext]
    mime = (mime_type or "").split(";", 1)[0].strip().lower()
    return _BY_MIME.get(mime)


def extract_document(
    file_name: str,
    data: bytes,
    mime_type: Optional[str] = None,
    tax_rate: float = DEFAULT_TAX_RATE,
    categories: Iterable[Category] = (),
) -> ExtractionResult:
    fmt = sniff_format(file_name, mime_type)
    if fmt is None:
        log.info("document_skipped name=%s reason=unknown_format", file_name)
        return Empty(f"Unsupported file type: {file_name}")

    categories = list(categories)
    if fmt is DocumentFormat.XML_DTE:
        result = parse_dte_xml(data, tax_rate, categories)
    elif fmt is DocumentFormat.CSV:
        result = parse_csv(data, tax_rate, categories)
    elif fmt is DocumentFormat.SPREADSHEET:
        result = parse_spreadsheet(data, tax_rate, categories)
    else:
        try:
            # .txt / text bodies are already the extracted text layer
            text = read_pdf_text(data) if data[:5] == b"%PDF-" else decode_text(data)
        except ExtractionError as e:
            result = ParseError(str(e))
        else:
            result = parse_pdf_text(text, tax_rate)

    log.info("document_extracted name=%s format=%s result=%s", file_name, fmt.value, type(result).__name__)
    return result
