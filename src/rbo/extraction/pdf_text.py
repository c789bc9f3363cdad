from __future__ import annotations

import io
import logging
import re

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from rbo.domain.errors import ExtractionError
from rbo.domain.models import ParsedLineItem, PdfExtraction, PdfLine
from rbo.domain.results import Empty, ExtractionResult, parsed_or_empty
from rbo.extraction.numbers import parse_grouped
from rbo.extraction.tax import DEFAULT_TAX_RATE, round_currency, tax_inclusive

log = logging.getLogger(__name__)

LINES_START = "NRO. DE SERIE   TOTAL"
LINES_END = "TIPO DE TRASLADO"

_LEGAL_SUFFIX = r"(?:Limitada|Ltda|SpA|SPA|S\.A|E\.I\.R\.L)"
SUPPLIER_RE = re.compile(
    r"([A-ZÁÉÍÓÚÜÑ][a-záéíóúüñ]+(?:\s+[A-Za-zÁÉÍÓÚÜÑáéíóúüñ0-9]+)*\s+" + _LEGAL_SUFFIX + ")"
)
LINE_RE = re.compile(r"(\S+)\s{2}(\d+)\s{2}(.+?)\s{2}(\d{1,3}(?:\.\d{3})*)")
GRAND_TOTAL_RE = re.compile(r"TOTAL\s*\$\s*(\d{1,3}(?:\.\d{3})*)", re.IGNORECASE)
SHIPPING_RE = re.compile(r"despacho|envio", re.IGNORECASE)


def find_supplier(text: str) -> str | None:
    m = SUPPLIER_RE.search(text)
    return m.group(1).strip() if m else None


def find_grand_total(text: str) -> int | None:
    m = GRAND_TOTAL_RE.search(text)
    return parse_grouped(m.group(1)) if m else None


def _lines_block(text: str) -> str | None:
    start = text.find(LINES_START)
    if start < 0:
        return None
    start += len(LINES_START)
    end = text.find(LINES_END, start)
    if end < 0:
        return None
    return text[start:end].strip()


def extract_pdf_text(text: str) -> PdfExtraction:
    """
    Guía de despacho text as produced by a PDF text layer.

    Supplier and grand total are looked up over the whole text, so they are
    still reported when the line-items markers are missing.
    """
    supplier = find_supplier(text)
    grand_total = find_grand_total(text)

    block = _lines_block(text)
    if block is None:
        return PdfExtraction(supplier=supplier, lines=[], grand_total=grand_total)

    block = re.sub(r"\s{2,}", "  ", block)
    lines: list[PdfLine] = []
    for m in LINE_RE.finditer(block):
        serial = m.group(1)
        if SHIPPING_RE.search(serial):
            continue
        lines.append(
            PdfLine(
                serial=serial,
                quantity=int(m.group(2)),
                description=m.group(3).strip(),
                total=parse_grouped(m.group(4)),
            )
        )
    return PdfExtraction(supplier=supplier, lines=lines, grand_total=grand_total)


def pdf_lines_to_items(extraction: PdfExtraction, tax_rate: float = DEFAULT_TAX_RATE) -> list[ParsedLineItem]:
    items = []
    for line in extraction.lines:
        if line.quantity <= 0:
            continue
        unit_cost = round_currency(line.total / line.quantity) if line.total is not None else 0
        items.append(
            ParsedLineItem(
                name=line.description,
                code=line.serial,
                quantity=line.quantity,
                base_cost=float(unit_cost),
                tax_inclusive_cost=tax_inclusive(unit_cost, tax_rate),
                description=f"Costo con IVA incluido ({unit_cost} + {round(tax_rate * 100)}%)",
            )
        )
    return items


def parse_pdf_text(text: str, tax_rate: float = DEFAULT_TAX_RATE) -> ExtractionResult:
    extraction = extract_pdf_text(text)
    if _lines_block(text) is None:
        return Empty("Line-items block markers not found.")
    log.info(
        "pdf_extracted supplier=%s lines=%s grand_total=%s",
        extraction.supplier,
        len(extraction.lines),
        extraction.grand_total,
    )
    return parsed_or_empty(pdf_lines_to_items(extraction, tax_rate), "Line-items block has no product rows.")


def read_pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [p.extract_text() or "" for p in reader.pages]
    except (PdfReadError, ValueError) as e:
        raise ExtractionError(f"Unreadable PDF: {e}") from e
    return "\n".join(pages)
