from .sniffer import extract_document, sniff_format
from .csv_rows import parse_csv
from .xml_dte import parse_dte_xml
from .pdf_text import extract_pdf_text, parse_pdf_text, read_pdf_text
from .spreadsheet import parse_spreadsheet
from .tax import tax_inclusive, price_from_cost

__all__ = [
    "extract_document",
    "sniff_format",
    "parse_csv",
    "parse_dte_xml",
    "extract_pdf_text",
    "parse_pdf_text",
    "read_pdf_text",
    "parse_spreadsheet",
    "tax_inclusive",
    "price_from_cost",
]
