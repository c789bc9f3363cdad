from __future__ import annotations

import io
import zipfile
from typing import Iterable

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from rbo.domain.models import Category, ParsedLineItem
from rbo.domain.results import ExtractionResult, ParseError, parsed_or_empty
from rbo.extraction.categories import match_category, normalize_label
from rbo.extraction.csv_rows import TAX_NOTE
from rbo.extraction.numbers import float_prefix, int_prefix
from rbo.extraction.tax import DEFAULT_TAX_RATE, tax_inclusive

HEADER_ALIASES = {
    "name": ("nombre", "producto", "name"),
    "quantity": ("cantidad", "stock", "qty", "quantity"),
    "cost": ("costo", "costo base", "cost", "base_cost"),
    "code": ("codigo", "sku", "code"),
    "description": ("descripcion", "description"),
    "category": ("categoria", "category"),
}
REQUIRED = ("name", "quantity", "cost")


def _header_map(header_row) -> dict[str, int]:
    found = {}
    for idx, value in enumerate(header_row):
        if not isinstance(value, str):
            continue
        label = normalize_label(value)
        for key, aliases in HEADER_ALIASES.items():
            if key not in found and label in aliases:
                found[key] = idx
    return found


def parse_spreadsheet(
    data: bytes,
    tax_rate: float = DEFAULT_TAX_RATE,
    categories: Iterable[Category] = (),
) -> ExtractionResult:
    """
    First sheet, first row as header (case/accent-insensitive):
      nombre | cantidad | costo  [| codigo | descripcion | categoria]
    Cost is the net (pre-IVA) unit cost.
    """
    try:
        wb = load_workbook(io.BytesIO(data), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        return ParseError(f"Unreadable spreadsheet: {e}")

    ws = wb.active
    rows = ws.iter_rows(values_only=True)
    header = next(rows, None)
    if header is None:
        return ParseError("Spreadsheet is empty.")

    cols = _header_map(header)
    for r in REQUIRED:
        if r not in cols:
            return ParseError(f"Missing column header: {HEADER_ALIASES[r][0]}")

    categories = list(categories)

    def cell(row, key):
        idx = cols.get(key)
        if idx is None or idx >= len(row):
            return None
        return row[idx]

    items: list[ParsedLineItem] = []
    for row in rows:
        name = cell(row, "name")
        name = str(name).strip() if name is not None else ""
        qty = int_prefix(cell(row, "quantity"))
        if not name or qty <= 0:
            continue

        base_cost = float_prefix(cell(row, "cost"))
        code = cell(row, "code")
        description = cell(row, "description")
        category = match_category(str(cell(row, "category") or ""), categories)

        items.append(
            ParsedLineItem(
                name=name,
                code=str(code).strip() if code not in (None, "") else None,
                quantity=qty,
                base_cost=base_cost,
                tax_inclusive_cost=tax_inclusive(base_cost, tax_rate),
                description=str(description).strip() if description else TAX_NOTE,
                category_id=category.id if category else None,
            )
        )

    return parsed_or_empty(items, "Spreadsheet has no rows with a name and a positive quantity.")
