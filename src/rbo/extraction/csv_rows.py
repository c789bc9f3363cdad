from __future__ import annotations

from typing import Iterable

from rbo.domain.models import Category, ParsedLineItem
from rbo.domain.results import ExtractionResult, parsed_or_empty
from rbo.extraction.categories import match_category
from rbo.extraction.numbers import decode_text, float_prefix, int_prefix
from rbo.extraction.tax import DEFAULT_TAX_RATE, tax_inclusive

TAX_NOTE = "Costo con IVA incluido"


def parse_csv(
    data: bytes | str,
    tax_rate: float = DEFAULT_TAX_RATE,
    categories: Iterable[Category] = (),
) -> ExtractionResult:
    """
    Positional columns, header row ignored:
      name | quantity | base_cost | (unused) | category
    Values are split on "," as-is; quoted fields are not supported.
    """
    categories = list(categories)
    lines = decode_text(data).split("\n")

    items: list[ParsedLineItem] = []
    for line in lines[1:]:
        values = line.rstrip("\r").split(",")
        name = values[0].strip()
        qty = int_prefix(values[1]) if len(values) > 1 else 0
        if not name or qty <= 0:
            continue

        base_cost = float_prefix(values[2]) if len(values) > 2 else 0.0
        category = match_category(values[4], categories) if len(values) > 4 else None

        items.append(
            ParsedLineItem(
                name=name,
                code=None,
                quantity=qty,
                base_cost=base_cost,
                tax_inclusive_cost=tax_inclusive(base_cost, tax_rate),
                description=TAX_NOTE,
                category_id=category.id if category else None,
            )
        )

    return parsed_or_empty(items, "CSV has no rows with a name and a positive quantity.")
