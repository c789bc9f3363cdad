from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterable, Optional

from rbo.domain.models import Category, ParsedLineItem
from rbo.domain.results import ExtractionResult, ParseError, parsed_or_empty
from rbo.extraction.categories import match_category
from rbo.extraction.csv_rows import TAX_NOTE
from rbo.extraction.numbers import float_prefix, int_prefix
from rbo.extraction.tax import DEFAULT_TAX_RATE, round_currency, tax_inclusive


def _local(tag: str) -> str:
    # SII documents carry the http://www.sii.cl/SiiDte namespace
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _child(el: ET.Element, name: str) -> Optional[ET.Element]:
    for c in el:
        if _local(c.tag) == name:
            return c
    return None


def _text(el: ET.Element, name: str) -> Optional[str]:
    c = _child(el, name)
    if c is None or c.text is None:
        return None
    return c.text.strip()


def _detalle_item(det: ET.Element, tax_rate: float) -> ParsedLineItem:
    code = None
    cdg = _child(det, "CdgItem")
    if cdg is not None:
        code = _text(cdg, "VlrCodigo") or None

    base_cost = float_prefix(_text(det, "PrcItem"))
    return ParsedLineItem(
        name=_text(det, "NmbItem") or "",
        code=code,
        quantity=int_prefix(_text(det, "QtyItem")),
        base_cost=base_cost,
        tax_inclusive_cost=tax_inclusive(base_cost, tax_rate),
        description=_text(det, "DscItem") or TAX_NOTE,
    )


def _producto_item(prod: ET.Element, categories: list[Category]) -> ParsedLineItem:
    # costo_con_iva is already tax inclusive
    cost = float_prefix(_text(prod, "costo_con_iva"))
    category = match_category(_text(prod, "categoria") or "", categories)
    return ParsedLineItem(
        name=_text(prod, "nombre") or "",
        code=None,
        quantity=int_prefix(_text(prod, "cantidad")),
        base_cost=cost,
        tax_inclusive_cost=round_currency(cost),
        description=_text(prod, "descripcion") or "",
        category_id=category.id if category else None,
    )


def parse_dte_xml(
    data: bytes | str,
    tax_rate: float = DEFAULT_TAX_RATE,
    categories: Iterable[Category] = (),
) -> ExtractionResult:
    """
    Reads every <Detalle> of a DTE (CdgItem/VlrCodigo, NmbItem, QtyItem, PrcItem).
    Missing quantity or price become 0.

    Documents without <Detalle> fall back to the plain product list layout:
      <producto><nombre/><descripcion/><cantidad/><costo_con_iva/><categoria/></producto>
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        return ParseError(f"Malformed XML: {e}")

    detalles = [el for el in root.iter() if _local(el.tag) == "Detalle"]
    if detalles:
        items = [_detalle_item(det, tax_rate) for det in detalles]
        return parsed_or_empty(items, "DTE has no Detalle lines.")

    categories = list(categories)
    productos = [el for el in root.iter() if _local(el.tag) == "producto"]
    items = [_producto_item(p, categories) for p in productos]
    return parsed_or_empty(items, "XML has neither Detalle nor producto elements.")
