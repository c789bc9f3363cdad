from rbo.domain.models import Category
from rbo.domain.results import Empty, Parsed
from rbo.extraction.csv_rows import TAX_NOTE, parse_csv
from rbo.extraction.tax import price_from_cost, round_currency, tax_inclusive
from rbo.services.reporting_service import margin_pct


def test_tax_inclusive_rounds_half_up_to_whole_pesos():
    assert tax_inclusive(100) == 119
    assert tax_inclusive(2618) == 3115
    assert tax_inclusive(1000, tax_rate=0.0) == 1000
    assert round_currency(2.5) == 3
    assert round_currency(1.5) == 2


def test_price_and_margin_from_cost():
    assert price_from_cost(1190) == 1547
    assert price_from_cost(1000, margin_multiplier=1.5) == 1500
    assert margin_pct(1000, 1300) == 23
    assert margin_pct(0, 0) == 0


def test_csv_drops_rows_without_name_or_positive_quantity():
    data = (
        "Producto,Cantidad,Costo,Notas,Categoria\n"
        "Pan amasado,10,1000,,Panadería\n"
        ",5,100\n"
        "Leche,0,500\n"
        "Huevos,abc,200\r\n"
        "Queso,3,2618,,Lacteos\r\n"
    )
    cats = [Category(id=7, company_id=None, name="Panaderia")]

    result = parse_csv(data.encode("utf-8"), categories=cats)

    assert isinstance(result, Parsed)
    assert [it.name for it in result.items] == ["Pan amasado", "Queso"]

    pan, queso = result.items
    assert pan.quantity == 10
    assert pan.tax_inclusive_cost == 1190
    assert pan.category_id == 7
    assert pan.code is None
    assert pan.description == TAX_NOTE

    assert queso.tax_inclusive_cost == 3115
    assert queso.category_id is None


def test_csv_with_only_header_is_empty():
    assert isinstance(parse_csv(b"Producto,Stock,Categoria,SKU,Costo,Precio\n"), Empty)


def test_csv_latin1_bytes_are_decoded():
    result = parse_csv("Producto,Cantidad,Costo\nCafé,2,100\n".encode("latin-1"))

    assert isinstance(result, Parsed)
    assert result.items[0].name == "Café"
    assert result.items[0].tax_inclusive_cost == 119


def test_csv_uses_configured_tax_rate():
    result = parse_csv("n,q,c\nArroz,1,1000\n", tax_rate=0.1)

    assert isinstance(result, Parsed)
    assert result.items[0].tax_inclusive_cost == 1100


def test_csv_overflowing_cost_becomes_zero_and_keeps_other_rows():
    result = parse_csv(b"Producto,Cantidad,Costo\nPan,2,1e400\nLeche,3,100\n")

    assert isinstance(result, Parsed)
    pan, leche = result.items
    assert pan.base_cost == 0.0
    assert pan.tax_inclusive_cost == 0
    assert leche.tax_inclusive_cost == 119
