from rbo.domain.models import Category
from rbo.domain.results import Empty, ParseError, Parsed
from rbo.extraction.csv_rows import TAX_NOTE
from rbo.extraction.xml_dte import parse_dte_xml

DTE = b"""<?xml version="1.0" encoding="UTF-8"?>
<DTE xmlns="http://www.sii.cl/SiiDte" version="1.0">
  <Documento ID="F33T1">
    <Detalle>
      <NroLinDet>1</NroLinDet>
      <CdgItem><TpoCodigo>INT1</TpoCodigo><VlrCodigo>HAR-25</VlrCodigo></CdgItem>
      <NmbItem>Harina 25kg</NmbItem>
      <DscItem>Saco de harina</DscItem>
      <QtyItem>4</QtyItem>
      <PrcItem>10000</PrcItem>
    </Detalle>
    <Detalle>
      <NroLinDet>2</NroLinDet>
      <NmbItem>Sal fina</NmbItem>
      <PrcItem>500</PrcItem>
    </Detalle>
  </Documento>
</DTE>
"""


def test_dte_detalle_lines_are_read_with_namespace():
    result = parse_dte_xml(DTE)

    assert isinstance(result, Parsed)
    harina, sal = result.items

    assert harina.code == "HAR-25"
    assert harina.name == "Harina 25kg"
    assert harina.quantity == 4
    assert harina.base_cost == 10000
    assert harina.tax_inclusive_cost == 11900
    assert harina.description == "Saco de harina"

    assert sal.code is None
    assert sal.quantity == 0
    assert sal.tax_inclusive_cost == 595
    assert sal.description == TAX_NOTE


def test_dte_decimal_quantity_keeps_integer_part():
    xml = b"<DTE><Detalle><NmbItem>Queso</NmbItem><QtyItem>2.5</QtyItem><PrcItem>100</PrcItem></Detalle></DTE>"

    result = parse_dte_xml(xml)

    assert isinstance(result, Parsed)
    assert result.items[0].quantity == 2


def test_malformed_xml_is_parse_error():
    result = parse_dte_xml(b"<DTE><Detalle></DTE>")

    assert isinstance(result, ParseError)
    assert "Malformed XML" in result.reason


def test_producto_layout_keeps_cost_as_tax_inclusive():
    xml = """<productos>
      <producto>
        <nombre>Té verde</nombre>
        <descripcion>Caja 20 bolsitas</descripcion>
        <cantidad>6</cantidad>
        <costo_con_iva>2380</costo_con_iva>
        <categoria>bebidas</categoria>
      </producto>
    </productos>""".encode("utf-8")
    cats = [Category(id=2, company_id="c1", name="Bebidas")]

    result = parse_dte_xml(xml, categories=cats)

    assert isinstance(result, Parsed)
    item = result.items[0]
    assert item.name == "Té verde"
    assert item.quantity == 6
    assert item.tax_inclusive_cost == 2380
    assert item.category_id == 2


def test_xml_without_known_elements_is_empty():
    assert isinstance(parse_dte_xml(b"<root><otro/></root>"), Empty)
