from pathlib import Path

from conftest import line_item, new_repo
from rbo.domain.results import Empty, ParseError, Parsed
from rbo.services.intake_service import IntakeService
from rbo.services.upload_session import FALLBACK_DESCRIPTION, UploadSession


def test_items_flatten_all_documents_in_order():
    session = UploadSession()
    session.add_document("a.csv", [line_item("Pan", 2), line_item("Leche", 1)])
    session.add_document("b.xml", [line_item("Queso", 4)])

    assert [it.name for it in session.items] == ["Pan", "Leche", "Queso"]


def test_overrides_apply_by_name_and_fall_back():
    session = UploadSession()
    session.add_document("a.csv", [line_item("Pan", 2, description="Marraqueta"), line_item("Sal", 0)])
    session.set_override("Pan", quantity=7, category_id=4)

    pan, sal = session.effective_items()

    assert pan.quantity == 7
    assert pan.description == "Marraqueta"
    assert pan.category_id == 4
    assert sal.quantity == 1
    assert sal.description == FALLBACK_DESCRIPTION


def test_removing_document_prunes_its_overrides():
    session = UploadSession()
    first = session.add_document("a.csv", [line_item("Pan", 2)])
    session.add_document("b.csv", [line_item("Leche", 1)])
    session.set_override("Pan", quantity=3)
    session.set_override("Leche", quantity=9)

    assert session.remove_document(first.id)
    assert not session.remove_document("missing")

    assert list(session.overrides) == ["Leche"]
    assert [it.name for it in session.effective_items()] == ["Leche"]


def test_load_files_reports_each_file_and_keeps_parsed_ones(tmp_path: Path):
    repo = new_repo(tmp_path)
    repo.add_category("Panadería", "c1")

    good = tmp_path / "lista.csv"
    good.write_text("Producto,Cantidad,Costo,x,Categoria\nPan,3,1000,,panaderia\n", encoding="utf-8")
    bad = tmp_path / "factura.xml"
    bad.write_text("<DTE><Detalle>", encoding="utf-8")
    other = tmp_path / "notas.docx"
    other.write_bytes(b"PK")
    missing = tmp_path / "no_existe.csv"

    session = UploadSession()
    results = IntakeService(repo).load_files(session, [good, bad, other, missing], company_id="c1")

    kinds = [(name, type(r)) for name, r in results]
    assert kinds == [
        ("lista.csv", Parsed),
        ("factura.xml", ParseError),
        ("notas.docx", Empty),
        ("no_existe.csv", ParseError),
    ]
    assert [d.name for d in session.documents] == ["lista.csv"]
    assert session.items[0].category_id == repo.list_categories("c1")[0].id


def test_corrupt_pdf_is_parse_error_not_exception(tmp_path: Path):
    repo = new_repo(tmp_path)

    result = IntakeService(repo).extract_bytes("guia.pdf", b"%PDF-1.4 truncated")

    assert isinstance(result, ParseError)


def test_load_files_replace_clears_previous_documents(tmp_path: Path):
    repo = new_repo(tmp_path)
    f = tmp_path / "lista.csv"
    f.write_text("n,q,c\nArroz,1,100\n", encoding="utf-8")
    session = UploadSession()
    session.add_document("viejo.csv", [line_item("Viejo", 1)])

    IntakeService(repo, tax_rate=0.0).load_files(session, [f], replace=True)

    assert [it.name for it in session.items] == ["Arroz"]
    assert session.items[0].tax_inclusive_cost == 100
