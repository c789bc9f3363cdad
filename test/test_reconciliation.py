from pathlib import Path

import pytest

from conftest import line_item, new_repo
from rbo.domain.errors import ValidationError
from rbo.domain.results import Parsed
from rbo.extraction.xml_dte import parse_dte_xml
from rbo.repositories.sqlite_repo import SqliteRepository
from rbo.services.inventory_service import InventoryService
from rbo.services.reconciliation_service import DEFAULT_REFERENCE, ReconciliationService


def _seed(repo, code: str, stock: int, company_id="c1", branch_id=None) -> int:
    product = {
        "code": code,
        "name": f"Producto {code}",
        "cost": 1000,
        "price": 1300,
        "stock": stock,
        "company_id": company_id,
        "branch_id": branch_id,
    }
    movement = {
        "company_id": company_id,
        "branch_id": branch_id,
        "movement_type": "entrada",
        "quantity": stock,
        "stock_before": 0,
        "stock_after": stock,
        "reference": "seed",
    }
    return repo.create_product_with_movement(product, movement)


def test_unknown_item_creates_product_with_opening_movement(tmp_path: Path):
    repo = new_repo(tmp_path)
    bid = repo.add_branch("Central", "c1")
    svc = ReconciliationService(repo)

    report = svc.reconcile([line_item("Pan amasado", 5, cost=1190, description="Bolsa 1kg")], "c1", bid)

    assert report.created == 1
    outcome = report.outcomes[0]
    assert outcome.code.startswith("PROD-")

    product = repo.get_product_by_id(outcome.product_id)
    assert product.stock == 5
    assert product.cost == 1190
    assert product.price == 1547
    assert product.branch_id == bid
    assert product.description == "Bolsa 1kg"

    moves = repo.movements_for_product(product.id)
    assert [(m.movement_type, m.quantity, m.stock_before, m.stock_after) for m in moves] == [("entrada", 5, 0, 5)]
    assert moves[0].reference == DEFAULT_REFERENCE


def test_known_code_increments_from_last_ledger_entry(tmp_path: Path):
    repo = new_repo(tmp_path)
    pid = _seed(repo, "SKU-1", 10)
    # products.stock drifted; the ledger is the base
    repo.update_product_stock(pid, 99)

    report = ReconciliationService(repo).reconcile([line_item("Otro nombre", 5, code="SKU-1")], "c1", None)

    assert report.incremented == 1
    assert (report.outcomes[0].stock_before, report.outcomes[0].stock_after) == (10, 15)
    assert repo.get_product_by_id(pid).stock == 15
    assert repo.latest_movement(pid).stock_after == 15
    assert InventoryService(repo).ledger_matches_stock(pid)


DTE = b"""<DTE xmlns="http://www.sii.cl/SiiDte"><Documento>
  <Detalle>
    <CdgItem><TpoCodigo>INT1</TpoCodigo><VlrCodigo>SKU-2</VlrCodigo></CdgItem>
    <NmbItem>Leche entera 1L</NmbItem>
    <QtyItem>5</QtyItem>
    <PrcItem>1000</PrcItem>
  </Detalle>
</Documento></DTE>"""


def test_importing_same_dte_twice_adds_twice(tmp_path: Path):
    repo = new_repo(tmp_path)
    pid = _seed(repo, "SKU-2", 10)
    svc = ReconciliationService(repo)
    parsed = parse_dte_xml(DTE)
    assert isinstance(parsed, Parsed)
    items = parsed.items

    svc.reconcile(items, "c1", None)
    svc.reconcile(items, "c1", None)

    assert repo.get_product_by_id(pid).stock == 20
    assert len(repo.movements_for_product(pid)) == 3


def test_code_lookup_is_scoped_to_branch(tmp_path: Path):
    repo = new_repo(tmp_path)
    central = repo.add_branch("Central", "c1")
    norte = repo.add_branch("Norte", "c1")
    _seed(repo, "SKU-3", 4, branch_id=central)

    report = ReconciliationService(repo).reconcile([line_item("Aceite", 2, code="SKU-3")], "c1", norte)

    assert report.created == 1
    assert len(repo.list_products("c1")) == 2


def test_item_without_code_always_creates(tmp_path: Path):
    repo = new_repo(tmp_path)
    svc = ReconciliationService(repo)

    svc.reconcile([line_item("Sal", 1)], "c1", None)
    svc.reconcile([line_item("Sal", 1)], "c1", None)

    assert len(repo.list_products("c1")) == 2


def test_margin_multiplier_is_configurable(tmp_path: Path):
    repo = new_repo(tmp_path)

    report = ReconciliationService(repo, margin_multiplier=2.0).reconcile([line_item("Té", 1, cost=500)], None, None)

    assert repo.get_product_by_id(report.outcomes[0].product_id).price == 1000


class LookupFailsRepo(SqliteRepository):
    def get_product_by_code(self, code, company_id, branch_id):
        if code == "BOOM":
            raise RuntimeError("lookup down")
        return super().get_product_by_code(code, company_id, branch_id)


def test_failing_item_does_not_abort_the_batch(tmp_path: Path):
    repo = new_repo(tmp_path, repo_cls=LookupFailsRepo)

    report = ReconciliationService(repo).reconcile(
        [line_item("Roto", 1, code="BOOM"), line_item("Bueno", 2)],
        "c1",
        None,
    )

    assert (report.created, report.incremented, report.failed) == (1, 0, 1)
    failed = report.outcomes[0]
    assert failed.action == "failed"
    assert "lookup down" in failed.error


def test_empty_batch_is_rejected(tmp_path: Path):
    repo = new_repo(tmp_path)

    with pytest.raises(ValidationError):
        ReconciliationService(repo).reconcile([], "c1", None)
