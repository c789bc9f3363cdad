from pathlib import Path

import pytest

from conftest import line_item, new_repo
from rbo.domain.errors import NotFoundError
from rbo.domain.models import InventoryMovement, Product
from rbo.repositories.sqlite_repo import SqliteRepository
from rbo.repositories.unit_of_work import RepositoryUnitOfWork
from rbo.services.inventory_service import InventoryService
from rbo.services.reconciliation_service import ReconciliationService


class FailingRepo(SqliteRepository):
    def _insert_movement(self, cur, data):
        raise RuntimeError("boom")


def _seed(tmp_path: Path, stock: int = 10) -> int:
    repo = new_repo(tmp_path)
    return repo.create_product_with_movement(
        {"code": "SKU-1", "name": "Harina", "cost": 1000, "price": 1300, "stock": stock, "company_id": "c1"},
        {"company_id": "c1", "quantity": stock, "stock_before": 0, "stock_after": stock},
    )


def test_atomic_increment_rolls_back_stock_when_ledger_fails(tmp_path: Path):
    pid = _seed(tmp_path)
    repo = FailingRepo(tmp_path / "t.db")

    report = ReconciliationService(repo).reconcile([line_item("Harina", 5, code="SKU-1")], "c1", None)

    assert report.failed == 1
    assert repo.get_product_by_id(pid).stock == 10
    assert len(repo.movements_for_product(pid)) == 1
    assert InventoryService(repo).ledger_matches_stock(pid)


def test_non_atomic_increment_leaves_stock_ahead_of_ledger(tmp_path: Path):
    pid = _seed(tmp_path)
    repo = FailingRepo(tmp_path / "t.db")

    report = ReconciliationService(repo, atomic=False).reconcile([line_item("Harina", 5, code="SKU-1")], "c1", None)

    assert report.failed == 1
    assert repo.get_product_by_id(pid).stock == 15
    assert repo.latest_movement(pid).stock_after == 10
    assert not InventoryService(repo).ledger_matches_stock(pid)


def test_atomic_create_leaves_no_product_when_ledger_fails(tmp_path: Path):
    repo = new_repo(tmp_path, repo_cls=FailingRepo)

    report = ReconciliationService(repo).reconcile([line_item("Nuevo", 3)], "c1", None)

    assert report.failed == 1
    assert repo.list_products("c1") == []


def test_non_atomic_create_leaves_product_without_ledger(tmp_path: Path):
    repo = new_repo(tmp_path, repo_cls=FailingRepo)

    ReconciliationService(repo, atomic=False).reconcile([line_item("Nuevo", 3)], "c1", None)

    products = repo.list_products("c1")
    assert len(products) == 1
    assert repo.movements_for_product(products[0].id) == []


class MemoryRepo:
    """Store without transactions: row-level calls only."""

    def __init__(self, fail_movements: bool = False):
        self.products: dict[str, Product] = {}
        self.movements: list[InventoryMovement] = []
        self.fail_movements = fail_movements

    def create_product(self, data):
        pid = f"p{len(self.products) + 1}"
        self.products[pid] = Product(
            id=pid, code=data["code"], name=data["name"], description="",
            cost=data["cost"], price=data["price"], stock=data["stock"],
        )
        return self.products[pid]

    def get_product_by_id(self, product_id):
        return self.products.get(product_id)

    def update_product_stock(self, product_id, stock):
        p = self.products[product_id]
        self.products[product_id] = Product(**{**p.__dict__, "stock": stock})
        return True

    def delete_product(self, product_id):
        return self.products.pop(product_id, None) is not None

    def latest_movement(self, product_id):
        rows = [m for m in self.movements if m.product_id == product_id]
        return rows[-1] if rows else None

    def insert_movement(self, data):
        if self.fail_movements:
            raise RuntimeError("inventario insert failed")
        mid = f"m{len(self.movements) + 1}"
        self.movements.append(
            InventoryMovement(
                id=mid, product_id=data["product_id"], company_id=None, branch_id=None,
                movement_type="entrada", quantity=data["quantity"], stock_before=data["stock_before"],
                stock_after=data["stock_after"], reference=None, created_at="", user_id=None,
            )
        )
        return mid


def test_unit_of_work_compensates_create_without_transactions():
    repo = MemoryRepo(fail_movements=True)

    with pytest.raises(RuntimeError):
        with RepositoryUnitOfWork(repo) as uow:
            uow.receive_new_product(
                {"code": "A", "name": "A", "cost": 1, "price": 2, "stock": 3},
                {"quantity": 3, "stock_before": 0, "stock_after": 3},
            )

    assert repo.products == {}


def test_unit_of_work_restores_stock_without_transactions():
    repo = MemoryRepo()
    with RepositoryUnitOfWork(repo) as uow:
        pid = uow.receive_new_product(
            {"code": "A", "name": "A", "cost": 1, "price": 2, "stock": 4},
            {"quantity": 4, "stock_before": 0, "stock_after": 4},
        )
        assert uow.receive_stock(pid, 2, {}) == (4, 6)

    repo.fail_movements = True
    with pytest.raises(RuntimeError):
        with RepositoryUnitOfWork(repo) as uow:
            uow.receive_stock(pid, 5, {})

    assert repo.products[pid].stock == 6
    assert repo.latest_movement(pid).stock_after == 6


class GoneOnUpdateRepo(MemoryRepo):
    def update_product_stock(self, product_id, stock):
        return False


def test_unit_of_work_writes_no_ledger_when_stock_update_matches_nothing():
    repo = GoneOnUpdateRepo()
    pid = repo.create_product({"code": "A", "name": "A", "cost": 1, "price": 2, "stock": 0}).id

    with pytest.raises(NotFoundError):
        with RepositoryUnitOfWork(repo) as uow:
            uow.receive_stock(pid, 5, {})

    assert repo.movements == []
