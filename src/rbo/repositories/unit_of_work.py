from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from rbo.domain.errors import NotFoundError
from rbo.domain.models import RowId

log = logging.getLogger("rbo.intake")


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def receive_new_product(self, product: dict, movement: dict) -> RowId: ...
    def receive_stock(self, product_id: RowId, quantity: int, movement: dict) -> tuple[int, int]: ...


@dataclass
class RepositoryUnitOfWork:
    """Groups the product write and its ledger entry into one all-or-nothing step.

    Stores with a database transaction (sqlite) run both writes in it. Stores
    without one (the hosted REST store) get a compensating action: the product
    write is undone when the ledger insert fails.
    """

    repo: object

    def __enter__(self) -> "RepositoryUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    def receive_new_product(self, product: dict, movement: dict) -> RowId:
        if hasattr(self.repo, "create_product_with_movement"):
            return self.repo.create_product_with_movement(product, movement)

        created = self.repo.create_product(product)
        try:
            self.repo.insert_movement({**movement, "product_id": created.id})
        except Exception:
            log.warning("compensate_create product_id=%s code=%s", created.id, created.code)
            self.repo.delete_product(created.id)
            raise
        return created.id

    def receive_stock(self, product_id: RowId, quantity: int, movement: dict) -> tuple[int, int]:
        if hasattr(self.repo, "increment_stock_with_movement"):
            return self.repo.increment_stock_with_movement(product_id, quantity, movement)

        product = self.repo.get_product_by_id(product_id)
        previous_stock = product.stock if product else 0
        last = self.repo.latest_movement(product_id)
        before = int(last.stock_after) if last else 0
        after = before + int(quantity)

        if not self.repo.update_product_stock(product_id, after):
            raise NotFoundError(f"Product not found: {product_id}")
        try:
            self.repo.insert_movement(
                {
                    **movement,
                    "product_id": product_id,
                    "quantity": int(quantity),
                    "stock_before": before,
                    "stock_after": after,
                }
            )
        except Exception:
            log.warning("compensate_stock product_id=%s restore=%s", product_id, previous_stock)
            self.repo.update_product_stock(product_id, previous_stock)
            raise
        return before, after
