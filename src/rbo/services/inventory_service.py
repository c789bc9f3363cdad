from __future__ import annotations

import logging
from typing import Iterable, Optional

from rbo.domain.errors import NotFoundError
from rbo.domain.models import InventoryMovement, Product, RowId
from rbo.extraction.categories import normalize_label

log = logging.getLogger(__name__)


class InventoryService:
    def __init__(self, repo):
        self.repo = repo

    def list_products(
        self,
        company_id: Optional[str] = None,
        branch_id: Optional[RowId] = None,
        category_id: Optional[RowId] = None,
        availability: Optional[str] = None,
        search: str = "",
    ) -> list[Product]:
        """availability: None | "disponibles" (stock > 0) | "agotados" (stock <= 0)."""
        rows = self.repo.list_products(company_id, branch_id)
        if category_id is not None:
            rows = [p for p in rows if p.category_id == category_id]
        if availability == "disponibles":
            rows = [p for p in rows if p.stock > 0]
        elif availability == "agotados":
            rows = [p for p in rows if p.stock <= 0]
        term = normalize_label(search)
        if term:
            rows = [p for p in rows if term in normalize_label(p.name) or term in normalize_label(p.code)]
        return rows

    def movements(self, product_id: RowId) -> list[InventoryMovement]:
        return self.repo.movements_for_product(product_id)

    def ledger_matches_stock(self, product_id: RowId) -> bool:
        product = self.repo.get_product_by_id(product_id)
        if not product:
            raise NotFoundError("Product not found.")
        last = self.repo.latest_movement(product_id)
        return (int(last.stock_after) if last else 0) == int(product.stock)

    def delete_product(self, product_id: RowId) -> int:
        """
        Product row first, then its movements. The two deletes are separate
        calls; if the second fails the movements stay orphaned until
        purge_orphan_movements() runs.
        """
        if not self.repo.delete_product(product_id):
            raise NotFoundError("Product not found.")
        try:
            removed = self.repo.delete_product_movements(product_id)
        except Exception:
            log.exception("orphan_movements_left product_id=%s", product_id)
            raise
        log.info("product_deleted product_id=%s movements=%s", product_id, removed)
        return removed

    def delete_products(self, product_ids: Iterable[RowId]) -> tuple[int, int]:
        deleted = 0
        failed = 0
        for pid in product_ids:
            try:
                self.delete_product(pid)
                deleted += 1
            except Exception as e:
                log.warning("bulk_delete_skipped product_id=%s error=%s", pid, e)
                failed += 1
        return deleted, failed

    def purge_orphan_movements(self) -> int:
        n = self.repo.purge_orphan_movements()
        if n:
            log.warning("orphan_movements_purged count=%s", n)
        return n
