from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Optional

from rbo.domain.errors import NotFoundError, ValidationError
from rbo.domain.models import ImportReport, ParsedLineItem, ReconcileOutcome, RowId
from rbo.extraction.tax import DEFAULT_MARGIN_MULTIPLIER, price_from_cost
from rbo.repositories.unit_of_work import RepositoryUnitOfWork

log = logging.getLogger("rbo.intake")

DEFAULT_REFERENCE = "Actualización masiva XML/CSV"


def generate_code() -> str:
    return f"PROD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class ReconciliationService:
    """
    Applies parsed supplier lines to the catalog, one item at a time.

    Unknown code -> new product (price = cost * margin) + entrada 0 -> qty.
    Known code   -> entrada from the last ledger stock_after (0 if none) and
                    products.stock set to the new total.

    With atomic=True (default) both writes go through the unit of work.
    With atomic=False the two calls run back to back: a ledger insert that
    fails after the stock update leaves products.stock ahead of the ledger.
    Importing the same document twice adds its quantities twice.
    """

    def __init__(self, repo, margin_multiplier: float = DEFAULT_MARGIN_MULTIPLIER, atomic: bool = True):
        self.repo = repo
        self.margin_multiplier = float(margin_multiplier)
        self.atomic = atomic

    def reconcile(
        self,
        items: Iterable[ParsedLineItem],
        company_id: Optional[str],
        branch_id: Optional[RowId],
        user_id: Optional[str] = None,
        reference: str = DEFAULT_REFERENCE,
    ) -> ImportReport:
        items = list(items)
        if not items:
            raise ValidationError("No items to import.")

        report = ImportReport()
        for item in items:
            try:
                outcome = self._reconcile_item(item, company_id, branch_id, user_id, reference)
            except Exception as e:
                log.exception("reconcile_failed name=%s code=%s", item.name, item.code)
                outcome = ReconcileOutcome(item_name=item.name, code=item.code, action="failed", error=str(e))
            report.outcomes.append(outcome)

        log.info(
            "reconcile_done created=%s incremented=%s failed=%s branch=%s",
            report.created,
            report.incremented,
            report.failed,
            branch_id,
        )
        return report

    def _reconcile_item(
        self,
        item: ParsedLineItem,
        company_id: Optional[str],
        branch_id: Optional[RowId],
        user_id: Optional[str],
        reference: str,
    ) -> ReconcileOutcome:
        qty = int(item.quantity)
        movement = {
            "company_id": company_id,
            "branch_id": branch_id,
            "movement_type": "entrada",
            "reference": reference,
            "user_id": user_id,
        }

        existing = self.repo.get_product_by_code(item.code, company_id, branch_id) if item.code else None
        if existing is None:
            return self._create(item, qty, company_id, branch_id, movement)

        if self.atomic:
            with RepositoryUnitOfWork(self.repo) as uow:
                before, after = uow.receive_stock(existing.id, qty, movement)
        else:
            last = self.repo.latest_movement(existing.id)
            before = int(last.stock_after) if last else 0
            after = before + qty
            if not self.repo.update_product_stock(existing.id, after):
                raise NotFoundError(f"Product not found: {existing.id}")
            try:
                self.repo.insert_movement(
                    {**movement, "product_id": existing.id, "quantity": qty, "stock_before": before, "stock_after": after}
                )
            except Exception:
                log.error("ledger_behind_stock product_id=%s stock=%s ledger_stock=%s", existing.id, after, before)
                raise

        log.info("stock_incremented code=%s product_id=%s %s->%s", existing.code, existing.id, before, after)
        return ReconcileOutcome(
            item_name=item.name,
            code=existing.code,
            action="incremented",
            product_id=existing.id,
            stock_before=before,
            stock_after=after,
        )

    def _create(
        self,
        item: ParsedLineItem,
        qty: int,
        company_id: Optional[str],
        branch_id: Optional[RowId],
        movement: dict,
    ) -> ReconcileOutcome:
        code = item.code or generate_code()
        cost = item.tax_inclusive_cost
        product = {
            "code": code,
            "name": item.name,
            "description": item.description,
            "cost": cost,
            "price": price_from_cost(cost, self.margin_multiplier),
            "stock": qty,
            "unit": "UN",
            "company_id": company_id,
            "branch_id": branch_id,
            "category_id": item.category_id,
        }
        opening = {**movement, "quantity": qty, "stock_before": 0, "stock_after": qty}

        if self.atomic:
            with RepositoryUnitOfWork(self.repo) as uow:
                pid = uow.receive_new_product(product, opening)
        else:
            pid = self.repo.create_product(product).id
            self.repo.insert_movement({**opening, "product_id": pid})

        log.info("product_created code=%s product_id=%s stock=%s", code, pid, qty)
        return ReconcileOutcome(
            item_name=item.name,
            code=code,
            action="created",
            product_id=pid,
            stock_before=0,
            stock_after=qty,
        )
