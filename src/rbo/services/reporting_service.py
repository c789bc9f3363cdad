from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from rbo.domain.models import Product, RowId
from rbo.extraction.tax import round_currency

log = logging.getLogger(__name__)

TEMPLATE_HEADER = ["Producto", "Stock", "Categoria", "SKU", "Costo", "Precio"]
REPORT_HEADER = TEMPLATE_HEADER + ["Margen", "Disponible"]
NO_CATEGORY = "Sin categoría"


def margin_pct(cost: float, price: float) -> int:
    return round_currency((float(price) - float(cost)) / (float(price) or 1) * 100)


class ReportingService:
    def __init__(self, repo, inventory_service):
        self.repo = repo
        self.inventory = inventory_service

    def inventory_rows(self, products: list[Product], company_id: Optional[str] = None) -> list[list]:
        names = {c.id: c.name for c in self.repo.list_categories(company_id)}
        rows = []
        for p in products:
            rows.append([
                p.name,
                int(p.stock),
                names.get(p.category_id, NO_CATEGORY),
                p.code,
                round_currency(p.cost),
                round_currency(p.price),
                margin_pct(p.cost, p.price),
                "Disponible" if p.stock > 0 else "Agotado",
            ])
        return rows

    def write_template_csv(self, path: str | Path) -> Path:
        out = Path(path)
        with out.open("w", newline="", encoding="utf-8") as fh:
            csv.writer(fh, lineterminator="\n").writerow(TEMPLATE_HEADER)
        log.info("template_written path=%s", out)
        return out

    def write_inventory_csv(
        self,
        path: str | Path,
        company_id: Optional[str] = None,
        branch_id: Optional[RowId] = None,
        **filters,
    ) -> int:
        products = self.inventory.list_products(company_id, branch_id, **filters)
        rows = self.inventory_rows(products, company_id)
        out = Path(path)
        with out.open("w", newline="", encoding="utf-8") as fh:
            w = csv.writer(fh, lineterminator="\n")
            w.writerow(REPORT_HEADER)
            w.writerows(rows)
        log.info("inventory_report_written path=%s rows=%s", out, len(rows))
        return len(rows)

    def export_inventory_excel(
        self,
        path: str | Path,
        company_id: Optional[str] = None,
        branch_id: Optional[RowId] = None,
        **filters,
    ) -> int:
        products = self.inventory.list_products(company_id, branch_id, **filters)
        rows = self.inventory_rows(products, company_id)

        wb = Workbook()
        ws = wb.active
        ws.title = "Inventario"
        ws.append(REPORT_HEADER)
        for c in ws[1]:
            c.font = Font(bold=True)

        for i, row in enumerate(rows, start=2):
            ws.append(row)
            ws[f"E{i}"].number_format = "#,##0"
            ws[f"F{i}"].number_format = "#,##0"

        widths = {"A": 34, "B": 8, "C": 18, "D": 30, "E": 12, "F": 12, "G": 10, "H": 12}
        for col, w in widths.items():
            ws.column_dimensions[col].width = w
        ws.freeze_panes = "A2"

        if rows:
            ref = f"A1:{get_column_letter(len(REPORT_HEADER))}{len(rows) + 1}"
            tab = Table(displayName="Inventario", ref=ref)
            tab.tableStyleInfo = TableStyleInfo(name="TableStyleMedium9", showRowStripes=True, showColumnStripes=False)
            ws.add_table(tab)

        wb.save(str(path))
        log.info("inventory_excel_written path=%s rows=%s", path, len(rows))
        return len(rows)
