from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox, filedialog
from datetime import date
import logging

from rbo.services.reporting_service import NO_CATEGORY, margin_pct

log = logging.getLogger(__name__)

AVAILABILITY = {"Todos": None, "Disponibles": "disponibles", "Agotados": "agotados"}


class ProductsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Productos")

        self.search_var = tk.StringVar()
        self.availability_var = tk.StringVar(value="Todos")
        self._build()

    def _build(self):
        tab = self.frame

        bar = ttk.Frame(tab)
        bar.pack(fill="x", padx=10, pady=10)

        ttk.Label(bar, text="Buscar").pack(side="left")
        search = ttk.Entry(bar, textvariable=self.search_var, width=30)
        search.pack(side="left", padx=10)
        search.bind("<KeyRelease>", lambda _e: self.refresh())

        ttk.Combobox(bar, textvariable=self.availability_var, values=list(AVAILABILITY), width=12, state="readonly")\
            .pack(side="left", padx=10)
        self.availability_var.trace_add("write", lambda *_: self.refresh())

        ttk.Button(bar, text="Reporte CSV", command=self.export_csv).pack(side="right")
        ttk.Button(bar, text="Reporte Excel", command=self.export_excel).pack(side="right", padx=10)
        ttk.Button(bar, text="Eliminar seleccionados", command=self.on_delete_selected).pack(side="right", padx=10)

        wrap = ttk.Frame(tab)
        wrap.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("id", "name", "stock", "category", "sku", "cost", "price", "margin", "available")
        self.tree = ttk.Treeview(wrap, columns=cols, show="headings", height=20, selectmode="extended")
        heads = {
            "id": "ID", "name": "Producto", "stock": "Stock", "category": "Categoría", "sku": "SKU",
            "cost": "Costo", "price": "Precio", "margin": "Margen", "available": "Disponible",
        }
        widths = {"id": 60, "name": 260, "stock": 70, "category": 140, "sku": 200, "cost": 90, "price": 90, "margin": 70, "available": 90}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.tag_configure("out", background="#ffdddd")

        vsb = ttk.Scrollbar(wrap, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")
        wrap.columnconfigure(0, weight=1)
        wrap.rowconfigure(0, weight=1)

    def _filters(self) -> dict:
        return {
            "availability": AVAILABILITY.get(self.availability_var.get()),
            "search": self.search_var.get(),
        }

    def refresh(self):
        for iid in self.tree.get_children():
            self.tree.delete(iid)
        try:
            rows = self.app.inventory.list_products(self.app.company_id, self.app.branch_id, **self._filters())
            names = {c.id: c.name for c in self.app.inventory.repo.list_categories(self.app.company_id)}
        except Exception as e:
            self.app.handle_error("Productos", e, "Failed to load products.")
            return

        for p in rows:
            self.tree.insert(
                "", "end", iid=str(p.id),
                values=(
                    p.id, p.name, p.stock, names.get(p.category_id, NO_CATEGORY), p.code,
                    f"${round(p.cost):,}", f"${round(p.price):,}", f"{margin_pct(p.cost, p.price)}%",
                    "Disponible" if p.stock > 0 else "Agotado",
                ),
                tags=("out",) if p.stock <= 0 else (),
            )

    def on_delete_selected(self):
        selected = self.tree.selection()
        if not selected:
            return
        if not messagebox.askyesno("Eliminar", f"¿Eliminar {len(selected)} producto(s) y sus movimientos?", parent=self.frame):
            return
        ids = [self.tree.item(iid, "values")[0] for iid in selected]
        # treeview hands values back as strings; sqlite ids are ints
        ids = [int(i) if str(i).isdigit() else i for i in ids]
        deleted, failed = self.app.inventory.delete_products(ids)
        if failed:
            self.app.inventory.purge_orphan_movements()
        self.app.toast(f"Eliminados {deleted}, con error {failed}.", kind="warn" if failed else "success")
        self.refresh()

    def _ask_path(self, prefix: str, ext: str):
        return filedialog.asksaveasfilename(
            parent=self.frame,
            defaultextension=ext,
            initialfile=f"{prefix}_{date.today().isoformat()}{ext}",
        )

    def export_csv(self):
        path = self._ask_path("reporte_inventario", ".csv")
        if not path:
            return
        try:
            n = self.app.reporting.write_inventory_csv(path, self.app.company_id, self.app.branch_id, **self._filters())
            self.app.toast(f"Reporte CSV: {n} filas.", kind="success")
        except Exception as e:
            self.app.handle_error("Reporte", e, "Failed to export report.")

    def export_excel(self):
        path = self._ask_path("reporte_inventario", ".xlsx")
        if not path:
            return
        try:
            n = self.app.reporting.export_inventory_excel(path, self.app.company_id, self.app.branch_id, **self._filters())
            self.app.toast(f"Reporte Excel: {n} filas.", kind="success")
        except Exception as e:
            self.app.handle_error("Reporte", e, "Failed to export report.")
