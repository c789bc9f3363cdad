from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging
from pathlib import Path

from rbo.ui.views.intake_view import IntakeView
from rbo.ui.views.products_view import ProductsView

log = logging.getLogger(__name__)


class App(tk.Tk):
    def __init__(self, container, db_path: str, logs_dir: str):
        super().__init__()
        self.title("Back-office: Inventario")
        self.geometry("1280x720")
        self.minsize(1120, 640)

        self.container = container
        self.settings = container.settings
        self.intake = container.intake
        self.reconciliation = container.reconciliation
        self.inventory = container.inventory
        self.reporting = container.reporting

        self.db_path = db_path
        self.logs_dir = logs_dir

        self.branch_var = tk.StringVar()
        self.status_var = tk.StringVar(value="")
        self._branch_ids: dict[str, object] = {}
        self._toast_after_id = None

        self._build_styles()
        self._build_topbar()

        self.nb = ttk.Notebook(self)
        self.nb.pack(fill="both", expand=True, padx=12, pady=(0, 8))

        self.intake_view = IntakeView(self.nb, self)
        self.products_view = ProductsView(self.nb, self)

        self._build_status_bar()
        self.refresh_all(show_toast=False)

    @property
    def company_id(self):
        return self.settings.company_id

    @property
    def branch_id(self):
        return self._branch_ids.get(self.branch_var.get(), self.settings.default_branch_id)

    def _build_styles(self):
        style = ttk.Style(self)
        try:
            style.configure("Big.TButton", padding=(14, 10))
            style.configure("Title.TLabel", font=("Segoe UI", 12, "bold"))
        except Exception as e:
            log.exception("UI style setup failed: %s", e)

    def _build_topbar(self):
        top = ttk.Frame(self)
        top.pack(fill="x", padx=12, pady=10)

        ttk.Label(top, text="Sucursal de destino").pack(side="left")
        self.branch_combo = ttk.Combobox(top, textvariable=self.branch_var, width=32, state="readonly")
        self.branch_combo.pack(side="left", padx=10)
        self.branch_combo.bind("<<ComboboxSelected>>", lambda _e: self.products_view.refresh())

        ttk.Button(top, text="Refresh", command=self.refresh_all).pack(side="left", padx=10)

        store = "hosted" if self.settings.uses_remote_store else Path(self.db_path).name
        ttk.Label(top, text=f"DB: {store}").pack(side="right")

    def _build_status_bar(self):
        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=12, pady=(0, 10))
        ttk.Label(bar, textvariable=self.status_var).pack(side="left")
        ttk.Label(bar, text=f"Logs: {self.logs_dir}").pack(side="right")

    def toast(self, msg: str, kind: str = "info", ms: int = 2500):
        prefix = {"info": "ℹ ", "success": "✅ ", "warn": "⚠ ", "error": "❌ "}.get(kind, "")
        self.status_var.set(prefix + msg)
        if self._toast_after_id is not None:
            self.after_cancel(self._toast_after_id)
        self._toast_after_id = self.after(ms, lambda: self.status_var.set(""))

    def handle_error(self, title: str, exc: Exception, fallback: str):
        log.exception("%s: %s", title, exc)
        messagebox.showerror(title, str(exc) or fallback, parent=self)

    def refresh_branches(self):
        try:
            branches = self.inventory.repo.list_branches(self.company_id)
        except Exception as e:
            self.handle_error("Sucursales", e, "Failed to load branches.")
            return
        self._branch_ids = {b.name: b.id for b in branches}
        self.branch_combo["values"] = list(self._branch_ids)
        if branches and self.branch_var.get() not in self._branch_ids:
            default = next((b for b in branches if b.id == self.settings.default_branch_id), branches[0])
            self.branch_var.set(default.name)

    def refresh_all(self, show_toast: bool = True):
        self.refresh_branches()
        self.products_view.refresh()
        self.intake_view.refresh()
        if show_toast:
            self.toast("Refreshed.", kind="info", ms=1200)
