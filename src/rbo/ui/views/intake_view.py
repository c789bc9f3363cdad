from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox, filedialog
from datetime import date
import logging

from rbo.domain.results import Empty, ParseError
from rbo.services.upload_session import UploadSession

log = logging.getLogger(__name__)

FILE_TYPES = [
    ("Supplier documents", "*.xml *.csv *.xlsx *.xlsm *.pdf *.txt"),
    ("XML (DTE)", "*.xml"),
    ("CSV", "*.csv"),
    ("Excel", "*.xlsx *.xlsm"),
    ("PDF / text", "*.pdf *.txt"),
]


class IntakeView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.session = UploadSession()
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Actualizar inventario")

        self.total_var = tk.StringVar(value="0 productos")
        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.LabelFrame(tab, text="Cargar documentos")
        top.pack(fill="x", padx=10, pady=10)
        ttk.Button(top, text="Agregar archivos", style="Big.TButton", command=self.add_files)\
            .pack(side="left", padx=10, pady=10)
        ttk.Button(top, text="Descargar plantilla CSV", command=self.download_template)\
            .pack(side="left", padx=10)
        ttk.Label(top, text="XML (DTE) · CSV · Excel · PDF").pack(side="left", padx=10)

        mid = ttk.Frame(tab)
        mid.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        docs = ttk.LabelFrame(mid, text="Archivos cargados")
        docs.pack(side="left", fill="y", padx=(0, 10))
        self.docs_list = tk.Listbox(docs, width=36, height=14)
        self.docs_list.pack(fill="both", expand=True, padx=10, pady=10)
        ttk.Button(docs, text="Remover archivo", command=self.remove_selected_document)\
            .pack(fill="x", padx=10, pady=(0, 10))

        preview = ttk.LabelFrame(mid, text="Productos encontrados (IVA 19% aplicado)")
        preview.pack(side="right", fill="both", expand=True)

        cols = ("name", "code", "qty", "cost", "desc")
        self.tree = ttk.Treeview(preview, columns=cols, show="headings", height=14)
        heads = {"name": "Producto", "code": "Código", "qty": "Cantidad", "cost": "Costo con IVA", "desc": "Descripción"}
        widths = {"name": 260, "code": 140, "qty": 80, "cost": 110, "desc": 320}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w")
        self.tree.pack(fill="both", expand=True, padx=10, pady=10)
        self.tree.bind("<Double-1>", self.edit_selected_item)

        bottom = ttk.Frame(tab)
        bottom.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Label(bottom, textvariable=self.total_var).pack(side="left")
        ttk.Button(bottom, text="Confirmar", style="Big.TButton", command=self.confirm).pack(side="right")
        ttk.Button(bottom, text="Limpiar", command=self.clear).pack(side="right", padx=10)

    def refresh(self):
        self.docs_list.delete(0, tk.END)
        for doc in self.session.documents:
            self.docs_list.insert(tk.END, f"{doc.name} ({len(doc.items)} productos)")

        for iid in self.tree.get_children():
            self.tree.delete(iid)
        items = self.session.effective_items()
        for it in items:
            self.tree.insert("", "end", values=(it.name, it.code or "", it.quantity, f"{it.tax_inclusive_cost:,}", it.description))
        self.total_var.set(f"{len(items)} productos")

    def add_files(self):
        paths = filedialog.askopenfilenames(parent=self.frame, filetypes=FILE_TYPES)
        if not paths:
            return
        results = self.app.intake.load_files(self.session, paths, company_id=self.app.company_id)

        errors = [f"{name}: {r.reason}" for name, r in results if isinstance(r, ParseError)]
        empty = [f"{name}: {r.reason}" for name, r in results if isinstance(r, Empty)]
        if errors:
            messagebox.showerror("Error al procesar archivos", "\n".join(errors), parent=self.frame)
        if empty:
            messagebox.showwarning("Sin productos", "\n".join(empty), parent=self.frame)
        self.refresh()

    def remove_selected_document(self):
        sel = self.docs_list.curselection()
        if not sel:
            return
        doc = self.session.documents[sel[0]]
        self.session.remove_document(doc.id)
        log.info("document_removed name=%s remaining=%s", doc.name, len(self.session.documents))
        self.refresh()

    def edit_selected_item(self, _evt=None):
        sel = self.tree.selection()
        if not sel:
            return
        name, _code, qty, _cost, desc = self.tree.item(sel[0], "values")

        win = tk.Toplevel(self.frame)
        win.title(name)
        win.transient(self.frame)

        ttk.Label(win, text="Cantidad").grid(row=0, column=0, padx=10, pady=6, sticky="w")
        qty_e = ttk.Entry(win, width=12)
        qty_e.insert(0, str(qty))
        qty_e.grid(row=0, column=1, padx=10, pady=6, sticky="w")

        ttk.Label(win, text="Descripción").grid(row=1, column=0, padx=10, pady=6, sticky="w")
        desc_e = ttk.Entry(win, width=48)
        desc_e.insert(0, str(desc))
        desc_e.grid(row=1, column=1, padx=10, pady=6, sticky="ew")

        def save():
            try:
                new_qty = int(float(qty_e.get().strip() or 0))
            except ValueError:
                messagebox.showerror("Cantidad", "Cantidad must be an integer.", parent=win)
                return
            self.session.set_override(name, quantity=new_qty, description=desc_e.get().strip() or None)
            win.destroy()
            self.refresh()

        ttk.Button(win, text="Guardar", command=save).grid(row=2, column=1, padx=10, pady=10, sticky="e")

    def download_template(self):
        path = filedialog.asksaveasfilename(
            parent=self.frame,
            defaultextension=".csv",
            initialfile=f"plantilla_productos_stock_{date.today().isoformat()}.csv",
            filetypes=[("CSV", "*.csv")],
        )
        if not path:
            return
        try:
            self.app.reporting.write_template_csv(path)
            self.app.toast("Plantilla descargada.", kind="success")
        except Exception as e:
            self.app.handle_error("Plantilla", e, "Failed to write template.")

    def clear(self):
        self.session.clear()
        self.refresh()

    def confirm(self):
        items = self.session.effective_items()
        try:
            report = self.app.reconciliation.reconcile(
                items,
                company_id=self.app.company_id,
                branch_id=self.app.branch_id,
            )
        except Exception as e:
            self.app.handle_error("Actualizar inventario", e, "Error al procesar los productos.")
            return

        if report.failed:
            failed = [f"{o.item_name}: {o.error}" for o in report.outcomes if o.action == "failed"]
            messagebox.showerror("Error procesando productos", "\n".join(failed[:20]), parent=self.frame)
        self.app.toast(
            f"Creados {report.created}, actualizados {report.incremented}, con error {report.failed}.",
            kind="warn" if report.failed else "success",
            ms=4000,
        )
        self.session.clear()
        self.app.refresh_all(show_toast=False)
