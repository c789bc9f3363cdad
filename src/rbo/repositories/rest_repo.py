from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from rbo.domain.errors import PersistenceError
from rbo.domain.models import Branch, Category, InventoryMovement, Product, RowId
from rbo.repositories.sqlite_repo import now_iso

log = logging.getLogger("rbo.remote")


class RestRepository:
    """
    Catalog store backed by the hosted database's PostgREST endpoint
    (<url>/rest/v1/<table>). Tables and columns keep their hosted names:
      productos, inventario, sucursales, categorias
    Every call is a single row-level request; there are no transactions.
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[dict] = None,
        payload: Any = None,
        prefer: Optional[str] = None,
    ) -> list[dict]:
        url = f"{self.base_url}/rest/v1/{table}"
        headers = {"Prefer": prefer} if prefer else None
        try:
            r = self.session.request(method, url, params=params, json=payload, headers=headers, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            log.error("remote_call_failed method=%s table=%s error=%s", method, table, e)
            raise PersistenceError(f"{method} {table} failed: {e}") from e

        if not r.content:
            return []
        try:
            data = r.json()
        except ValueError as e:
            log.error("remote_bad_body method=%s table=%s error=%s", method, table, e)
            raise PersistenceError(f"{method} {table} returned a non-JSON body") from e
        return data if isinstance(data, list) else [data]

    @staticmethod
    def _eq(value: Any) -> str:
        return "is.null" if value is None else f"eq.{value}"

    @staticmethod
    def _product(r: dict) -> Product:
        return Product(
            id=r["id"],
            code=str(r.get("codigo") or ""),
            name=str(r.get("nombre") or ""),
            description=str(r.get("descripcion") or ""),
            cost=float(r.get("costo") or 0),
            price=float(r.get("precio") or 0),
            stock=int(r.get("stock") or 0),
            unit=str(r.get("unidad") or "UN"),
            active=1 if r.get("activo", True) else 0,
            company_id=r.get("empresa_id"),
            branch_id=r.get("sucursal_id"),
            category_id=r.get("categoria_id"),
            min_stock=int(r.get("stock_minimo") or 0),
        )

    @staticmethod
    def _movement(r: dict) -> InventoryMovement:
        return InventoryMovement(
            id=r["id"],
            product_id=r["producto_id"],
            company_id=r.get("empresa_id"),
            branch_id=r.get("sucursal_id"),
            movement_type=str(r.get("movimiento") or "entrada"),
            quantity=int(r.get("cantidad") or 0),
            stock_before=int(r.get("stock_anterior") or 0),
            stock_after=int(r.get("stock_final") or 0),
            reference=r.get("referencia"),
            created_at=str(r.get("created_at") or ""),
            user_id=r.get("usuario_id"),
        )

    # ---------- Lookups ----------
    def list_branches(self, company_id: Optional[str] = None) -> list[Branch]:
        params = {"select": "*", "order": "nombre.asc"}
        if company_id is not None:
            params["empresa_id"] = self._eq(company_id)
        rows = self._request("GET", "sucursales", params=params)
        return [Branch(id=r["id"], company_id=r.get("empresa_id"), name=str(r.get("nombre") or "")) for r in rows]

    def list_categories(self, company_id: Optional[str] = None) -> list[Category]:
        params = {"select": "*", "order": "nombre.asc"}
        if company_id is not None:
            params["empresa_id"] = self._eq(company_id)
        rows = self._request("GET", "categorias", params=params)
        return [Category(id=r["id"], company_id=r.get("empresa_id"), name=str(r.get("nombre") or "")) for r in rows]

    # ---------- Products ----------
    def create_product(self, data: dict) -> Product:
        payload = {
            "empresa_id": data.get("company_id"),
            "sucursal_id": data.get("branch_id"),
            "codigo": data["code"],
            "nombre": data["name"],
            "descripcion": data.get("description") or "",
            "precio": data["price"],
            "categoria_id": data.get("category_id"),
            "costo": data["cost"],
            "stock": int(data["stock"]),
            "stock_minimo": int(data.get("min_stock", 0)),
            "destacado": False,
            "activo": True,
            "tipo": "producto",
            "unidad": data.get("unit", "UN"),
        }
        rows = self._request("POST", "productos", payload=payload, prefer="return=representation")
        if not rows:
            raise PersistenceError("productos insert returned no row")
        return self._product(rows[0])

    def get_product_by_id(self, product_id: RowId) -> Optional[Product]:
        rows = self._request("GET", "productos", params={"select": "*", "id": self._eq(product_id)})
        return self._product(rows[0]) if rows else None

    def get_product_by_code(self, code: str, company_id: Optional[str], branch_id: Optional[RowId]) -> Optional[Product]:
        params = {
            "select": "*",
            "codigo": self._eq(code),
            "empresa_id": self._eq(company_id),
            "sucursal_id": self._eq(branch_id),
            "limit": "1",
        }
        rows = self._request("GET", "productos", params=params)
        return self._product(rows[0]) if rows else None

    def list_products(self, company_id: Optional[str] = None, branch_id: Optional[RowId] = None) -> list[Product]:
        params = {"select": "*", "order": "nombre.asc"}
        if company_id is not None:
            params["empresa_id"] = self._eq(company_id)
        if branch_id is not None:
            params["sucursal_id"] = self._eq(branch_id)
        return [self._product(r) for r in self._request("GET", "productos", params=params)]

    def update_product_stock(self, product_id: RowId, stock: int) -> bool:
        rows = self._request(
            "PATCH",
            "productos",
            params={"id": self._eq(product_id)},
            payload={"stock": int(stock)},
            prefer="return=representation",
        )
        return bool(rows)

    def delete_product(self, product_id: RowId) -> bool:
        rows = self._request("DELETE", "productos", params={"id": self._eq(product_id)}, prefer="return=representation")
        return bool(rows)

    # ---------- Movements ----------
    def insert_movement(self, data: dict) -> RowId:
        payload = {
            "empresa_id": data.get("company_id"),
            "sucursal_id": data.get("branch_id"),
            "producto_id": data["product_id"],
            "movimiento": data.get("movement_type", "entrada"),
            "cantidad": int(data["quantity"]),
            "stock_anterior": int(data["stock_before"]),
            "stock_final": int(data["stock_after"]),
            "referencia": data.get("reference"),
            "usuario_id": data.get("user_id"),
            "created_at": data.get("created_at") or now_iso(),
        }
        rows = self._request("POST", "inventario", payload=payload, prefer="return=representation")
        if not rows:
            raise PersistenceError("inventario insert returned no row")
        return rows[0]["id"]

    def latest_movement(self, product_id: RowId) -> Optional[InventoryMovement]:
        params = {
            "select": "*",
            "producto_id": self._eq(product_id),
            "order": "created_at.desc",
            "limit": "1",
        }
        rows = self._request("GET", "inventario", params=params)
        return self._movement(rows[0]) if rows else None

    def movements_for_product(self, product_id: RowId) -> list[InventoryMovement]:
        params = {"select": "*", "producto_id": self._eq(product_id), "order": "created_at.asc"}
        return [self._movement(r) for r in self._request("GET", "inventario", params=params)]

    def delete_product_movements(self, product_id: RowId) -> int:
        rows = self._request(
            "DELETE", "inventario", params={"producto_id": self._eq(product_id)}, prefer="return=representation"
        )
        return len(rows)

    def purge_orphan_movements(self) -> int:
        product_ids = {r["id"] for r in self._request("GET", "productos", params={"select": "id"})}
        movements = self._request("GET", "inventario", params={"select": "id,producto_id"})
        orphans = [str(m["id"]) for m in movements if m.get("producto_id") not in product_ids]
        if not orphans:
            return 0
        rows = self._request(
            "DELETE",
            "inventario",
            params={"id": f"in.({','.join(orphans)})"},
            prefer="return=representation",
        )
        return len(rows)
