from __future__ import annotations

import sqlite3
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from rbo.domain.models import Branch, Category, InventoryMovement, Product

PRODUCT_COLUMNS = (
    "id, code, name, description, cost, price, stock, unit, active, "
    "company_id, branch_id, category_id, min_stock"
)
MOVEMENT_COLUMNS = (
    "id, product_id, company_id, branch_id, movement_type, quantity, "
    "stock_before, stock_after, reference, created_at, user_id"
)


def now_iso() -> str:
    return datetime.now().isoformat(sep=" ", timespec="microseconds")


class SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_min_stock_and_indexes),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS branches (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_id TEXT,
            name TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_id TEXT,
            name TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            cost REAL NOT NULL CHECK(cost >= 0),
            price REAL NOT NULL CHECK(price >= 0),
            stock INTEGER NOT NULL DEFAULT 0,
            unit TEXT NOT NULL DEFAULT 'UN' CHECK(unit IN ('UN','KG')),
            active INTEGER NOT NULL DEFAULT 1 CHECK(active IN (0,1)),
            company_id TEXT,
            branch_id INTEGER REFERENCES branches(id),
            category_id INTEGER REFERENCES categories(id)
        )
        """
        )

        # no FK on product_id: product and movement deletes are two separate calls
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS inventory_movements (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            product_id INTEGER NOT NULL,
            company_id TEXT,
            branch_id INTEGER,
            movement_type TEXT NOT NULL CHECK(movement_type IN ('entrada','salida')),
            quantity INTEGER NOT NULL,
            stock_before INTEGER NOT NULL,
            stock_after INTEGER NOT NULL,
            reference TEXT,
            created_at TEXT NOT NULL,
            user_id TEXT
        )
        """
        )

    def _migration_v2_min_stock_and_indexes(self, cur: sqlite3.Cursor) -> None:
        self._add_column_if_missing(cur, "products", "min_stock", "INTEGER NOT NULL DEFAULT 0")
        cur.execute("CREATE INDEX IF NOT EXISTS ix_products_code ON products(code, company_id, branch_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS ix_movements_product ON inventory_movements(product_id, created_at)")

    def _add_column_if_missing(self, cur: sqlite3.Cursor, table: str, column: str, definition: str) -> None:
        cur.execute(f"PRAGMA table_info({table})")
        cols = {str(r[1]) for r in cur.fetchall()}
        if column in cols:
            return
        cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")

    @staticmethod
    def _product(r) -> Product:
        return Product(
            id=int(r[0]),
            code=str(r[1]),
            name=str(r[2]),
            description=str(r[3] or ""),
            cost=float(r[4]),
            price=float(r[5]),
            stock=int(r[6]),
            unit=str(r[7]),
            active=int(r[8]),
            company_id=(str(r[9]) if r[9] is not None else None),
            branch_id=(int(r[10]) if r[10] is not None else None),
            category_id=(int(r[11]) if r[11] is not None else None),
            min_stock=int(r[12]),
        )

    @staticmethod
    def _movement(r) -> InventoryMovement:
        return InventoryMovement(
            id=int(r[0]),
            product_id=int(r[1]),
            company_id=(str(r[2]) if r[2] is not None else None),
            branch_id=(int(r[3]) if r[3] is not None else None),
            movement_type=str(r[4]),
            quantity=int(r[5]),
            stock_before=int(r[6]),
            stock_after=int(r[7]),
            reference=r[8],
            created_at=str(r[9]),
            user_id=r[10],
        )

    # ---------- Lookups ----------
    def add_branch(self, name: str, company_id: Optional[str] = None) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("INSERT INTO branches (company_id, name) VALUES (?, ?)", (company_id, name))
        bid = int(cur.lastrowid)
        conn.commit()
        conn.close()
        return bid

    def list_branches(self, company_id: Optional[str] = None) -> list[Branch]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT id, company_id, name FROM branches WHERE (? IS NULL OR company_id = ?) ORDER BY name",
            (company_id, company_id),
        )
        rows = cur.fetchall()
        conn.close()
        return [Branch(id=int(r[0]), company_id=r[1], name=str(r[2])) for r in rows]

    def add_category(self, name: str, company_id: Optional[str] = None) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("INSERT INTO categories (company_id, name) VALUES (?, ?)", (company_id, name))
        cid = int(cur.lastrowid)
        conn.commit()
        conn.close()
        return cid

    def list_categories(self, company_id: Optional[str] = None) -> list[Category]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT id, company_id, name FROM categories WHERE (? IS NULL OR company_id = ?) ORDER BY name",
            (company_id, company_id),
        )
        rows = cur.fetchall()
        conn.close()
        return [Category(id=int(r[0]), company_id=r[1], name=str(r[2])) for r in rows]

    # ---------- Products ----------
    def _insert_product(self, cur: sqlite3.Cursor, data: dict) -> int:
        cur.execute(
            """
            INSERT INTO products (code, name, description, cost, price, stock, unit, active,
                                  company_id, branch_id, category_id, min_stock)
            VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?, ?, ?)
            """,
            (
                data["code"],
                data["name"],
                data.get("description") or "",
                float(data["cost"]),
                float(data["price"]),
                int(data["stock"]),
                data.get("unit", "UN"),
                data.get("company_id"),
                data.get("branch_id"),
                data.get("category_id"),
                int(data.get("min_stock", 0)),
            ),
        )
        return int(cur.lastrowid)

    def create_product(self, data: dict) -> Product:
        conn = self._conn()
        cur = conn.cursor()
        pid = self._insert_product(cur, data)
        conn.commit()
        conn.close()
        product = self.get_product_by_id(pid)
        assert product is not None
        return product

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id=?", (int(product_id),))
        r = cur.fetchone()
        conn.close()
        return self._product(r) if r else None

    def get_product_by_code(self, code: str, company_id: Optional[str], branch_id: Optional[int]) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE code=? AND company_id IS ? AND branch_id IS ?
            ORDER BY id
            LIMIT 1
            """,
            (code, company_id, branch_id),
        )
        r = cur.fetchone()
        conn.close()
        return self._product(r) if r else None

    def list_products(self, company_id: Optional[str] = None, branch_id: Optional[int] = None) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE (? IS NULL OR company_id = ?) AND (? IS NULL OR branch_id = ?)
            ORDER BY name
            """,
            (company_id, company_id, branch_id, branch_id),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._product(r) for r in rows]

    def update_product_stock(self, product_id: int, stock: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("UPDATE products SET stock=? WHERE id=?", (int(stock), int(product_id)))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    def delete_product(self, product_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM products WHERE id=?", (int(product_id),))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    # ---------- Movements ----------
    def _insert_movement(self, cur: sqlite3.Cursor, data: dict) -> int:
        cur.execute(
            """
            INSERT INTO inventory_movements (
                product_id, company_id, branch_id, movement_type, quantity,
                stock_before, stock_after, reference, created_at, user_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(data["product_id"]),
                data.get("company_id"),
                data.get("branch_id"),
                data.get("movement_type", "entrada"),
                int(data["quantity"]),
                int(data["stock_before"]),
                int(data["stock_after"]),
                data.get("reference"),
                data.get("created_at") or now_iso(),
                data.get("user_id"),
            ),
        )
        return int(cur.lastrowid)

    def insert_movement(self, data: dict) -> int:
        conn = self._conn()
        cur = conn.cursor()
        mid = self._insert_movement(cur, data)
        conn.commit()
        conn.close()
        return mid

    def latest_movement(self, product_id: int) -> Optional[InventoryMovement]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {MOVEMENT_COLUMNS}
            FROM inventory_movements
            WHERE product_id=?
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (int(product_id),),
        )
        r = cur.fetchone()
        conn.close()
        return self._movement(r) if r else None

    def movements_for_product(self, product_id: int) -> list[InventoryMovement]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {MOVEMENT_COLUMNS} FROM inventory_movements WHERE product_id=? ORDER BY created_at, id",
            (int(product_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._movement(r) for r in rows]

    def delete_product_movements(self, product_id: int) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM inventory_movements WHERE product_id=?", (int(product_id),))
        n = int(cur.rowcount)
        conn.commit()
        conn.close()
        return n

    def purge_orphan_movements(self) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            DELETE FROM inventory_movements
            WHERE product_id NOT IN (SELECT id FROM products)
            """
        )
        n = int(cur.rowcount)
        conn.commit()
        conn.close()
        return n

    # ---------- Transactional writes ----------
    def create_product_with_movement(self, product: dict, movement: dict) -> int:
        conn = self._conn()
        cur = conn.cursor()
        try:
            pid = self._insert_product(cur, product)
            self._insert_movement(cur, {**movement, "product_id": pid})
            conn.commit()
            return pid
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def increment_stock_with_movement(self, product_id: int, quantity: int, movement: dict) -> tuple[int, int]:
        """Reads the ledger, bumps products.stock and appends the entry on one connection."""
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("BEGIN IMMEDIATE")
            cur.execute(
                """
                SELECT stock_after FROM inventory_movements
                WHERE product_id=?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (int(product_id),),
            )
            row = cur.fetchone()
            before = int(row[0]) if row else 0
            after = before + int(quantity)

            cur.execute("UPDATE products SET stock=? WHERE id=?", (after, int(product_id)))
            if cur.rowcount == 0:
                raise ValueError(f"Product not found: {product_id}")

            self._insert_movement(
                cur,
                {
                    **movement,
                    "product_id": int(product_id),
                    "quantity": int(quantity),
                    "stock_before": before,
                    "stock_after": after,
                },
            )
            conn.commit()
            return before, after
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
