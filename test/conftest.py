import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def new_repo(tmp_path: Path, name: str = "t.db", repo_cls=None):
    from rbo.repositories.sqlite_repo import SqliteRepository

    cls = repo_cls or SqliteRepository
    repo = cls(tmp_path / name)
    repo.init_db()
    return repo


def line_item(name: str, qty: int, cost: int = 1000, code=None, **kw):
    from rbo.domain.models import ParsedLineItem

    return ParsedLineItem(
        name=name,
        code=code,
        quantity=qty,
        base_cost=float(cost),
        tax_inclusive_cost=int(cost),
        description=kw.get("description", ""),
        category_id=kw.get("category_id"),
    )
