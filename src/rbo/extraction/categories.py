from __future__ import annotations

import unicodedata
from typing import Iterable, Optional

from rbo.domain.models import Category


def normalize_label(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", (value or "").strip())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def match_category(label: str, categories: Iterable[Category]) -> Optional[Category]:
    """Exact match ignoring case and accents ("bebídas" == "Bebidas")."""
    wanted = normalize_label(label)
    if not wanted:
        return None
    for cat in categories:
        if normalize_label(cat.name) == wanted:
            return cat
    return None
