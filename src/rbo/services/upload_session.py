from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Optional

from rbo.domain.models import ParsedLineItem, RowId, SupplierDocument

FALLBACK_DESCRIPTION = "Descripción del producto"


class UploadSession:
    """Supplier documents loaded for one import, plus user edits keyed by item name."""

    def __init__(self):
        self.documents: list[SupplierDocument] = []
        self.overrides: dict[str, dict] = {}

    @property
    def items(self) -> list[ParsedLineItem]:
        return [it for doc in self.documents for it in doc.items]

    def add_document(self, name: str, items: list[ParsedLineItem]) -> SupplierDocument:
        doc = SupplierDocument(id=uuid.uuid4().hex, name=name, items=list(items))
        self.documents.append(doc)
        return doc

    def remove_document(self, doc_id: str) -> bool:
        before = len(self.documents)
        self.documents = [d for d in self.documents if d.id != doc_id]
        if len(self.documents) == before:
            return False
        names = {it.name for it in self.items}
        self.overrides = {k: v for k, v in self.overrides.items() if k in names}
        return True

    def clear(self) -> None:
        self.documents = []
        self.overrides = {}

    def set_override(
        self,
        name: str,
        quantity: Optional[int] = None,
        description: Optional[str] = None,
        category_id: Optional[RowId] = None,
    ) -> None:
        ov = self.overrides.setdefault(name, {})
        if quantity is not None:
            ov["quantity"] = int(quantity)
        if description is not None:
            ov["description"] = description
        if category_id is not None:
            ov["category_id"] = category_id

    def effective_items(self) -> list[ParsedLineItem]:
        """
        Items as they will be imported. An override, or the parsed value,
        only counts when truthy; quantity finally falls back to 1.
        """
        out = []
        for it in self.items:
            ov = self.overrides.get(it.name, {})
            out.append(
                replace(
                    it,
                    quantity=ov.get("quantity") or it.quantity or 1,
                    description=ov.get("description") or it.description or FALLBACK_DESCRIPTION,
                    category_id=ov.get("category_id") or it.category_id,
                )
            )
        return out
