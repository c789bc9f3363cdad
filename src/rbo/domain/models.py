from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

# sqlite rowids locally, uuids on the hosted store
RowId = Union[int, str]


class DocumentFormat(str, Enum):
    XML_DTE = "xml"
    CSV = "csv"
    SPREADSHEET = "spreadsheet"
    PDF_TEXT = "pdf"


@dataclass(frozen=True)
class ParsedLineItem:
    name: str
    code: Optional[str]
    quantity: int
    base_cost: float
    tax_inclusive_cost: int
    description: str = ""
    category_id: Optional[RowId] = None


@dataclass(frozen=True)
class Product:
    id: RowId
    code: str
    name: str
    description: str
    cost: float
    price: float
    stock: int
    unit: str = "UN"
    active: int = 1
    company_id: Optional[str] = None
    branch_id: Optional[RowId] = None
    category_id: Optional[RowId] = None
    min_stock: int = 0


@dataclass(frozen=True)
class InventoryMovement:
    id: RowId
    product_id: RowId
    company_id: Optional[str]
    branch_id: Optional[RowId]
    movement_type: str
    quantity: int
    stock_before: int
    stock_after: int
    reference: Optional[str]
    created_at: str
    user_id: Optional[str]


@dataclass(frozen=True)
class Branch:
    id: RowId
    company_id: Optional[str]
    name: str


@dataclass(frozen=True)
class Category:
    id: RowId
    company_id: Optional[str]
    name: str


@dataclass
class SupplierDocument:
    id: str
    name: str
    items: list[ParsedLineItem] = field(default_factory=list)


@dataclass(frozen=True)
class PdfLine:
    serial: str
    quantity: int
    description: str
    total: Optional[int]


@dataclass(frozen=True)
class PdfExtraction:
    supplier: Optional[str]
    lines: list[PdfLine]
    grand_total: Optional[int]


@dataclass(frozen=True)
class ReconcileOutcome:
    item_name: str
    code: Optional[str]
    action: str  # created | incremented | failed
    product_id: Optional[RowId] = None
    stock_before: int = 0
    stock_after: int = 0
    error: Optional[str] = None


@dataclass
class ImportReport:
    outcomes: list[ReconcileOutcome] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for o in self.outcomes if o.action == "created")

    @property
    def incremented(self) -> int:
        return sum(1 for o in self.outcomes if o.action == "incremented")

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.action == "failed")
