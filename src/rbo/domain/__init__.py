from .models import (
    Branch,
    Category,
    DocumentFormat,
    ImportReport,
    InventoryMovement,
    ParsedLineItem,
    PdfExtraction,
    PdfLine,
    Product,
    ReconcileOutcome,
    SupplierDocument,
)
from .errors import ValidationError, NotFoundError, ExtractionError, PersistenceError, ConfigError
from .results import Empty, ExtractionResult, ParseError, Parsed

__all__ = [
    "Branch",
    "Category",
    "DocumentFormat",
    "ImportReport",
    "InventoryMovement",
    "ParsedLineItem",
    "PdfExtraction",
    "PdfLine",
    "Product",
    "ReconcileOutcome",
    "SupplierDocument",
    "ValidationError",
    "NotFoundError",
    "ExtractionError",
    "PersistenceError",
    "ConfigError",
    "Empty",
    "ExtractionResult",
    "ParseError",
    "Parsed",
]
