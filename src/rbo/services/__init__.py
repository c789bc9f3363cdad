from .intake_service import IntakeService
from .inventory_service import InventoryService
from .reconciliation_service import ReconciliationService
from .reporting_service import ReportingService
from .upload_session import UploadSession

__all__ = [
    "IntakeService",
    "InventoryService",
    "ReconciliationService",
    "ReportingService",
    "UploadSession",
]
