from .auth_service import AuthSession
from .catalog_service import CatalogService
from .dashboard_service import DashboardService
from .inventory_service import InventoryService
from .purchase_service import PurchaseService
from .report_filter import ReportFilterState
from .reporting_service import ReportingService
from .transaction_service import TransactionService

__all__ = [
    "AuthSession",
    "CatalogService",
    "DashboardService",
    "InventoryService",
    "PurchaseService",
    "ReportFilterState",
    "ReportingService",
    "TransactionService",
]
