from .models import (
    BankAccount,
    Category,
    DateRange,
    MoneyRecord,
    Report,
    ReportBatch,
    ReportDataPoint,
    ReportFilter,
    ReportSummary,
    StockItem,
    StockMovement,
    Supplier,
)
from .errors import (
    AppError,
    InvalidArgumentError,
    InvalidReportTypeError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteOperationError,
)

__all__ = [
    "BankAccount",
    "Category",
    "DateRange",
    "MoneyRecord",
    "Report",
    "ReportBatch",
    "ReportDataPoint",
    "ReportFilter",
    "ReportSummary",
    "StockItem",
    "StockMovement",
    "Supplier",
    "AppError",
    "InvalidArgumentError",
    "InvalidReportTypeError",
    "NotAuthenticatedError",
    "NotFoundError",
    "RemoteOperationError",
]
