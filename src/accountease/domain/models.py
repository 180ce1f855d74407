from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from accountease.domain.money import to_number

SALE = "sale"
EXPENSE = "expense"
PURCHASE = "purchase"

STOCK_IN = "in"
STOCK_OUT = "out"

REPORT_TYPES = ("sales", "expenses", "purchases", "inventory", "profit_loss")
TIMEFRAMES = ("daily", "weekly", "monthly", "yearly", "custom")


def _text(value: object, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _optional_text(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class StockItem:
    id: str
    owner_id: str
    name: str
    sku: str
    category: str
    initial_quantity: float
    initial_unit_price: float
    quantity: float
    unit_price: float
    total_amount: float
    description: Optional[str] = None
    date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "StockItem":
        return cls(
            id=_text(doc.get("id")),
            owner_id=_text(doc.get("owner_id")),
            name=_text(doc.get("name")),
            sku=_text(doc.get("sku")),
            category=_text(doc.get("category")),
            initial_quantity=to_number(doc.get("initial_quantity")),
            initial_unit_price=to_number(doc.get("initial_unit_price")),
            quantity=to_number(doc.get("quantity")),
            unit_price=to_number(doc.get("unit_price")),
            total_amount=to_number(doc.get("total_amount")),
            description=_optional_text(doc.get("description")),
            date=_optional_text(doc.get("date")),
            created_at=_optional_text(doc.get("created_at")),
            updated_at=_optional_text(doc.get("updated_at")),
        )

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


@dataclass(frozen=True)
class StockMovement:
    id: str
    owner_id: str
    item_id: str
    type: str
    quantity: float
    date: Optional[str] = None
    notes: Optional[str] = None
    reference: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "StockMovement":
        return cls(
            id=_text(doc.get("id")),
            owner_id=_text(doc.get("owner_id")),
            item_id=_text(doc.get("item_id")),
            type=_text(doc.get("type")),
            quantity=to_number(doc.get("quantity")),
            date=_optional_text(doc.get("date")),
            notes=_optional_text(doc.get("notes")),
            reference=_optional_text(doc.get("reference")),
            created_at=_optional_text(doc.get("created_at")),
        )

    @property
    def signed_quantity(self) -> float:
        return self.quantity if self.type == STOCK_IN else -self.quantity


@dataclass(frozen=True)
class MoneyRecord:
    """A sale, expense or purchase as seen by reporting and the dashboard."""

    id: str
    owner_id: str
    kind: str
    amount: float
    payment_amount: float = 0.0
    date: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    counterparty: Optional[str] = None
    status: Optional[str] = None
    payment_method: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], kind: Optional[str] = None) -> "MoneyRecord":
        kind = kind or _text(doc.get("type")).strip().lower()
        counterparty = doc.get("supplier_name") if kind == PURCHASE else doc.get("customer_name")
        return cls(
            id=_text(doc.get("id")),
            owner_id=_text(doc.get("owner_id")),
            kind=kind,
            amount=to_number(doc.get("amount")),
            payment_amount=to_number(doc.get("payment_amount")),
            date=_optional_text(doc.get("purchase_date") if kind == PURCHASE else doc.get("date")),
            description=_optional_text(doc.get("description")),
            category=_optional_text(doc.get("category")),
            counterparty=_optional_text(counterparty),
            status=_optional_text(doc.get("status")),
            payment_method=_optional_text(doc.get("payment_method")),
            created_at=_optional_text(doc.get("created_at")),
            updated_at=_optional_text(doc.get("updated_at")),
        )

    @property
    def balance(self) -> float:
        return self.amount - self.payment_amount


@dataclass(frozen=True)
class BankAccount:
    id: str
    owner_id: str
    bank_name: str
    account_number: str
    account_holder: str
    category: str
    branch: Optional[str] = None
    swift_code: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "BankAccount":
        return cls(
            id=_text(doc.get("id")),
            owner_id=_text(doc.get("owner_id")),
            bank_name=_text(doc.get("bank_name")),
            account_number=_text(doc.get("account_number")),
            account_holder=_text(doc.get("account_holder")),
            category=_text(doc.get("category")),
            branch=_optional_text(doc.get("branch")),
            swift_code=_optional_text(doc.get("swift_code")),
        )


@dataclass(frozen=True)
class Category:
    id: str
    owner_id: str
    name: str
    description: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Category":
        return cls(
            id=_text(doc.get("id")),
            owner_id=_text(doc.get("owner_id")),
            name=_text(doc.get("name")),
            description=_optional_text(doc.get("description")),
        )


@dataclass(frozen=True)
class Supplier:
    id: str
    owner_id: str
    name: str
    category_id: str
    description: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Supplier":
        return cls(
            id=_text(doc.get("id")),
            owner_id=_text(doc.get("owner_id")),
            name=_text(doc.get("name")),
            category_id=_text(doc.get("category_id")),
            description=_optional_text(doc.get("description")),
        )


# ---------- Reports ----------


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def duration(self):
        return self.end - self.start

    def previous(self) -> "DateRange":
        """Window of identical duration ending where this one starts."""
        return DateRange(start=self.start - self.duration, end=self.start)


@dataclass(frozen=True)
class ReportFilter:
    timeframe: str
    date_range: DateRange


@dataclass(frozen=True)
class ReportLineItem:
    name: str
    quantity: float
    price: float
    formatted_price: str


@dataclass(frozen=True)
class ReportDetails:
    status: str
    items: tuple = ()
    customer: Optional[str] = None
    supplier: Optional[str] = None
    category: Optional[str] = None
    initial_stock: Optional[float] = None
    current_stock: Optional[float] = None


@dataclass(frozen=True)
class ReportDataPoint:
    date: datetime
    value: float
    label: str
    formatted_value: str
    details: ReportDetails


@dataclass(frozen=True)
class ReportSummary:
    total_amount: float
    count: int
    average_amount: float
    previous_period_change: float
    formatted_total: str
    formatted_average: str


@dataclass(frozen=True)
class Report:
    id: str
    type: str
    title: str
    description: str
    filter: ReportFilter
    summary: ReportSummary
    data: tuple
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ReportBatch:
    filter: ReportFilter
    reports: dict = field(default_factory=dict)
    errors: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors
