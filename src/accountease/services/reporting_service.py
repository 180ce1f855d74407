from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from accountease.application.events import EventChannel
from accountease.domain.dates import resolve_date
from accountease.domain.errors import InvalidReportTypeError
from accountease.domain.models import (
    EXPENSE,
    PURCHASE,
    REPORT_TYPES,
    SALE,
    Report,
    ReportBatch,
    ReportDataPoint,
    ReportDetails,
    ReportFilter,
    ReportLineItem,
    ReportSummary,
)
from accountease.domain.money import DEFAULT_CURRENCY, format_currency, to_number
from accountease.repositories.contracts import INVENTORY_ITEMS, PURCHASES, TRANSACTIONS, IdentityProvider, RecordStore
from accountease.services.auth_service import require_owner
from accountease.services.report_filter import ReportFilterState, naive_filter

log = logging.getLogger("accountease.reports")

TITLES = {
    "sales": "Sales Report",
    "expenses": "Expenses Report",
    "purchases": "Purchase Report",
    "inventory": "Inventory Report",
    "profit_loss": "Profit & Loss Statement",
}

DESCRIPTIONS = {
    "sales": "Overview of all sales transactions and revenue",
    "expenses": "Breakdown of all business expenses",
    "purchases": "Analysis of inventory purchases",
    "inventory": "Current stock levels and movement",
    "profit_loss": "Complete profit and loss analysis",
}

RECORD_DATE_FIELDS = ("date", "purchase_date", "created_at")
STOCK_DATE_FIELDS = ("updated_at", "created_at")


def _text(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _kind(doc: dict) -> str:
    return str(doc.get("type") or "").strip().lower()


def _record_amount(doc: dict) -> float:
    # zero or missing amount falls through to total_amount
    return to_number(doc.get("amount")) or to_number(doc.get("total_amount"))


def percent_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


class ReportingService:
    """Builds reports over owner-scoped records fetched in full.

    Each report makes a single fetch; the summary, the previous-period pass
    and the data points all read that same in-memory set. Malformed fields in
    a record only degrade that record (numbers read as 0, dates fall back to
    the creation timestamp and then to now).
    """

    def __init__(
        self,
        store: RecordStore,
        identity: IdentityProvider,
        filters: ReportFilterState,
        currency: str = DEFAULT_CURRENCY,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.identity = identity
        self.filters = filters
        self.currency = currency
        self.now = now
        self.generated: EventChannel[ReportBatch] = EventChannel("reports_generated")

    def subscribe(self, callback: Callable[[ReportBatch], None]) -> Callable[[], None]:
        return self.generated.subscribe(callback)

    def _money(self, amount: float) -> str:
        return format_currency(amount, self.currency)

    # ---------- Fetch ----------
    def _fetch(self, report_type: str, owner_id: str) -> list[dict]:
        if report_type == "sales":
            return self.store.fetch_where(TRANSACTIONS, owner_id, type=SALE)
        if report_type == "expenses":
            return self.store.fetch_where(TRANSACTIONS, owner_id, type=EXPENSE)
        if report_type == "purchases":
            return self.store.fetch_where(PURCHASES, owner_id)
        if report_type == "inventory":
            return self.store.fetch_where(INVENTORY_ITEMS, owner_id)
        if report_type == "profit_loss":
            return self.store.fetch_where(TRANSACTIONS, owner_id)
        raise InvalidReportTypeError(f"Invalid report type: {report_type}")

    # ---------- Summary ----------
    def _signed(self, report_type: str, doc: dict, amount: float) -> float:
        if report_type != "profit_loss":
            return amount
        kind = _kind(doc)
        if kind == SALE:
            return amount
        if kind in (EXPENSE, PURCHASE):
            return -amount
        return 0.0

    def summarize(self, report_type: str, docs: list[dict], report_filter: ReportFilter) -> ReportSummary:
        # count and total cover the whole fetched set; only the previous
        # period is restricted by date
        total = 0.0
        for doc in docs:
            if report_type == "inventory":
                total += to_number(doc.get("total_amount"))
            else:
                total += self._signed(report_type, doc, _record_amount(doc))
        count = len(docs)

        window = report_filter.date_range.previous()
        previous_total = 0.0
        for doc in docs:
            when = resolve_date(doc, RECORD_DATE_FIELDS, self.now)
            if window.contains(when):
                previous_total += self._signed(report_type, doc, _record_amount(doc))

        average = total / count if count else 0.0
        return ReportSummary(
            total_amount=total,
            count=count,
            average_amount=average,
            previous_period_change=percent_change(total, previous_total),
            formatted_total=self._money(total),
            formatted_average=self._money(average),
        )

    # ---------- Data points ----------
    def _line_items(self, raw: object) -> tuple:
        if not isinstance(raw, (list, tuple)):
            return ()
        items = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            price = to_number(entry.get("price", entry.get("unit_price")))
            items.append(
                ReportLineItem(
                    name=str(entry.get("name") or ""),
                    quantity=to_number(entry.get("quantity")),
                    price=price,
                    formatted_price=self._money(price),
                )
            )
        return tuple(items)

    def _single_line(self, name: str, quantity: float, price: float) -> tuple:
        return (ReportLineItem(name=name, quantity=quantity, price=price, formatted_price=self._money(price)),)

    def _stock_point(self, doc: dict) -> ReportDataPoint:
        doc_id = doc.get("id", "")
        name = _text(doc.get("name")) or f"Item #{doc_id}"
        current = to_number(doc.get("quantity"))
        unit_price = to_number(doc.get("unit_price"))
        value = to_number(doc.get("total_amount"))
        return ReportDataPoint(
            date=resolve_date(doc, STOCK_DATE_FIELDS, self.now),
            value=value,
            label=name,
            formatted_value=self._money(value),
            details=ReportDetails(
                category=_text(doc.get("category")) or "Uncategorized",
                initial_stock=to_number(doc.get("initial_quantity")),
                current_stock=current,
                items=self._single_line(name, current, unit_price),
                status="In Stock" if current > 0 else "Out of Stock",
            ),
        )

    def _record_point(self, report_type: str, doc: dict) -> ReportDataPoint:
        doc_id = doc.get("id", "")
        when = resolve_date(doc, RECORD_DATE_FIELDS, self.now)
        amount = _record_amount(doc)
        description = _text(doc.get("description"))
        category = _text(doc.get("category"))

        if report_type == "sales":
            return ReportDataPoint(
                date=when,
                value=amount,
                label=description or f"Sale #{doc_id}",
                formatted_value=self._money(amount),
                details=ReportDetails(
                    customer=_text(doc.get("customer_name")),
                    category=category or "Uncategorized",
                    items=self._line_items(doc.get("items")),
                    status=_text(doc.get("status")) or "Completed",
                ),
            )

        if report_type == "expenses":
            return ReportDataPoint(
                date=when,
                value=amount,
                label=description or f"Expense #{doc_id}",
                formatted_value=self._money(amount),
                details=ReportDetails(
                    category=category or "Uncategorized",
                    items=self._single_line(description or "Expense", 1, amount),
                    status=_text(doc.get("status")) or "Completed",
                ),
            )

        if report_type == "purchases":
            balance = amount - to_number(doc.get("payment_amount"))
            return ReportDataPoint(
                date=when,
                value=amount,
                label=description or f"Purchase #{doc_id}",
                formatted_value=self._money(amount),
                details=ReportDetails(
                    supplier=_text(doc.get("supplier_name")),
                    category=category or "Uncategorized",
                    items=self._line_items(doc.get("items")),
                    status="Pending" if balance > 0 else "Paid",
                ),
            )

        # profit_loss
        income = _kind(doc) == SALE
        value = amount if income else -amount
        heading = "Income" if income else "Expense"
        return ReportDataPoint(
            date=when,
            value=value,
            label=f"{heading} - {description or doc_id}",
            formatted_value=self._money(abs(value)),
            details=ReportDetails(
                category=category or heading,
                items=self._single_line(description or heading, 1, abs(value)),
                status=heading,
            ),
        )

    def data_points(self, report_type: str, docs: list[dict]) -> tuple:
        if report_type == "inventory":
            points = [self._stock_point(d) for d in docs]
        else:
            points = [self._record_point(report_type, d) for d in docs]
        return tuple(sorted(points, key=lambda p: p.date, reverse=True))

    # ---------- Entry points ----------
    def generate_report(self, report_type: str, report_filter: Optional[ReportFilter] = None) -> Report:
        if report_type not in REPORT_TYPES:
            raise InvalidReportTypeError(f"Invalid report type: {report_type}")
        owner_id = require_owner(self.identity)
        snapshot = naive_filter(report_filter or self.filters.current)

        docs =self._fetch(report_type, owner_id)
        summary = self.summarize(report_type, docs, snapshot)
        data = self.data_points(report_type, docs)
        created = self.now()
        log.info(
            "report_generated type=%s count=%s total=%.2f change=%.2f",
            report_type, summary.count, summary.total_amount, summary.previous_period_change,
        )
        return Report(
            id=f"{report_type}-{int(created.timestamp() * 1000)}",
            type=report_type,
            title=TITLES[report_type],
            description=DESCRIPTIONS[report_type],
            filter=snapshot,
            summary=summary,
            data=data,
            created_at=created,
            updated_at=created,
        )

    def generate_reports(
        self,
        report_filter: Optional[ReportFilter] = None,
        types: Iterable[str] = REPORT_TYPES,
    ) -> ReportBatch:
        """Generate several report types concurrently against one filter snapshot.

        A failing type is logged and listed in ``errors``; the others still
        complete. The finished batch is published to subscribers.
        """
        types = list(types)
        unknown = [t for t in types if t not in REPORT_TYPES]
        if unknown:
            raise InvalidReportTypeError(f"Invalid report type: {', '.join(unknown)}")
        require_owner(self.identity)
        snapshot = naive_filter(report_filter or self.filters.current)

        reports: dict[str, Report] = {}
        errors: dict[str, str] = {}
        with ThreadPoolExecutor(max_workers=max(len(types), 1)) as pool:
            futures = {pool.submit(self.generate_report, t, snapshot): t for t in types}
            for future in as_completed(futures):
                report_type = futures[future]
                try:
                    reports[report_type] = future.result()
                except Exception as exc:
                    log.exception("report_failed type=%s", report_type)
                    errors[report_type] = str(exc) or exc.__class__.__name__

        batch = ReportBatch(
            filter=snapshot,
            reports={t: reports[t] for t in types if t in reports},
            errors=errors,
        )
        self.generated.publish(batch)
        return batch

    # ---------- Export ----------
    def export_report_excel(self, report: Report, path: str) -> None:
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = report.title
        ws["A1"].font = Font(bold=True, size=14)
        ws["A2"] = report.description

        window = report.filter.date_range
        ws["A4"] = "Window"
        ws["B4"] = f"{window.start:%Y-%m-%d %H:%M}  ->  {window.end:%Y-%m-%d %H:%M} ({report.filter.timeframe})"

        summary = report.summary
        rows = [
            ("Records", summary.count, None),
            (f"Total {self.currency}", summary.total_amount, money),
            (f"Average {self.currency}", summary.average_amount, money),
            ("Change vs previous period %", round(summary.previous_period_change, 2), None),
        ]
        for i, (label, val, fmt) in enumerate(rows):
            r = 6 + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if fmt:
                fmt(ws[f"B{r}"])
        set_widths(ws, {"A": 30, "B": 44})

        ws2 = wb.create_sheet("Detail")
        ws2.append(["Date", "Label", f"Value {self.currency}", "Category", "Customer/Supplier", "Status"])
        bold_row(ws2, 1)
        for point in report.data:
            d = point.details
            ws2.append([
                point.date.strftime("%Y-%m-%d %H:%M:%S"),
                point.label,
                float(point.value),
                d.category or "",
                d.customer or d.supplier or "",
                d.status,
            ])
            money(ws2[f"C{ws2.max_row}"])

        ws2.freeze_panes = "A2"
        set_widths(ws2, {"A": 20, "B": 36, "C": 16, "D": 20, "E": 24, "F": 14})
        if ws2.max_row >= 2:
            ref = f"A1:{get_column_letter(6)}{ws2.max_row}"
            tab = Table(displayName="ReportDetail", ref=ref)
            tab.tableStyleInfo = TableStyleInfo(name="TableStyleMedium9", showRowStripes=True, showColumnStripes=False)
            ws2.add_table(tab)

        wb.save(path)
        log.info("report_exported type=%s path=%s rows=%s", report.type, path, len(report.data))
