from datetime import datetime
from pathlib import Path

import pytest

from conftest import NOW, fixed_now, make_store, signed_in

from accountease.domain.errors import InvalidReportTypeError, NotAuthenticatedError
from accountease.domain.models import DateRange, ReportFilter
from accountease.repositories.contracts import TRANSACTIONS
from accountease.services.auth_service import AuthSession
from accountease.services.inventory_service import InventoryService
from accountease.services.purchase_service import PurchaseService
from accountease.services.report_filter import ReportFilterState, range_for_timeframe
from accountease.services.reporting_service import ReportingService, percent_change
from accountease.services.transaction_service import TransactionService


def _services(tmp_path: Path, identity=None):
    store = make_store(tmp_path)
    identity = identity or signed_in()
    filters = ReportFilterState(now=fixed_now)
    reporting = ReportingService(store, identity, filters, currency="LKR", now=fixed_now)
    return store, identity, reporting


def _monthly():
    return ReportFilter(timeframe="monthly", date_range=range_for_timeframe("monthly", NOW))


def test_empty_report_has_zero_summary(tmp_path: Path):
    _store, _identity, reporting = _services(tmp_path)

    report = reporting.generate_report("sales")

    assert report.data == ()
    assert report.summary.count == 0
    assert report.summary.total_amount == 0
    assert report.summary.average_amount == 0
    assert report.summary.previous_period_change == 0
    assert report.summary.formatted_total == "LKR 0.00"


def test_sales_report_totals_and_orders_newest_first(tmp_path: Path):
    store, identity, reporting = _services(tmp_path)
    tx = TransactionService(store, identity, now=fixed_now)
    tx.add_sale(100, "Ann", description="first", date="2024-05-18 09:00:00")
    tx.add_sale(300, "Cid", description="third", date="2024-05-20 09:00:00")
    tx.add_sale(200, "Bo", description="second", date="2024-05-19 09:00:00")
    tx.add_expense(999, "Rent", "Premises", date="2024-05-19 09:00:00")

    report = reporting.generate_report("sales", _monthly())

    assert report.type == "sales"
    assert report.title == "Sales Report"
    assert report.id.startswith("sales-")
    assert report.summary.count == 3
    assert report.summary.total_amount == 600
    assert report.summary.average_amount == 200
    assert report.summary.previous_period_change == 0
    assert [p.label for p in report.data] == ["third", "second", "first"]
    assert [p.value for p in report.data] == [300, 200, 100]
    assert report.data[0].details.customer == "Cid"
    assert report.data[0].details.status == "completed"


def test_profit_and_loss_nets_income_against_expenses(tmp_path: Path):
    store, identity, reporting = _services(tmp_path)
    tx = TransactionService(store, identity, now=fixed_now)
    tx.add_sale(1000, "Ann", description="Consulting", date="2024-05-10 09:00:00")
    tx.add_expense(300, "Rent", "Premises", date="2024-05-11 09:00:00")

    report = reporting.generate_report("profit_loss", _monthly())

    assert report.summary.total_amount == 700
    assert report.summary.count == 2
    assert report.summary.average_amount == 350
    rent, consulting = report.data
    assert rent.label == "Expense - Rent"
    assert rent.value == -300
    assert rent.formatted_value == "LKR 300.00"
    assert consulting.label == "Income - Consulting"
    assert consulting.details.status == "Income"


def test_previous_period_change_compares_with_window_before_range(tmp_path: Path):
    store, identity, reporting = _services(tmp_path)
    tx = TransactionService(store, identity, now=fixed_now)
    tx.add_sale(100, "Ann", date="2024-05-05 09:00:00")
    tx.add_sale(300, "Bo", date="2024-05-15 09:00:00")
    custom = ReportFilter(
        timeframe="custom",
        date_range=DateRange(start=datetime(2024, 5, 10), end=datetime(2024, 5, 20)),
    )

    report = reporting.generate_report("sales", custom)

    # count and total span every record; only the comparison is windowed
    assert report.summary.count == 2
    assert report.summary.total_amount == 400
    assert report.summary.previous_period_change == pytest.approx(300.0)
    assert report.filter == custom


def test_percent_change_is_zero_without_previous_total():
    assert percent_change(500, 0) == 0
    assert percent_change(150, 100) == pytest.approx(50.0)
    assert percent_change(50, -100) == pytest.approx(-150.0)


def test_purchase_status_follows_outstanding_balance(tmp_path: Path):
    store, identity, reporting = _services(tmp_path)
    purchases = PurchaseService(store, identity, now=fixed_now)
    purchases.add_purchase("Acme", 500, payment_amount=200, purchase_date="2024-05-02", description="partly paid")
    purchases.add_purchase("Bolt Co", 300, payment_amount=300, purchase_date="2024-05-01", description="settled")

    report = reporting.generate_report("purchases", _monthly())

    by_label = {p.label: p.details for p in report.data}
    assert by_label["partly paid"].status == "Pending"
    assert by_label["partly paid"].supplier == "Acme"
    assert by_label["settled"].status == "Paid"
    assert report.summary.total_amount == 800


def test_inventory_report_reads_current_stock(tmp_path: Path):
    store, identity, reporting = _services(tmp_path)
    clock = [datetime(2024, 5, 1, 9, 0, 0)]
    inventory = InventoryService(store, identity, now=lambda: clock[0])
    item_id = inventory.create_item("Widget", "SKU-W", "Parts", 50, 20.0, date="2024-04-01")
    bolt_id = inventory.create_item("Bolt", "SKU-B", "Parts", 5, 2.0)
    inventory.record_movement(bolt_id, "out", 5)
    clock[0] = datetime(2024, 5, 18, 15, 30, 0)
    inventory.record_movement(item_id, "out", 10)

    report = reporting.generate_report("inventory", _monthly())

    assert report.summary.total_amount == 800
    point, emptied = report.data
    assert point.label == "Widget"
    assert point.date == datetime(2024, 5, 18, 15, 30, 0)
    assert point.value == 800
    assert point.details.initial_stock == 50
    assert point.details.current_stock == 40
    assert point.details.status == "In Stock"
    (line,) = point.details.items
    assert line.quantity == 40
    assert line.price == 20.0
    assert line.formatted_price == "LKR 20.00"

    assert emptied.label == "Bolt"
    assert emptied.date == datetime(2024, 5, 1, 9, 0, 0)
    assert emptied.details.current_stock == 0
    assert emptied.details.status == "Out of Stock"


def test_expenses_report_has_one_line_item_per_expense(tmp_path: Path):
    store, identity, reporting = _services(tmp_path)
    tx = TransactionService(store, identity, now=fixed_now)
    tx.add_expense(45, "Printer paper", "Office", date="2024-05-12 10:00:00")
    unnamed_id = store.insert(
        TRANSACTIONS, {"type": "expense", "owner_id": "owner-1", "amount": 80, "date": "2024-05-11 10:00:00"}
    )

    report = reporting.generate_report("expenses", _monthly())

    assert report.title == "Expenses Report"
    assert report.summary.total_amount == 125
    paper, unnamed = report.data

    assert paper.label == "Printer paper"
    assert paper.details.category == "Office"
    assert paper.details.status == "Completed"
    (line,) = paper.details.items
    assert (line.name, line.quantity, line.price) == ("Printer paper", 1, 45)
    assert line.formatted_price == "LKR 45.00"

    assert unnamed.label == f"Expense #{unnamed_id}"
    assert unnamed.details.category == "Uncategorized"
    assert unnamed.details.status == "Completed"
    (line,) = unnamed.details.items
    assert (line.name, line.quantity, line.price) == ("Expense", 1, 80)


def test_malformed_records_degrade_instead_of_failing(tmp_path: Path):
    store, _identity, reporting = _services(tmp_path)
    store.insert(
        TRANSACTIONS,
        {"type": "sale", "owner_id": "owner-1", "amount": "abc", "date": "not a date", "created_at": "2024-05-01 10:00:00"},
    )
    store.insert(TRANSACTIONS, {"type": "sale", "owner_id": "owner-1", "amount": "250"})

    report = reporting.generate_report("sales", _monthly())

    assert report.summary.count == 2
    assert report.summary.total_amount == 250
    newest, oldest = report.data
    assert newest.date == NOW
    assert newest.details.category == "Uncategorized"
    assert newest.details.status == "Completed"
    assert oldest.date == datetime(2024, 5, 1, 10, 0, 0)
    assert oldest.value == 0


def test_records_of_other_owners_are_excluded(tmp_path: Path):
    store, _identity, reporting = _services(tmp_path)
    TransactionService(store, signed_in("owner-2"), now=fixed_now).add_sale(75, "Eve")

    assert reporting.generate_report("sales").summary.count == 0


def test_unknown_report_type_is_rejected(tmp_path: Path):
    _store, _identity, reporting = _services(tmp_path)

    with pytest.raises(InvalidReportTypeError, match="Invalid report type: taxes"):
        reporting.generate_report("taxes")


def test_report_needs_signed_in_owner(tmp_path: Path):
    _store, _identity, reporting = _services(tmp_path, identity=AuthSession())

    with pytest.raises(NotAuthenticatedError):
        reporting.generate_report("sales")
