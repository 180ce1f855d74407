import json
import logging
from pathlib import Path

import pytest

from conftest import fixed_now, make_store, signed_in

from accountease.application.container import build_container, build_store
from accountease.config import Settings, load_settings
from accountease.main import run
from accountease.repositories.contracts import INVENTORY_ITEMS
from accountease.repositories.firestore_store import FirestoreRestStore
from accountease.services.auth_service import AuthSession
from accountease.services.inventory_service import InventoryService
from accountease.services.transaction_service import TransactionService


def test_load_settings_reads_environment():
    settings = load_settings(
        {
            "ACCOUNTEASE_BACKEND": "Firestore",
            "ACCOUNTEASE_FIRESTORE_PROJECT": "acme-books",
            "ACCOUNTEASE_CURRENCY": "usd",
            "ACCOUNTEASE_LOG_LEVEL": "debug",
        }
    )

    assert settings.backend == "firestore"
    assert settings.firestore_project == "acme-books"
    assert settings.currency == "USD"
    assert settings.log_level == logging.DEBUG
    assert settings.db_path is None


def test_load_settings_defaults_and_rejects_unknown_backend():
    settings = load_settings({})
    assert settings == Settings()

    with pytest.raises(ValueError, match="ACCOUNTEASE_BACKEND"):
        load_settings({"ACCOUNTEASE_BACKEND": "mongo"})


def test_firestore_backend_needs_a_project():
    with pytest.raises(ValueError, match="FIRESTORE_PROJECT"):
        build_store(Settings(backend="firestore"), AuthSession())

    store = build_store(Settings(backend="firestore", firestore_project="acme-books"), AuthSession())
    assert isinstance(store, FirestoreRestStore)


def test_container_wires_services_to_one_store_and_session(tmp_path: Path):
    container = build_container(db_path=tmp_path / "app.db", now=fixed_now)
    container.session.sign_in("owner-1")

    container.transactions.add_sale(90, "Ann")

    report = container.reporting.generate_report("sales")
    assert report.summary.total_amount == 90
    assert container.dashboard.stats().total.sales == 90


def _cli_env(tmp_path: Path, monkeypatch):
    db = tmp_path / "cli.db"
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("ACCOUNTEASE_DB_PATH", str(db))
    monkeypatch.delenv("ACCOUNTEASE_BACKEND", raising=False)
    return make_store(tmp_path, name="cli.db")


def test_cli_report_prints_summaries(tmp_path: Path, monkeypatch, capsys):
    store = _cli_env(tmp_path, monkeypatch)
    TransactionService(store, signed_in(), now=fixed_now).add_sale(120, "Ann", date="2024-05-10 10:00:00")
    export = tmp_path / "out.xlsx"

    code = run(
        [
            "--owner", "owner-1",
            "report", "--type", "sales", "--timeframe", "custom",
            "--start", "2024-05-01", "--end", "2024-05-31",
            "--export", str(export),
        ]
    )

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["errors"] == {}
    (summary,) = out["reports"]
    assert summary["type"] == "sales"
    assert summary["count"] == 1
    assert summary["total"] == 120
    assert export.exists()


def test_cli_reports_domain_errors_with_exit_code(tmp_path: Path, monkeypatch, capsys):
    _cli_env(tmp_path, monkeypatch)

    code = run(["--owner", "owner-1", "report", "--timeframe", "custom"])

    assert code == 2
    assert "both start and end" in capsys.readouterr().err


def test_cli_reconcile_repairs_item_quantities(tmp_path: Path, monkeypatch, capsys):
    store = _cli_env(tmp_path, monkeypatch)
    inventory = InventoryService(store, signed_in(), now=fixed_now)
    item_id = inventory.create_item("Widget", "SKU-W", "Parts", 50, 20.0)
    inventory.record_movement(item_id, "out", 10)
    store.update(INVENTORY_ITEMS, item_id, {"quantity": 3, "total_amount": 60.0})

    code = run(["--owner", "owner-1", "reconcile"])

    assert code == 0
    assert capsys.readouterr().out.strip() == "SKU-W\t40\t800.00"
    assert inventory.get_item(item_id).quantity == 40


def test_cli_accepts_a_timezone_aware_custom_range(tmp_path: Path, monkeypatch, capsys):
    store = _cli_env(tmp_path, monkeypatch)
    TransactionService(store, signed_in(), now=fixed_now).add_sale(120, "Ann", date="2024-05-10 10:00:00")

    code = run(
        [
            "--owner", "owner-1",
            "report", "--timeframe", "custom",
            "--start", "2024-05-01T00:00:00+00:00", "--end", "2024-05-31T00:00:00+00:00",
        ]
    )

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["errors"] == {}
    assert len(out["reports"]) == 5


def test_cli_blank_owner_exits_with_error_code(tmp_path: Path, monkeypatch, capsys):
    _cli_env(tmp_path, monkeypatch)

    code = run(["--owner", " ", "reconcile"])

    assert code == 2
    assert "Owner id is required" in capsys.readouterr().err


def test_cli_rejects_range_bounds_without_custom_timeframe(tmp_path: Path, monkeypatch, capsys):
    _cli_env(tmp_path, monkeypatch)

    with pytest.raises(SystemExit) as exc:
        run(["--owner", "owner-1", "report", "--timeframe", "weekly", "--start", "2024-05-01"])

    assert exc.value.code == 2
    assert "--timeframe custom" in capsys.readouterr().err
