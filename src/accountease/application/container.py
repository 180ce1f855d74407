from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from accountease.config import Settings, get_app_paths
from accountease.repositories.contracts import RecordStore
from accountease.repositories.firestore_store import FirestoreRestStore
from accountease.repositories.sqlite_store import SqliteDocumentStore
from accountease.services.auth_service import AuthSession
from accountease.services.catalog_service import CatalogService
from accountease.services.dashboard_service import DashboardService
from accountease.services.inventory_service import InventoryService
from accountease.services.purchase_service import PurchaseService
from accountease.services.report_filter import ReportFilterState
from accountease.services.reporting_service import ReportingService
from accountease.services.transaction_service import TransactionService


@dataclass(frozen=True)
class AppContainer:
    store: RecordStore
    session: AuthSession
    filters: ReportFilterState
    inventory: InventoryService
    transactions: TransactionService
    purchases: PurchaseService
    catalog: CatalogService
    dashboard: DashboardService
    reporting: ReportingService


def build_store(settings: Settings, session: AuthSession) -> RecordStore:
    if settings.backend == "firestore":
        if not settings.firestore_project:
            raise ValueError("ACCOUNTEASE_FIRESTORE_PROJECT is required for the firestore backend.")
        return FirestoreRestStore(
            settings.firestore_project,
            token_provider=lambda: session.current_token() or settings.firestore_token,
        )

    db_path = settings.db_path or get_app_paths().db_path
    store = SqliteDocumentStore(db_path)
    store.init_db()
    return store


def build_container(
    settings: Settings | None = None,
    db_path: Path | str | None = None,
    now: Callable[[], datetime] = datetime.now,
) -> AppContainer:
    settings = settings or Settings()
    if db_path is not None:
        settings = Settings(
            backend="sqlite",
            db_path=Path(db_path),
            currency=settings.currency,
            log_level=settings.log_level,
        )

    session = AuthSession()
    store = build_store(settings, session)
    filters = ReportFilterState(now=now)

    return AppContainer(
        store=store,
        session=session,
        filters=filters,
        inventory=InventoryService(store, session, now=now),
        transactions=TransactionService(store, session, now=now),
        purchases=PurchaseService(store, session, now=now),
        catalog=CatalogService(store, session, now=now),
        dashboard=DashboardService(store, session, now=now),
        reporting=ReportingService(store, session, filters, currency=settings.currency, now=now),
    )
