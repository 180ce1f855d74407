from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from accountease.domain.dates import to_iso
from accountease.domain.errors import InvalidArgumentError, NotFoundError
from accountease.domain.models import BankAccount, Category, Supplier
from accountease.repositories.contracts import (
    BANK_ACCOUNTS,
    EXPENSE_CATEGORIES,
    INVENTORY_CATEGORIES,
    SUPPLIER_CATEGORIES,
    SUPPLIERS,
    IdentityProvider,
    RecordStore,
)
from accountease.services.auth_service import require_owner

log = logging.getLogger(__name__)

CATEGORY_COLLECTIONS = {
    "expense": EXPENSE_CATEGORIES,
    "supplier": SUPPLIER_CATEGORIES,
    "inventory": INVENTORY_CATEGORIES,
}


def _required(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidArgumentError(f"{label} is required.")
    return value


class CatalogService:
    """Reference data: bank accounts, categories and suppliers."""

    def __init__(self, store: RecordStore, identity: IdentityProvider, now: Callable[[], datetime] = datetime.now):
        self.store = store
        self.identity = identity
        self.now = now

    def _insert(self, collection: str, fields: dict) -> str:
        owner_id = require_owner(self.identity)
        stamp = to_iso(self.now())
        record_id = self.store.insert(
            collection,
            {**fields, "owner_id": owner_id, "created_at": stamp, "updated_at": stamp},
        )
        log.info("catalog_created collection=%s id=%s", collection, record_id)
        return record_id

    def _delete(self, collection: str, record_id: str) -> None:
        owner_id = require_owner(self.identity)
        doc = self.store.get(collection, record_id)
        if not doc or doc.get("owner_id") != owner_id:
            raise NotFoundError("Record not found.")
        self.store.delete(collection, record_id)
        log.info("catalog_deleted collection=%s id=%s", collection, record_id)

    def _list(self, collection: str) -> list[dict]:
        owner_id = require_owner(self.identity)
        return self.store.fetch_where(collection, owner_id)

    # ---------- Bank accounts ----------
    def add_bank_account(
        self,
        bank_name: str,
        account_number: str,
        account_holder: str,
        category: str,
        branch: Optional[str] = None,
        swift_code: Optional[str] = None,
    ) -> str:
        return self._insert(
            BANK_ACCOUNTS,
            {
                "bank_name": _required(bank_name, "Bank name"),
                "account_number": _required(account_number, "Account number"),
                "account_holder": _required(account_holder, "Account holder"),
                "category": _required(category, "Account category"),
                "branch": branch,
                "swift_code": swift_code,
            },
        )

    def list_bank_accounts(self, categories: Optional[set[str]] = None) -> list[BankAccount]:
        accounts = [BankAccount.from_document(d) for d in self._list(BANK_ACCOUNTS)]
        if categories:
            accounts = [a for a in accounts if a.category in categories]
        return sorted(accounts, key=lambda a: (a.bank_name.lower(), a.account_number))

    def delete_bank_account(self, account_id: str) -> None:
        self._delete(BANK_ACCOUNTS, account_id)

    # ---------- Categories ----------
    def _category_collection(self, kind: str) -> str:
        try:
            return CATEGORY_COLLECTIONS[kind]
        except KeyError:
            raise InvalidArgumentError(f"Unknown category kind: {kind}") from None

    def add_category(self, kind: str, name: str, description: Optional[str] = None) -> str:
        collection = self._category_collection(kind)
        return self._insert(collection, {"name": _required(name, "Category name"), "description": description})

    def list_categories(self, kind: str) -> list[Category]:
        collection = self._category_collection(kind)
        return sorted((Category.from_document(d) for d in self._list(collection)), key=lambda c: c.name.lower())

    def delete_category(self, kind: str, category_id: str) -> None:
        self._delete(self._category_collection(kind), category_id)

    # ---------- Suppliers ----------
    def add_supplier(self, name: str, category_id: str, description: Optional[str] = None) -> str:
        return self._insert(
            SUPPLIERS,
            {
                "name": _required(name, "Supplier name"),
                "category_id": _required(category_id, "Supplier category"),
                "description": description,
            },
        )

    def list_suppliers(self, category_id: Optional[str] = None) -> list[Supplier]:
        suppliers = [Supplier.from_document(d) for d in self._list(SUPPLIERS)]
        if category_id:
            suppliers = [s for s in suppliers if s.category_id == category_id]
        return sorted(suppliers, key=lambda s: s.name.lower())

    def delete_supplier(self, supplier_id: str) -> None:
        self._delete(SUPPLIERS, supplier_id)
