from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from accountease.domain.dates import parse_timestamp, to_iso
from accountease.domain.errors import InvalidArgumentError, NotFoundError
from accountease.domain.models import EXPENSE, SALE, MoneyRecord
from accountease.repositories.contracts import TRANSACTIONS, IdentityProvider, RecordStore
from accountease.services.auth_service import require_owner

log = logging.getLogger("accountease.transactions")

PAYMENT_METHODS = {"cash", "card", "bank_transfer", "credit", "cheque"}
SALE_STATUSES = {"completed", "pending", "cancelled"}


def _positive(value: object, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise InvalidArgumentError(f"{label} must be > 0.")
    return value


def newest_first(records: Iterable[MoneyRecord]) -> list[MoneyRecord]:
    return sorted(
        records,
        key=lambda r: parse_timestamp(r.date) or parse_timestamp(r.created_at) or datetime.min,
        reverse=True,
    )


class TransactionService:
    """Sales and expenses, stored together and told apart by ``type``."""

    def __init__(self, store: RecordStore, identity: IdentityProvider, now: Callable[[], datetime] = datetime.now):
        self.store = store
        self.identity = identity
        self.now = now

    def add_sale(
        self,
        amount: float,
        customer_name: str,
        description: str = "",
        date: Optional[str] = None,
        category: Optional[str] = None,
        payment_method: str = "cash",
        status: str = "completed",
        quantity: Optional[float] = None,
        unit_price: Optional[float] = None,
        items: Optional[list] = None,
        notes: Optional[str] = None,
    ) -> str:
        """
        items: [{name, quantity, price}] as shown on the invoice; optional.
        """
        _positive(amount, "Amount")
        customer_name = (customer_name or "").strip()
        if not customer_name:
            raise InvalidArgumentError("Customer name is required.")
        if payment_method not in PAYMENT_METHODS:
            raise InvalidArgumentError(f"Unknown payment method: {payment_method}")
        if status not in SALE_STATUSES:
            raise InvalidArgumentError(f"Unknown sale status: {status}")

        return self._add(
            SALE,
            {
                "amount": amount,
                "customer_name": customer_name,
                "description": description,
                "date": date,
                "category": category,
                "payment_method": payment_method,
                "status": status,
                "quantity": quantity,
                "unit_price": unit_price,
                "items": list(items or []),
                "notes": notes,
            },
        )

    def add_expense(
        self,
        amount: float,
        description: str,
        category: str,
        date: Optional[str] = None,
        payment_method: str = "cash",
        payment_amount: Optional[float] = None,
        bank_account_id: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> str:
        _positive(amount, "Amount")
        if not (category or "").strip():
            raise InvalidArgumentError("Category is required.")
        if payment_method not in PAYMENT_METHODS:
            raise InvalidArgumentError(f"Unknown payment method: {payment_method}")
        if payment_amount is not None and (isinstance(payment_amount, bool) or payment_amount < 0):
            raise InvalidArgumentError("Payment amount must be >= 0.")

        return self._add(
            EXPENSE,
            {
                "amount": amount,
                "description": description,
                "category": category.strip(),
                "date": date,
                "payment_method": payment_method,
                "payment_amount": amount if payment_amount is None else payment_amount,
                "bank_account_id": bank_account_id,
                "currency": currency,
            },
        )

    def _add(self, kind: str, fields: dict) -> str:
        owner_id = require_owner(self.identity)
        stamp = to_iso(self.now())
        record = {**fields, "type": kind, "owner_id": owner_id, "created_at": stamp, "updated_at": stamp}
        record["date"] = record.get("date") or stamp
        record_id = self.store.insert(TRANSACTIONS, record)
        log.info("transaction_created id=%s type=%s amount=%s", record_id, kind, fields["amount"])
        return record_id

    def _owned(self, owner_id: str, record_id: str) -> dict:
        doc = self.store.get(TRANSACTIONS, record_id)
        if not doc or doc.get("owner_id") != owner_id:
            raise NotFoundError("Transaction not found.")
        return doc

    def update_transaction(self, record_id: str, changes: dict) -> MoneyRecord:
        changes = dict(changes)
        for key in ("id", "owner_id", "type", "created_at"):
            if key in changes:
                raise InvalidArgumentError(f"Field can not be edited: {key}")
        if "amount" in changes:
            _positive(changes["amount"], "Amount")
        owner_id = require_owner(self.identity)

        doc = self._owned(owner_id, record_id)
        changes["updated_at"] = to_iso(self.now())
        self.store.update(TRANSACTIONS, record_id, changes)
        log.info("transaction_updated id=%s fields=%s", record_id, ",".join(sorted(changes)))
        return MoneyRecord.from_document({**doc, **changes})

    def delete_transaction(self, record_id: str) -> None:
        owner_id = require_owner(self.identity)
        self._owned(owner_id, record_id)
        self.store.delete(TRANSACTIONS, record_id)
        log.info("transaction_deleted id=%s", record_id)

    def list_sales(self) -> list[MoneyRecord]:
        return self._list(type=SALE)

    def list_expenses(self) -> list[MoneyRecord]:
        return self._list(type=EXPENSE)

    def list_transactions(self) -> list[MoneyRecord]:
        return self._list()

    def _list(self, **filters) -> list[MoneyRecord]:
        owner_id = require_owner(self.identity)
        docs = self.store.fetch_where(TRANSACTIONS, owner_id, **filters)
        return newest_first(MoneyRecord.from_document(d) for d in docs)
