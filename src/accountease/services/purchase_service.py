from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from accountease.domain.dates import to_iso
from accountease.domain.errors import InvalidArgumentError, NotFoundError
from accountease.domain.models import PURCHASE, MoneyRecord
from accountease.repositories.contracts import PURCHASES, IdentityProvider, RecordStore
from accountease.services.auth_service import require_owner
from accountease.services.transaction_service import newest_first

log = logging.getLogger("accountease.purchases")

PAYMENT_METHODS = {"cash", "credit", "bank", "cheque"}


def _validate_amounts(amount: object, payment_amount: object) -> None:
    if amount is not None and (isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0):
        raise InvalidArgumentError("Amount must be > 0.")
    if payment_amount is not None and (
        isinstance(payment_amount, bool) or not isinstance(payment_amount, (int, float)) or payment_amount < 0
    ):
        raise InvalidArgumentError("Payment amount must be >= 0.")


class PurchaseService:
    """Supplier purchases with partial-payment tracking."""

    def __init__(self, store: RecordStore, identity: IdentityProvider, now: Callable[[], datetime] = datetime.now):
        self.store = store
        self.identity = identity
        self.now = now

    def add_purchase(
        self,
        supplier_name: str,
        amount: float,
        payment_amount: float = 0.0,
        purchase_date: Optional[str] = None,
        supplier_category: Optional[str] = None,
        description: str = "",
        payment_date: Optional[str] = None,
        payment_method: str = "cash",
        items: Optional[list] = None,
    ) -> str:
        supplier_name = (supplier_name or "").strip()
        if not supplier_name:
            raise InvalidArgumentError("Supplier name is required.")
        _validate_amounts(amount, payment_amount)
        if payment_method not in PAYMENT_METHODS:
            raise InvalidArgumentError(f"Unknown payment method: {payment_method}")
        owner_id = require_owner(self.identity)

        stamp = to_iso(self.now())
        purchase_id = self.store.insert(
            PURCHASES,
            {
                "supplier_name": supplier_name,
                "supplier_category": supplier_category,
                "category": supplier_category,
                "amount": amount,
                "payment_amount": payment_amount,
                "purchase_date": purchase_date or stamp,
                "payment_date": payment_date,
                "payment_method": payment_method,
                "description": description,
                "items": list(items or []),
                "owner_id": owner_id,
                "created_at": stamp,
                "updated_at": stamp,
            },
        )
        log.info("purchase_created id=%s amount=%s paid=%s", purchase_id, amount, payment_amount)
        return purchase_id

    def _owned(self, owner_id: str, purchase_id: str) -> dict:
        doc = self.store.get(PURCHASES, purchase_id)
        if not doc or doc.get("owner_id") != owner_id:
            raise NotFoundError("Purchase not found.")
        return doc

    def update_purchase(self, purchase_id: str, changes: dict) -> MoneyRecord:
        changes = dict(changes)
        for key in ("id", "owner_id", "created_at"):
            if key in changes:
                raise InvalidArgumentError(f"Field can not be edited: {key}")
        _validate_amounts(changes.get("amount"), changes.get("payment_amount"))
        owner_id = require_owner(self.identity)

        doc = self._owned(owner_id, purchase_id)
        changes["updated_at"] = to_iso(self.now())
        self.store.update(PURCHASES, purchase_id, changes)
        log.info("purchase_updated id=%s fields=%s", purchase_id, ",".join(sorted(changes)))
        return MoneyRecord.from_document({**doc, **changes}, kind=PURCHASE)

    def delete_purchase(self, purchase_id: str) -> None:
        owner_id = require_owner(self.identity)
        self._owned(owner_id, purchase_id)
        self.store.delete(PURCHASES, purchase_id)
        log.info("purchase_deleted id=%s", purchase_id)

    def list_purchases(self) -> list[MoneyRecord]:
        owner_id = require_owner(self.identity)
        docs = self.store.fetch_where(PURCHASES, owner_id)
        return newest_first(MoneyRecord.from_document(d, kind=PURCHASE) for d in docs)

    def outstanding_balance(self) -> float:
        return sum(max(p.balance, 0.0) for p in self.list_purchases())
