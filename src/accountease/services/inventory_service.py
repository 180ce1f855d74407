from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from accountease.domain.dates import parse_timestamp, to_iso
from accountease.domain.errors import InvalidArgumentError, NotFoundError
from accountease.domain.models import STOCK_IN, STOCK_OUT, StockItem, StockMovement
from accountease.domain.money import to_number
from accountease.repositories.contracts import INVENTORY_ITEMS, INVENTORY_TRANSACTIONS, IdentityProvider, RecordStore
from accountease.repositories.unit_of_work import StockMovementUnitOfWork
from accountease.services.auth_service import require_owner

log = logging.getLogger("accountease.inventory")

_PROTECTED = {"id", "owner_id", "initial_quantity", "initial_unit_price", "total_amount", "created_at"}


def _amount(value: object, label: str, *, allow_zero: bool = True) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(f"{label} must be a number.")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidArgumentError(f"{label} must be {'>= 0' if allow_zero else '> 0'}.")
    return value


class InventoryService:
    """Stock items and the movement ledger that drives their quantities.

    ``total_amount`` always equals ``quantity * unit_price`` after a quantity
    or price mutation. Quantities are never clamped, so an ``out`` movement
    larger than the stock on hand leaves a negative quantity.
    """

    def __init__(
        self,
        store: RecordStore,
        identity: IdentityProvider,
        now: Callable[[], datetime] = datetime.now,
        uow_factory: Callable[[], StockMovementUnitOfWork] | None = None,
    ):
        self.store = store
        self.identity = identity
        self.now = now
        self.uow_factory = uow_factory or (lambda: StockMovementUnitOfWork(store))

    def _owned_item(self, owner_id: str, item_id: str) -> dict:
        doc = self.store.get(INVENTORY_ITEMS, item_id)
        if not doc or doc.get("owner_id") != owner_id:
            raise NotFoundError("Inventory item not found.")
        return doc

    def create_item(
        self,
        name: str,
        sku: str,
        category: str,
        quantity: float,
        unit_price: float,
        description: Optional[str] = None,
        date: Optional[str] = None,
    ) -> str:
        name = (name or "").strip()
        sku = (sku or "").strip()
        if not name or not sku:
            raise InvalidArgumentError("Name and SKU are required.")
        quantity = _amount(quantity, "Quantity")
        unit_price = _amount(unit_price, "Unit price")
        owner_id = require_owner(self.identity)

        stamp = to_iso(self.now())
        item_id = self.store.insert(
            INVENTORY_ITEMS,
            {
                "name": name,
                "sku": sku,
                "category": (category or "").strip(),
                "description": description,
                "initial_quantity": quantity,
                "initial_unit_price": unit_price,
                "quantity": quantity,
                "unit_price": unit_price,
                "total_amount": quantity * unit_price,
                "date": date or stamp,
                "owner_id": owner_id,
                "created_at": stamp,
                "updated_at": stamp,
            },
        )
        log.info("item_created item_id=%s sku=%s qty=%s unit_price=%s", item_id, sku, quantity, unit_price)
        return item_id

    def get_item(self, item_id: str) -> StockItem:
        owner_id = require_owner(self.identity)
        return StockItem.from_document(self._owned_item(owner_id, item_id))

    def list_items(self) -> list[StockItem]:
        owner_id = require_owner(self.identity)
        items = [StockItem.from_document(d) for d in self.store.fetch_where(INVENTORY_ITEMS, owner_id)]
        return sorted(items, key=lambda i: i.name.lower())

    def low_stock_items(self) -> list[StockItem]:
        return [i for i in self.list_items() if not i.in_stock]

    def update_item(self, item_id: str, changes: dict) -> StockItem:
        """Apply a partial edit.

        ``total_amount`` is recomputed only when ``quantity`` or ``unit_price``
        is part of the edit, taking the missing half of the pair from the stored
        item. Any other edit leaves ``total_amount`` exactly as stored.
        """
        changes = dict(changes)
        blocked = sorted(_PROTECTED.intersection(changes))
        if blocked:
            raise InvalidArgumentError(f"Fields can not be edited: {', '.join(blocked)}")
        if "quantity" in changes:
            _amount(changes["quantity"], "Quantity")
        if "unit_price" in changes:
            _amount(changes["unit_price"], "Unit price")
        owner_id = require_owner(self.identity)

        doc = self._owned_item(owner_id, item_id)
        if "quantity" in changes or "unit_price" in changes:
            quantity = changes.get("quantity", to_number(doc.get("quantity")))
            unit_price = changes.get("unit_price", to_number(doc.get("unit_price")))
            changes["total_amount"] = quantity * unit_price
        changes["updated_at"] = to_iso(self.now())

        self.store.update(INVENTORY_ITEMS, item_id, changes)
        log.info("item_updated item_id=%s fields=%s", item_id, ",".join(sorted(changes)))
        return StockItem.from_document({**doc, **changes})

    def delete_item(self, item_id: str) -> None:
        # movements that reference the item are kept
        owner_id = require_owner(self.identity)
        self._owned_item(owner_id, item_id)
        self.store.delete(INVENTORY_ITEMS, item_id)
        log.info("item_deleted item_id=%s", item_id)

    def record_movement(
        self,
        item_id: str,
        direction: str,
        quantity: float,
        date: Optional[str] = None,
        notes: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> StockItem:
        if direction not in (STOCK_IN, STOCK_OUT):
            raise InvalidArgumentError("Movement type must be 'in' or 'out'.")
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or quantity <= 0:
            raise InvalidArgumentError("Movement quantity must be > 0.")
        if not float(quantity).is_integer():
            raise InvalidArgumentError("Movement quantity must be a whole number.")
        owner_id = require_owner(self.identity)

        doc = self._owned_item(owner_id, item_id)
        delta = quantity if direction == STOCK_IN else -quantity
        new_quantity = to_number(doc.get("quantity")) + delta
        unit_price = to_number(doc.get("unit_price"))
        stamp = to_iso(self.now())
        changes = {
            "quantity": new_quantity,
            "total_amount": new_quantity * unit_price,
            "updated_at": stamp,
        }

        with self.uow_factory() as uow:
            movement_id = uow.add_movement(
                {
                    "item_id": item_id,
                    "type": direction,
                    "quantity": quantity,
                    "date": date or stamp,
                    "notes": notes,
                    "reference": reference,
                    "owner_id": owner_id,
                    "created_at": stamp,
                    "updated_at": stamp,
                }
            )
            uow.update_item(item_id, changes, previous=doc)

        log.info(
            "movement_recorded movement_id=%s item_id=%s delta=%s qty_after=%s",
            movement_id, item_id, delta, new_quantity,
        )
        return StockItem.from_document({**doc, **changes})

    def list_movements(self, item_id: Optional[str] = None) -> list[StockMovement]:
        owner_id = require_owner(self.identity)
        filters = {"item_id": item_id} if item_id else {}
        docs = self.store.fetch_where(INVENTORY_TRANSACTIONS, owner_id, **filters)
        movements = [StockMovement.from_document(d) for d in docs]
        return sorted(
            movements,
            key=lambda m: parse_timestamp(m.date) or parse_timestamp(m.created_at) or datetime.min,
            reverse=True,
        )

    def reconcile_item(self, item_id: str) -> StockItem:
        """Rebuild an item's quantity from its movement history.

        Expected quantity is ``initial_quantity`` plus every signed movement.
        A direct quantity edit is not part of the history, so reconciling an
        item edited that way restores the history value.
        """
        owner_id = require_owner(self.identity)
        doc = self._owned_item(owner_id, item_id)
        item = StockItem.from_document(doc)
        expected = item.initial_quantity + sum(m.signed_quantity for m in self.list_movements(item_id))
        if expected == item.quantity and item.total_amount == expected * item.unit_price:
            return item

        changes = {
            "quantity": expected,
            "total_amount": expected * item.unit_price,
            "updated_at": to_iso(self.now()),
        }
        self.store.update(INVENTORY_ITEMS, item_id, changes)
        log.warning("item_reconciled item_id=%s cached_qty=%s history_qty=%s", item_id, item.quantity, expected)
        return StockItem.from_document({**doc, **changes})
