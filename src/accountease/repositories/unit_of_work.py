from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from accountease.domain.errors import AppError
from accountease.repositories.contracts import INVENTORY_ITEMS, INVENTORY_TRANSACTIONS, RecordStore

log = logging.getLogger("accountease.inventory")


@dataclass
class StockMovementUnitOfWork:
    """Two-phase write of a stock movement and its item.

    The store offers no cross-document transaction, so every completed write
    registers a compensating action. Leaving the block with an exception runs
    the compensations newest first; leaving it cleanly discards them.
    Movement history is the source of truth, so the movement is written first
    and the item quantity is treated as a cache of it.
    """

    store: RecordStore
    _undo: list[Callable[[], None]] = field(default_factory=list)

    def __enter__(self) -> "StockMovementUnitOfWork":
        self._undo.clear()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self._undo.clear()
            return None
        while self._undo:
            undo = self._undo.pop()
            try:
                undo()
            except AppError:
                # item cache may now disagree with history; reconcile_item repairs it
                log.exception("movement_compensation_failed")
        return None

    def add_movement(self, movement: dict) -> str:
        movement_id = self.store.insert(INVENTORY_TRANSACTIONS, movement)
        self._undo.append(lambda: self.store.delete(INVENTORY_TRANSACTIONS, movement_id))
        return movement_id

    def update_item(self, item_id: str, changes: dict, previous: dict) -> None:
        self.store.update(INVENTORY_ITEMS, item_id, changes)
        restore = {k: previous.get(k) for k in changes}
        self._undo.append(lambda: self.store.update(INVENTORY_ITEMS, item_id, restore))
