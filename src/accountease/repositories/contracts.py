from __future__ import annotations

from typing import Any, Optional, Protocol

TRANSACTIONS = "transactions"
PURCHASES = "purchases"
INVENTORY_ITEMS = "inventory_items"
INVENTORY_TRANSACTIONS = "inventory_transactions"
INVENTORY_CATEGORIES = "inventory_categories"
BANK_ACCOUNTS = "bank_accounts"
EXPENSE_CATEGORIES = "expense_categories"
SUPPLIER_CATEGORIES = "supplier_categories"
SUPPLIERS = "suppliers"


class RecordStore(Protocol):
    """Owner-scoped document collections.

    Documents are plain dicts. Reads return them with their ``id`` merged in.
    Implementations raise ``RemoteOperationError`` for any transport or driver
    failure and ``NotFoundError`` when updating a document that does not exist.
    """

    def fetch_where(self, collection: str, owner_id: str, **equals: Any) -> list[dict]: ...
    def get(self, collection: str, record_id: str) -> Optional[dict]: ...
    def insert(self, collection: str, record: dict) -> str: ...
    def update(self, collection: str, record_id: str, changes: dict) -> None: ...
    def delete(self, collection: str, record_id: str) -> None: ...


class IdentityProvider(Protocol):
    def current_owner_id(self) -> Optional[str]: ...
