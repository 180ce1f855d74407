from pathlib import Path

import pytest

from conftest import fixed_now, make_store, signed_in

from accountease.domain.errors import InvalidArgumentError, NotAuthenticatedError, NotFoundError
from accountease.repositories.contracts import INVENTORY_ITEMS, INVENTORY_TRANSACTIONS
from accountease.repositories.sqlite_store import SqliteDocumentStore
from accountease.services.auth_service import AuthSession
from accountease.services.inventory_service import InventoryService


class CountingStore(SqliteDocumentStore):
    def __init__(self, db_path):
        super().__init__(db_path)
        self.writes = 0

    def insert(self, collection, record):
        self.writes += 1
        return super().insert(collection, record)

    def update(self, collection, record_id, changes):
        self.writes += 1
        return super().update(collection, record_id, changes)

    def delete(self, collection, record_id):
        self.writes += 1
        return super().delete(collection, record_id)


def _setup(tmp_path: Path, store_cls=None):
    store = make_store(tmp_path, store_cls=store_cls)
    inventory = InventoryService(store, signed_in(), now=fixed_now)
    item_id = inventory.create_item("Widget", "SKU-W", "Parts", 50, 20.0)
    return store, inventory, item_id


def test_create_item_snapshots_initial_values(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    item = inventory.get_item(item_id)
    assert item.initial_quantity == 50
    assert item.initial_unit_price == 20.0
    assert item.quantity == 50
    assert item.unit_price == 20.0
    assert item.total_amount == 1000.0


def test_out_movement_updates_quantity_and_value_but_not_initial_snapshot(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    returned = inventory.record_movement(item_id, "out", 10)
    stored = inventory.get_item(item_id)

    for item in (returned, stored):
        assert item.quantity == 40
        assert item.total_amount == 800.0
        assert item.initial_quantity == 50
        assert item.total_amount == item.quantity * item.unit_price


def test_in_then_out_of_same_quantity_restores_item(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)
    before = inventory.get_item(item_id)

    inventory.record_movement(item_id, "in", 5)
    inventory.record_movement(item_id, "out", 5)
    after = inventory.get_item(item_id)

    assert after.quantity == before.quantity
    assert after.total_amount == before.total_amount
    assert len(inventory.list_movements(item_id)) == 2


@pytest.mark.parametrize("qty", [0, -3])
def test_non_positive_movement_is_rejected_without_writes(tmp_path: Path, qty):
    store, inventory, item_id = _setup(tmp_path, store_cls=CountingStore)
    writes_before = store.writes

    with pytest.raises(InvalidArgumentError):
        inventory.record_movement(item_id, "in", qty)

    assert store.writes == writes_before
    assert store.count(INVENTORY_TRANSACTIONS) == 0


def test_unknown_direction_is_rejected(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    with pytest.raises(InvalidArgumentError, match="'in' or 'out'"):
        inventory.record_movement(item_id, "sideways", 1)


def test_movement_on_missing_item_raises_not_found(tmp_path: Path):
    store, inventory, _item_id = _setup(tmp_path)

    with pytest.raises(NotFoundError):
        inventory.record_movement("does-not-exist", "in", 1)
    assert store.count(INVENTORY_TRANSACTIONS) == 0


def test_items_of_other_owners_are_not_visible(tmp_path: Path):
    store, _inventory, item_id = _setup(tmp_path)
    other = InventoryService(store, signed_in("owner-2"), now=fixed_now)

    with pytest.raises(NotFoundError):
        other.record_movement(item_id, "in", 1)
    assert other.list_items() == []


def test_quantity_is_not_clamped_at_zero(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    item = inventory.record_movement(item_id, "out", 60)

    assert item.quantity == -10
    assert item.total_amount == -200.0


def test_update_without_quantity_or_price_keeps_total(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    inventory.update_item(item_id, {"description": "x"})
    item = inventory.get_item(item_id)

    assert item.description == "x"
    assert item.quantity == 50
    assert item.unit_price == 20.0
    assert item.total_amount == 1000.0


def test_update_unit_price_recomputes_total_from_stored_quantity(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    inventory.update_item(item_id, {"unit_price": 10})
    item = inventory.get_item(item_id)

    assert item.quantity == 50
    assert item.total_amount == 500


def test_update_quantity_recomputes_total_from_stored_price(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    item = inventory.update_item(item_id, {"quantity": 7})

    assert item.total_amount == 140.0
    assert inventory.get_item(item_id).initial_quantity == 50


def test_update_rejects_initial_snapshot_edits(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)

    with pytest.raises(InvalidArgumentError, match="initial_quantity"):
        inventory.update_item(item_id, {"initial_quantity": 1})


def test_delete_item_keeps_its_movements(tmp_path: Path):
    store, inventory, item_id = _setup(tmp_path)
    inventory.record_movement(item_id, "in", 3)

    inventory.delete_item(item_id)

    assert store.get(INVENTORY_ITEMS, item_id) is None
    assert len(inventory.list_movements(item_id)) == 1
    with pytest.raises(NotFoundError):
        inventory.delete_item(item_id)


def test_create_item_requires_name_and_sku(tmp_path: Path):
    store = make_store(tmp_path)
    inventory = InventoryService(store, signed_in(), now=fixed_now)

    with pytest.raises(InvalidArgumentError, match="Name and SKU"):
        inventory.create_item("", "SKU-1", "Parts", 1, 1.0)


def test_operations_need_a_signed_in_owner(tmp_path: Path):
    store = make_store(tmp_path, store_cls=CountingStore)
    inventory = InventoryService(store, AuthSession(), now=fixed_now)

    with pytest.raises(NotAuthenticatedError):
        inventory.create_item("Widget", "SKU-W", "Parts", 1, 1.0)
    assert store.writes == 0


def test_low_stock_lists_items_without_stock(tmp_path: Path):
    _store, inventory, item_id = _setup(tmp_path)
    empty_id = inventory.create_item("Bolt", "SKU-B", "Parts", 0, 1.0)

    assert [i.id for i in inventory.low_stock_items()] == [empty_id]
    inventory.record_movement(item_id, "out", 50)
    assert {i.id for i in inventory.low_stock_items()} == {empty_id, item_id}


def test_fractional_movement_quantity_is_rejected(tmp_path: Path):
    store, inventory, item_id = _setup(tmp_path)

    with pytest.raises(InvalidArgumentError, match="whole number"):
        inventory.record_movement(item_id, "in", 2.5)

    assert store.count(INVENTORY_TRANSACTIONS) == 0
    assert inventory.record_movement(item_id, "in", 2.0).quantity == 52
