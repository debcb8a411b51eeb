import pytest

from core.errors import ConflictError, NotFoundError, ValidationError
from core.store import InventoryStore
from db.snapshot import SnapshotBackend
from schemas.inventory import ItemCreate, ItemUpdate, MovementCreate, Snapshot


def _item(store, sku="A-1", stock=10, cost=2.0, price=5.0, **extra):
    return store.create_item(ItemCreate(sku=sku, name=f"Item {sku}", cost=cost, price=price, initial_stock=stock, **extra))


def _move(store, item, kind, qty, **extra):
    return store.record_movement(MovementCreate(item_id=item.id, kind=kind, quantity=qty, **extra))


class _BrokenBackend(SnapshotBackend):
    name = "broken"

    def load(self):
        return Snapshot()

    def save(self, snapshot):
        return False

    def clear(self):
        return False


def test_create_item_logs_initial_stock_as_adjustment(store):
    item = _item(store, stock=10, cost=2.5)

    assert item.stock == 10
    assert len(store.moves) == 1
    seed = store.moves[0]
    assert seed.kind == "adjust"
    assert seed.item_id == item.id
    assert seed.quantity == 10
    assert seed.unit_price == 2.5
    assert seed.note == "Initial stock"


def test_create_item_with_zero_stock_logs_nothing(store):
    _item(store, stock=0)
    assert store.moves == []


def test_create_item_rejects_duplicate_sku_case_insensitive(store):
    _item(store, sku="A-1")
    with pytest.raises(ConflictError):
        _item(store, sku="a-1")
    assert len(store.items) == 1


@pytest.mark.parametrize(
    "fields",
    [
        {"sku": "", "name": "x"},
        {"sku": "A", "name": "   "},
        {"sku": "A", "name": "x", "cost": -1},
        {"sku": "A", "name": "x", "price": "-0,5"},
        {"sku": "A", "name": "x", "initial_stock": -3},
    ],
)
def test_create_item_validation_leaves_state_untouched(store, fields):
    with pytest.raises(ValidationError):
        store.create_item(ItemCreate(**fields))
    assert store.items == []
    assert store.moves == []


def test_sale_reduces_stock_and_prepends_movement(store):
    item = _item(store, sku="A-1", stock=10, price=5.0)
    before = len(store.moves)

    move = _move(store, item, "sale", 3)

    assert item.stock == 7
    assert len(store.moves) == before + 1
    assert store.moves[0] is move
    assert move.quantity == -3
    assert move.unit_price == 5.0


def test_oversell_fails_without_mutation(store):
    item = _item(store, stock=10)
    _move(store, item, "sale", 3)
    moves_before = list(store.moves)

    with pytest.raises(ValidationError):
        _move(store, item, "sale", 20)

    assert item.stock == 7
    assert store.moves == moves_before


def test_purchase_forces_positive_and_defaults_to_cost(store):
    item = _item(store, stock=1, cost=2.0)
    move = _move(store, item, "purchase", -4)
    assert move.quantity == 4
    assert move.unit_price == 2.0
    assert item.stock == 5


def test_sale_forces_negative(store):
    item = _item(store, stock=5)
    move = _move(store, item, "sale", -2)
    assert move.quantity == -2
    assert item.stock == 3


def test_adjust_uses_quantity_as_given(store):
    item = _item(store, stock=5)
    assert _move(store, item, "adjust", -2).quantity == -2
    assert _move(store, item, "adjust", 4).quantity == 4
    assert item.stock == 7


def test_adjust_cannot_drive_stock_negative(store):
    item = _item(store, stock=2)
    with pytest.raises(ValidationError):
        _move(store, item, "adjust", -3)
    assert item.stock == 2


def test_unit_price_override(store):
    item = _item(store, stock=5, price=5.0)
    move = _move(store, item, "sale", 1, unit_price="4,50")
    assert move.unit_price == 4.5


def test_negative_unit_price_override_rejected(store):
    item = _item(store, stock=5)
    with pytest.raises(ValidationError):
        _move(store, item, "purchase", 1, unit_price=-1)
    assert item.stock == 5


def test_blank_unit_price_means_default(store):
    item = _item(store, stock=5, price=9.0)
    assert _move(store, item, "sale", 1, unit_price="").unit_price == 9.0


@pytest.mark.parametrize("qty", [0, "abc", ""])
def test_zero_or_garbage_quantity_rejected(store, qty):
    item = _item(store, stock=5)
    with pytest.raises(ValidationError):
        _move(store, item, "purchase", qty)


def test_movement_for_unknown_item(store):
    with pytest.raises(NotFoundError):
        store.record_movement(MovementCreate(item_id="nope", kind="purchase", quantity=1))


def test_update_item_overrides_stock_without_logging(store):
    item = _item(store, sku="A-1", stock=10)
    moves_before = list(store.moves)

    updated = store.update_item(item.id, ItemUpdate(
        sku="A-2", name="Renamed", category="Tools", supplier="ACME", cost=1, price=3, stock=42,
    ))

    assert updated.sku == "A-2"
    assert updated.name == "Renamed"
    assert updated.stock == 42
    assert store.moves == moves_before


def test_update_item_may_change_case_of_own_sku(store):
    item = _item(store, sku="a-1")
    store.update_item(item.id, ItemUpdate(sku="A-1", name="x"))
    assert item.sku == "A-1"


def test_update_item_sku_conflict(store):
    _item(store, sku="A-1")
    other = _item(store, sku="B-1")
    with pytest.raises(ConflictError):
        store.update_item(other.id, ItemUpdate(sku="a-1", name="x"))
    assert other.sku == "B-1"


def test_update_item_requires_sku(store):
    item = _item(store)
    with pytest.raises(ValidationError):
        store.update_item(item.id, ItemUpdate(sku=" ", name="x"))


def test_update_unknown_item(store):
    with pytest.raises(NotFoundError):
        store.update_item("missing", ItemUpdate(sku="X", name="x"))


def test_delete_movement_never_touches_stock(store):
    item = _item(store, stock=10)
    sale = _move(store, item, "sale", 4)

    store.delete_movement(sale.id)

    assert item.stock == 6
    assert store.find_movement(sale.id) is None


def test_delete_item_keeps_its_movements(store):
    item = _item(store, stock=10)
    _move(store, item, "sale", 1)

    store.delete_item(item.id)

    assert store.find_item(item.id) is None
    assert len(store.moves) == 2
    assert all(m.item_id == item.id for m in store.moves)


def test_clear_movements_keeps_stock(store):
    item = _item(store, stock=10)
    _move(store, item, "sale", 2)

    assert store.clear_movements() == 2
    assert store.moves == []
    assert item.stock == 8


def test_every_mutation_is_persisted(store, file_backend):
    item = _item(store, stock=3)
    _move(store, item, "purchase", 2)

    reloaded = InventoryStore(file_backend)
    assert [i.model_dump() for i in reloaded.items] == [i.model_dump() for i in store.items]
    assert [m.model_dump() for m in reloaded.moves] == [m.model_dump() for m in store.moves]
    assert reloaded.items[0].stock == 5


def test_failed_write_keeps_memory_state():
    store = InventoryStore(_BrokenBackend())
    item = _item(store, stock=1)

    assert store.persist_ok is False
    assert store.find_item(item.id) is item


def test_load_demo_only_on_empty_store(store):
    items = store.load_demo()
    assert [i.sku for i in items] == ["A-1001", "B-2002", "C-3003"]
    assert store.moves[0].item_id == items[0].id
    assert store.moves[0].quantity == 25

    with pytest.raises(ValidationError):
        store.load_demo()


def test_reset_clears_memory_and_backend(store, file_backend):
    _item(store)
    assert store.reset() is True
    assert store.items == [] and store.moves == []
    assert not file_backend.exists()
