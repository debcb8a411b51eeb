"""
Inventory state store.

Items and movements live in memory and are written wholesale to the snapshot
backend after every mutation. Stock is kept incrementally:

- record_movement() is the only path that logs a movement for a stock change
- update_item() overrides stock directly, without a movement
- delete_movement() / clear_movements() never rebalance stock
"""

import logging
import time
import uuid
from typing import Callable, Iterable, List, Optional

from core.errors import ConflictError, NotFoundError, ValidationError
from db.snapshot import SnapshotBackend
from schemas.inventory import (
    ImportResult,
    Item,
    ItemCreate,
    ItemUpdate,
    Movement,
    MovementCreate,
    Snapshot,
)

logger = logging.getLogger(__name__)

INITIAL_STOCK_NOTE = "Initial stock"

DEMO_ITEMS = [
    {"sku": "A-1001", "name": "Screws M6 (100 pack)", "category": "Hardware", "supplier": "Fix&Co", "cost": 4.20, "price": 8.90, "stock": 25},
    {"sku": "B-2002", "name": "Cable ties (50 pack)", "category": "Hardware", "supplier": "Fix&Co", "cost": 2.10, "price": 5.50, "stock": 8},
    {"sku": "C-3003", "name": "WD-40 400ml", "category": "Workshop", "supplier": "IndustryPartner", "cost": 3.30, "price": 7.90, "stock": 3},
]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


class InventoryStore:
    def __init__(
        self,
        backend: SnapshotBackend,
        *,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.backend = backend
        self.clock = clock
        self.id_factory = id_factory
        self.persist_ok = True

        snapshot = backend.load()
        self.items: List[Item] = list(snapshot.items)
        self.moves: List[Movement] = list(snapshot.moves)
        logger.info(
            "Loaded %d items and %d movements from %s backend",
            len(self.items), len(self.moves), backend.name,
        )

    # ----------------------------
    # Lookups
    # ----------------------------

    def snapshot(self) -> Snapshot:
        return Snapshot(items=list(self.items), moves=list(self.moves))

    def find_item(self, item_id: str) -> Optional[Item]:
        return next((i for i in self.items if i.id == item_id), None)

    def find_movement(self, move_id: str) -> Optional[Movement]:
        return next((m for m in self.moves if m.id == move_id), None)

    def sku_exists(self, sku: str, exclude_id: Optional[str] = None) -> bool:
        wanted = sku.lower()
        return any(i.sku.lower() == wanted and i.id != exclude_id for i in self.items)

    def _require_item(self, item_id: str) -> Item:
        item = self.find_item(item_id)
        if item is None:
            raise NotFoundError("Item not found.")
        return item

    def persist(self) -> bool:
        self.persist_ok = self.backend.save(self.snapshot())
        if not self.persist_ok:
            logger.warning("Snapshot write failed; in-memory state kept as is")
        return self.persist_ok

    # ----------------------------
    # Items
    # ----------------------------

    def create_item(self, payload: ItemCreate) -> Item:
        if not payload.sku or not payload.name:
            raise ValidationError("SKU and name are required.")
        if self.sku_exists(payload.sku):
            raise ConflictError("SKU already exists. Please keep it unique.")
        if payload.cost < 0 or payload.price < 0:
            raise ValidationError("Prices must not be negative.")
        if payload.initial_stock < 0:
            raise ValidationError("Initial stock must not be negative.")

        item = Item(
            id=self.id_factory(),
            sku=payload.sku,
            name=payload.name,
            category=payload.category,
            supplier=payload.supplier,
            cost=payload.cost,
            price=payload.price,
            stock=payload.initial_stock,
        )
        self.items.append(item)

        if payload.initial_stock > 0:
            self.moves.insert(0, Movement(
                id=self.id_factory(),
                ts=self.clock(),
                kind="adjust",
                item_id=item.id,
                quantity=payload.initial_stock,
                unit_price=item.cost,
                note=INITIAL_STOCK_NOTE,
            ))

        self.persist()
        logger.info("Created item %s (%s) with stock %d", item.sku, item.id, item.stock)
        return item

    def update_item(self, item_id: str, payload: ItemUpdate) -> Item:
        item = self._require_item(item_id)
        if not payload.sku:
            raise ValidationError("SKU is required.")
        if self.sku_exists(payload.sku, exclude_id=item.id):
            raise ConflictError("SKU already exists.")

        # Stock is overridden directly; no movement is logged for the difference
        item.sku = payload.sku
        item.name = payload.name
        item.category = payload.category
        item.supplier = payload.supplier
        item.cost = payload.cost
        item.price = payload.price
        item.stock = payload.stock

        self.persist()
        logger.info("Updated item %s (%s)", item.sku, item.id)
        return item

    def delete_item(self, item_id: str) -> Item:
        item = self._require_item(item_id)
        # Movements referencing the item stay and render with a placeholder
        self.items = [i for i in self.items if i.id != item_id]
        self.persist()
        logger.info("Deleted item %s (%s)", item.sku, item.id)
        return item

    # ----------------------------
    # Movements
    # ----------------------------

    def record_movement(self, payload: MovementCreate) -> Movement:
        item = self._require_item(payload.item_id)
        qty = payload.quantity
        if qty == 0:
            raise ValidationError("Quantity must be a number other than 0.")

        if payload.kind == "purchase":
            signed = abs(qty)
        elif payload.kind == "sale":
            signed = -abs(qty)
        else:
            signed = qty

        if payload.unit_price is None:
            unit_price = item.price if payload.kind == "sale" else item.cost
        else:
            unit_price = payload.unit_price
        if unit_price < 0:
            raise ValidationError("Unit price must not be negative.")

        if signed < 0 and item.stock + signed < 0:
            raise ValidationError("Not enough stock for this booking.")

        item.stock += signed
        move = Movement(
            id=self.id_factory(),
            ts=self.clock(),
            kind=payload.kind,
            item_id=item.id,
            quantity=signed,
            unit_price=unit_price,
            note=payload.note,
        )
        self.moves.insert(0, move)

        self.persist()
        logger.info("Booked %s %+d for %s, stock now %d", move.kind, signed, item.sku, item.stock)
        return move

    def delete_movement(self, move_id: str) -> Movement:
        move = self.find_movement(move_id)
        if move is None:
            raise NotFoundError("Booking not found.")
        # Stock is NOT rebalanced
        self.moves = [m for m in self.moves if m.id != move_id]
        self.persist()
        logger.info("Deleted movement %s (stock left unchanged)", move_id)
        return move

    def clear_movements(self) -> int:
        count = len(self.moves)
        self.moves = []
        self.persist()
        logger.info("Cleared %d movements", count)
        return count

    # ----------------------------
    # Bulk
    # ----------------------------

    def load_demo(self) -> List[Item]:
        if self.items:
            raise ValidationError("Demo data only makes sense in an empty system (or after a reset).")

        created = [Item(id=self.id_factory(), **d) for d in DEMO_ITEMS]
        self.items.extend(created)
        first = created[0]
        self.moves.insert(0, Movement(
            id=self.id_factory(),
            ts=self.clock(),
            kind="adjust",
            item_id=first.id,
            quantity=first.stock,
            unit_price=first.cost,
            note=INITIAL_STOCK_NOTE,
        ))
        self.persist()
        return created

    def reset(self) -> bool:
        self.items = []
        self.moves = []
        self.persist_ok = self.backend.clear()
        logger.info("Reset inventory (backend cleared: %s)", self.persist_ok)
        return self.persist_ok

    def merge(self, items: Iterable[Item], moves: Iterable[Movement]) -> ImportResult:
        """Merge imported records: existing ids and SKUs win, nothing is overwritten."""
        result = ImportResult()

        for item in items:
            if self.find_item(item.id) is not None or self.sku_exists(item.sku):
                result.items_skipped += 1
                continue
            self.items.append(item)
            result.items_added += 1

        known = {m.id for m in self.moves}
        for move in moves:
            if move.id in known:
                result.moves_skipped += 1
                continue
            self.moves.append(move)
            known.add(move.id)
            result.moves_added += 1

        self.moves.sort(key=lambda m: m.ts, reverse=True)
        self.persist()
        logger.info("Import merged: %s", result.model_dump())
        return result
