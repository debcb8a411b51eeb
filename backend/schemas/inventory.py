from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.converters import to_int, to_num


MovementKind = Literal["purchase", "sale", "adjust"]
StockFilter = Literal["all", "low", "zero"]


def _text(v: Any) -> str:
    return str(v if v is not None else "").strip()


class Item(BaseModel):
    id: str
    sku: str
    name: str
    category: str = ""
    supplier: str = ""
    cost: float = 0.0
    price: float = 0.0
    stock: int = 0

    @field_validator("category", "supplier", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("cost", "price", mode="before")
    @classmethod
    def _money(cls, v: Any) -> float:
        return to_num(v)

    @field_validator("stock", mode="before")
    @classmethod
    def _stock(cls, v: Any) -> int:
        return to_int(v)


class Movement(BaseModel):
    """One stock change. Serialized with the snapshot's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    ts: int
    kind: MovementKind = Field(alias="type")
    item_id: str = Field(alias="itemId")
    quantity: int = Field(alias="qty")
    unit_price: float = Field(default=0.0, alias="unit")
    note: str = ""

    @field_validator("ts", "quantity", mode="before")
    @classmethod
    def _ints(cls, v: Any) -> int:
        return to_int(v)

    @field_validator("unit_price", mode="before")
    @classmethod
    def _unit(cls, v: Any) -> float:
        return to_num(v)

    @field_validator("note", mode="before")
    @classmethod
    def _note(cls, v: Any) -> str:
        return "" if v is None else str(v)


class Snapshot(BaseModel):
    items: List[Item] = Field(default_factory=list)
    moves: List[Movement] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "items": [i.model_dump() for i in self.items],
            "moves": [m.model_dump(by_alias=True) for m in self.moves],
        }


# ----------------------------
# Form payloads
# ----------------------------

class ItemCreate(BaseModel):
    sku: str = ""
    name: str = ""
    category: str = ""
    supplier: str = ""
    cost: float = 0.0
    price: float = 0.0
    initial_stock: int = 0

    @field_validator("sku", "name", "category", "supplier", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _text(v)

    @field_validator("cost", "price", mode="before")
    @classmethod
    def _money(cls, v: Any) -> float:
        return to_num(v)

    @field_validator("initial_stock", mode="before")
    @classmethod
    def _stock(cls, v: Any) -> int:
        return to_int(v)


class ItemUpdate(BaseModel):
    sku: str = ""
    name: str = ""
    category: str = ""
    supplier: str = ""
    cost: float = 0.0
    price: float = 0.0
    stock: int = 0

    @field_validator("sku", "name", "category", "supplier", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _text(v)

    @field_validator("cost", "price", mode="before")
    @classmethod
    def _money(cls, v: Any) -> float:
        return to_num(v)

    @field_validator("stock", mode="before")
    @classmethod
    def _stock(cls, v: Any) -> int:
        return to_int(v)


class MovementCreate(BaseModel):
    item_id: str
    kind: MovementKind
    quantity: int
    # None means "use the item's price (sale) or cost (purchase/adjust)"
    unit_price: Optional[float] = None
    note: str = ""

    @field_validator("item_id", "note", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _text(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v: Any) -> int:
        return to_int(v)

    @field_validator("unit_price", mode="before")
    @classmethod
    def _unit_price(cls, v: Any) -> Optional[float]:
        if v is None or _text(v) == "":
            return None
        return to_num(v)


# ----------------------------
# Rendered view
# ----------------------------

class ItemRow(Item):
    value: float
    low: bool


class HistoryRow(BaseModel):
    id: str
    ts: int
    kind: MovementKind
    type_label: str
    item_id: str
    sku: str
    name: str
    item_deleted: bool
    quantity: int
    unit_price: float
    total: float
    note: str


class Kpis(BaseModel):
    item_count: int
    total_stock: int
    total_value: float
    total_revenue: float
    total_value_display: str
    total_revenue_display: str


class ItemOption(BaseModel):
    id: str
    label: str


class InventoryView(BaseModel):
    query: str
    stock_filter: str
    items: List[ItemRow]
    history: List[HistoryRow]
    options: List[ItemOption]
    kpis: Kpis


class ImportResult(BaseModel):
    items_added: int = 0
    items_skipped: int = 0
    moves_added: int = 0
    moves_skipped: int = 0
    persisted: bool = True
