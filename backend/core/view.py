from typing import Dict, List, Optional, Sequence

from core.converters import format_eur
from schemas.inventory import (
    HistoryRow,
    InventoryView,
    Item,
    ItemOption,
    ItemRow,
    Kpis,
    Movement,
)

LOW_STOCK_THRESHOLD = 5
DELETED_ITEM_NAME = "Deleted item"
DELETED_ITEM_SKU = "—"

TYPE_LABELS = {
    "purchase": "Purchase",
    "sale": "Sale",
}


def type_label(kind: str) -> str:
    return TYPE_LABELS.get(kind, "Adjustment")


def sku_sort_key(item: Item):
    # Case-insensitive first, exact text breaks ties
    return (item.sku.casefold(), item.sku)


def _matches(item: Item, q: str) -> bool:
    return any(q in (field or "").lower() for field in (item.sku, item.name, item.category, item.supplier))


def filter_items(
    items: Sequence[Item],
    query: str = "",
    stock_filter: Optional[str] = None,
    low_threshold: int = LOW_STOCK_THRESHOLD,
) -> List[Item]:
    q = (query or "").strip().lower()
    out = [i for i in items if _matches(i, q)] if q else list(items)

    if stock_filter == "low":
        out = [i for i in out if i.stock <= low_threshold]
    elif stock_filter == "zero":
        out = [i for i in out if i.stock == 0]

    return sorted(out, key=sku_sort_key)


def item_rows(items: Sequence[Item], low_threshold: int = LOW_STOCK_THRESHOLD) -> List[ItemRow]:
    return [
        ItemRow(**i.model_dump(), value=i.stock * i.cost, low=i.stock <= low_threshold)
        for i in items
    ]


def history_rows(items: Sequence[Item], moves: Sequence[Movement]) -> List[HistoryRow]:
    by_id: Dict[str, Item] = {i.id: i for i in items}
    rows = []
    for m in moves:
        item = by_id.get(m.item_id)
        rows.append(HistoryRow(
            id=m.id,
            ts=m.ts,
            kind=m.kind,
            type_label=type_label(m.kind),
            item_id=m.item_id,
            sku=item.sku if item else DELETED_ITEM_SKU,
            name=item.name if item else DELETED_ITEM_NAME,
            item_deleted=item is None,
            quantity=m.quantity,
            unit_price=m.unit_price,
            total=m.quantity * m.unit_price,
            note=m.note,
        ))
    return rows


def item_options(items: Sequence[Item]) -> List[ItemOption]:
    return [
        ItemOption(id=i.id, label=f"{i.sku} — {i.name} (Stock: {i.stock})")
        for i in sorted(items, key=sku_sort_key)
    ]


def compute_kpis(items: Sequence[Item], moves: Sequence[Movement]) -> Kpis:
    total_value = sum(i.stock * i.cost for i in items)
    revenue = sum(abs(m.quantity) * m.unit_price for m in moves if m.kind == "sale")
    return Kpis(
        item_count=len(items),
        total_stock=sum(i.stock for i in items),
        total_value=total_value,
        total_revenue=revenue,
        total_value_display=format_eur(total_value),
        total_revenue_display=format_eur(revenue),
    )


def render_view(
    items: Sequence[Item],
    moves: Sequence[Movement],
    query: str = "",
    stock_filter: Optional[str] = None,
    low_threshold: int = LOW_STOCK_THRESHOLD,
) -> InventoryView:
    visible = filter_items(items, query, stock_filter, low_threshold)
    return InventoryView(
        query=query or "",
        stock_filter=stock_filter or "all",
        items=item_rows(visible, low_threshold),
        history=history_rows(items, moves),
        options=item_options(items),
        kpis=compute_kpis(items, moves),
    )
