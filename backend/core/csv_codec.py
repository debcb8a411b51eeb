"""
Two-section CSV export/import.

    SECTION,items
    id,sku,name,category,supplier,cost,price,stock
    ...

    SECTION,moves
    id,ts,type,itemId,qty,unit,note
    ...
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional, Sequence

from pydantic import ValidationError as SchemaValidationError

from core.converters import format_number, to_int, to_num
from schemas.inventory import ImportResult, Item, Movement

if TYPE_CHECKING:
    from core.store import InventoryStore

logger = logging.getLogger(__name__)

ITEM_HEADER = ["id", "sku", "name", "category", "supplier", "cost", "price", "stock"]
MOVE_HEADER = ["id", "ts", "type", "itemId", "qty", "unit", "note"]
MOVE_KINDS = {"purchase", "sale", "adjust"}


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"stockpilot_export_{now.strftime('%Y-%m-%d')}.csv"


def export_csv(items: Sequence[Item], moves: Sequence[Movement]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")

    writer.writerow(["SECTION", "items"])
    writer.writerow(ITEM_HEADER)
    for i in items:
        writer.writerow([
            i.id, i.sku, i.name, i.category or "", i.supplier or "",
            format_number(i.cost), format_number(i.price), str(to_int(i.stock)),
        ])

    buf.write("\n")
    writer.writerow(["SECTION", "moves"])
    writer.writerow(MOVE_HEADER)
    for m in moves:
        writer.writerow([
            m.id, m.ts, m.kind, m.item_id, str(to_int(m.quantity)),
            format_number(m.unit_price), m.note or "",
        ])

    return buf.getvalue()


def parse_csv(text: str) -> List[List[str]]:
    """
    Permissive scanner: quotes toggle anywhere, "" inside quotes is a quote,
    unquoted \\r is dropped. Values are trimmed and blank rows discarded.
    """
    rows: List[List[str]] = []
    row: List[str] = []
    cur: List[str] = []
    in_quotes = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"' and i + 1 < n and text[i + 1] == '"':
                cur.append('"')
                i += 2
                continue
            if ch == '"':
                in_quotes = False
            else:
                cur.append(ch)
        elif ch == '"':
            in_quotes = True
        elif ch == ",":
            row.append("".join(cur))
            cur = []
        elif ch == "\n":
            row.append("".join(cur))
            rows.append(row)
            row, cur = [], []
        elif ch != "\r":
            cur.append(ch)
        i += 1

    row.append("".join(cur))
    rows.append(row)

    cleaned = [[v.strip() for v in r] for r in rows]
    return [r for r in cleaned if any(v != "" for v in r)]


def _cell(row: List[str], idx: int) -> str:
    return row[idx] if idx < len(row) else ""


@dataclass
class ParsedExport:
    items: List[Item] = field(default_factory=list)
    moves: List[Movement] = field(default_factory=list)
    malformed_items: int = 0
    malformed_moves: int = 0


def _item_from_row(row: List[str]) -> Optional[Item]:
    item_id, sku, name = _cell(row, 0), _cell(row, 1), _cell(row, 2)
    if not item_id or not sku or not name:
        return None
    return Item(
        id=item_id,
        sku=sku,
        name=name,
        category=_cell(row, 3),
        supplier=_cell(row, 4),
        cost=to_num(_cell(row, 5)),
        price=to_num(_cell(row, 6)),
        stock=to_int(_cell(row, 7)),
    )


def _move_from_row(row: List[str]) -> Optional[Movement]:
    move_id, ts, kind, item_id = _cell(row, 0), _cell(row, 1), _cell(row, 2), _cell(row, 3)
    if not move_id or not ts or not kind or not item_id:
        return None
    if kind not in MOVE_KINDS:
        return None
    try:
        ts_value = int(float(ts))
    except (ValueError, OverflowError):
        return None
    try:
        return Movement(
            id=move_id,
            ts=ts_value,
            kind=kind,
            item_id=item_id,
            quantity=to_int(_cell(row, 4)),
            unit_price=to_num(_cell(row, 5)),
            note=_cell(row, 6),
        )
    except SchemaValidationError:
        return None


def read_export(text: str) -> ParsedExport:
    parsed = ParsedExport()
    section = ""

    for row in parse_csv(text):
        if row[0] == "SECTION":
            section = _cell(row, 1)
            continue
        if not section or row[0] == "id":
            continue

        if section == "items":
            item = _item_from_row(row)
            if item is None:
                parsed.malformed_items += 1
            else:
                parsed.items.append(item)
        elif section == "moves":
            move = _move_from_row(row)
            if move is None:
                parsed.malformed_moves += 1
            else:
                parsed.moves.append(move)

    return parsed


def import_csv(store: "InventoryStore", text: str) -> ImportResult:
    parsed = read_export(text)
    result = store.merge(parsed.items, parsed.moves)
    result.items_skipped += parsed.malformed_items
    result.moves_skipped += parsed.malformed_moves
    if parsed.malformed_items or parsed.malformed_moves:
        logger.info(
            "Skipped %d malformed item rows and %d malformed movement rows",
            parsed.malformed_items, parsed.malformed_moves,
        )
    return result
