from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel

from core.config import settings
from core.csv_codec import export_csv, export_filename, import_csv
from core.store import InventoryStore
from core.view import history_rows, render_view
from schemas.inventory import (
    HistoryRow,
    ImportResult,
    InventoryView,
    Item,
    ItemCreate,
    ItemUpdate,
    MovementCreate,
)

router = APIRouter()


def get_store(request: Request) -> InventoryStore:
    return request.app.state.store


def _dump(value):
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def _mutation(store: InventoryStore, **payload) -> Dict:
    # Every write reports whether the snapshot made it to storage
    out = {k: _dump(v) for k, v in payload.items()}
    out["persisted"] = store.persist_ok
    return out


@router.get("/view", response_model=InventoryView)
async def inventory_view(
    q: str = "",
    stock: Optional[str] = Query(None, description="all | low | zero"),
    store: InventoryStore = Depends(get_store),
):
    """Item table (filtered, SKU order), full history, picker options and KPIs."""
    return render_view(store.items, store.moves, q, stock, settings.low_stock_threshold)


@router.get("/items", response_model=List[Item])
async def list_items(store: InventoryStore = Depends(get_store)):
    return store.items


@router.post("/items", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_item(payload: ItemCreate, store: InventoryStore = Depends(get_store)):
    item = store.create_item(payload)
    return _mutation(store, item=item)


@router.put("/items/{item_id}", response_model=Dict)
async def update_item(item_id: str, payload: ItemUpdate, store: InventoryStore = Depends(get_store)):
    item = store.update_item(item_id, payload)
    return _mutation(store, item=item)


@router.delete("/items/{item_id}", response_model=Dict)
async def delete_item(item_id: str, store: InventoryStore = Depends(get_store)):
    item = store.delete_item(item_id)
    return _mutation(store, item=item)


@router.get("/movements", response_model=List[HistoryRow])
async def list_movements(store: InventoryStore = Depends(get_store)):
    return history_rows(store.items, store.moves)


@router.post("/movements", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def record_movement(payload: MovementCreate, store: InventoryStore = Depends(get_store)):
    move = store.record_movement(payload)
    return _mutation(store, movement=move, item=store.find_item(move.item_id))


@router.delete("/movements/{move_id}", response_model=Dict)
async def delete_movement(move_id: str, store: InventoryStore = Depends(get_store)):
    """Remove one booking. Stock is NOT recalculated."""
    move = store.delete_movement(move_id)
    return _mutation(store, movement=move)


@router.delete("/movements", response_model=Dict)
async def clear_movements(store: InventoryStore = Depends(get_store)):
    """Empty the history; stock stays as it is."""
    cleared = store.clear_movements()
    return _mutation(store, cleared=cleared)


@router.post("/demo", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def load_demo(store: InventoryStore = Depends(get_store)):
    items = store.load_demo()
    return _mutation(store, items=items)


@router.post("/reset", response_model=Dict)
async def reset(store: InventoryStore = Depends(get_store)):
    store.reset()
    return _mutation(store, items=[], moves=[])


@router.get("/export")
async def export(store: InventoryStore = Depends(get_store)):
    body = export_csv(store.items, store.moves)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import", response_model=ImportResult)
async def import_file(
    file: Optional[UploadFile] = File(None),
    text: Optional[str] = Form(None),
    store: InventoryStore = Depends(get_store),
):
    """
    Merge a StockPilot CSV export into the current data.
    Existing ids and SKUs are kept; nothing is overwritten.
    Accepts either a file upload or the CSV text as a form field.
    """
    if file is not None:
        raw = await file.read()
        try:
            content = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CSV must be UTF-8 encoded")
    elif text is not None:
        content = text
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either 'file' or 'text' must be provided",
        )
    result = import_csv(store, content)
    result.persisted = store.persist_ok
    return result
