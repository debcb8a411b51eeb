import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse

from core.config import settings
from db.snapshot import JsonFileBackend

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_STATE = {"items": [], "moves": []}


def get_state_file() -> JsonFileBackend:
    return JsonFileBackend(settings.state_file)


@router.get("/state")
async def read_state(state_file: JsonFileBackend = Depends(get_state_file)):
    """Stored snapshot as-is; the empty default when there is none."""
    if not state_file.exists():
        return DEFAULT_STATE
    try:
        return state_file.read_raw()
    except (OSError, ValueError):
        logger.exception("Could not read state file %s", state_file.path)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=DEFAULT_STATE)


@router.post("/state")
async def write_state(
    payload: Any = Body(...),
    state_file: JsonFileBackend = Depends(get_state_file),
):
    """Overwrite the snapshot with whatever JSON was posted (last writer wins)."""
    try:
        state_file.write_raw(payload)
    except (OSError, TypeError, ValueError):
        logger.exception("Could not write state file %s", state_file.path)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"ok": False})
    return {"ok": True}
