import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.errors import StockPilotError
from core.store import InventoryStore
from db.database import create_db_and_tables
from db.snapshot import build_backend
from routers.images import router as images_router
from routers.inventory import router as inventory_router
from routers.qr import router as qr_router
from routers.state import router as state_router

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(settings.data_dir, exist_ok=True)
    create_db_and_tables()
    app.state.store = InventoryStore(build_backend(settings))
    yield


app = FastAPI(
    title="StockPilot API",
    description="Inventory ledger and QR styling tool",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StockPilotError)
def _stockpilot_error(_req: Request, exc: StockPilotError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.middleware("http")
async def _request_logging(request: Request, call_next):
    started = time.time()
    response = await call_next(request)
    logger.info(
        "%s %s -> %d (%.1f ms)",
        request.method, request.url.path, response.status_code, (time.time() - started) * 1000,
    )
    return response


@app.get("/")
async def root():
    return {"name": "StockPilot API", "env": settings.env, "storage": settings.storage_backend}


# Snapshot persistence endpoint (GET/POST /api/state)
app.include_router(state_router, prefix="/api", tags=["state"])

# Inventory ledger
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])

# QR styling
app.include_router(images_router, prefix="/qr/logos", tags=["qr"])
app.include_router(qr_router, prefix="/qr", tags=["qr"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
