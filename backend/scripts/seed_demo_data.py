import argparse
import sys
from pathlib import Path

"""
Seed the StockPilot demo items into the configured storage backend.

Uses the same STORAGE_BACKEND / DATABASE_URL / STATE_FILE env vars as the API
(dotenv supported by core.config).

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py --reset`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.config import settings  # noqa: E402
from core.errors import ValidationError  # noqa: E402
from core.store import InventoryStore  # noqa: E402
from db.database import create_db_and_tables  # noqa: E402
from db.snapshot import build_backend  # noqa: E402


def seed(reset: bool) -> int:
    create_db_and_tables()
    store = InventoryStore(build_backend(settings))

    if reset:
        store.reset()
        print("[seed_demo_data] Cleared existing items and history")

    try:
        items = store.load_demo()
    except ValidationError as e:
        print(f"[seed_demo_data] {e.message}")
        return 1

    for it in items:
        print(f"[seed_demo_data] {it.sku}  {it.name}  stock={it.stock}")
    if not store.persist_ok:
        print("[seed_demo_data] WARNING: snapshot could not be written")
        return 2
    return 0


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--reset", action="store_true", help="Remove all items and history before seeding")
    args = p.parse_args()
    sys.exit(seed(reset=args.reset))


if __name__ == "__main__":
    main()
