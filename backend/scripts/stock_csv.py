import argparse
import sys
from pathlib import Path

"""
Export or import StockPilot CSV files from the command line.

  python scripts/stock_csv.py export                 # writes stockpilot_export_<date>.csv
  python scripts/stock_csv.py export -o out.csv
  python scripts/stock_csv.py import some_export.csv # merges, never overwrites
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.config import settings  # noqa: E402
from core.csv_codec import export_csv, export_filename, import_csv  # noqa: E402
from core.store import InventoryStore  # noqa: E402
from db.database import create_db_and_tables  # noqa: E402
from db.snapshot import build_backend  # noqa: E402


def _open_store() -> InventoryStore:
    create_db_and_tables()
    return InventoryStore(build_backend(settings))


def run_export(output: str | None) -> int:
    store = _open_store()
    path = Path(output or export_filename())
    path.write_text(export_csv(store.items, store.moves), encoding="utf-8")
    print(f"[stock_csv] Exported {len(store.items)} items and {len(store.moves)} movements to {path}")
    return 0


def run_import(source: str) -> int:
    store = _open_store()
    text = Path(source).read_text(encoding="utf-8-sig")
    result = import_csv(store, text)
    print(
        f"[stock_csv] Items: +{result.items_added} (skipped {result.items_skipped}), "
        f"movements: +{result.moves_added} (skipped {result.moves_skipped})"
    )
    return 0 if store.persist_ok else 2


def main():
    p = argparse.ArgumentParser()
    sub = p.add_subparsers(dest="command", required=True)

    exp = sub.add_parser("export", help="Write items and history to a CSV file")
    exp.add_argument("-o", "--output", default=None, help="Target file (default: stockpilot_export_<date>.csv)")

    imp = sub.add_parser("import", help="Merge a CSV export into the current data")
    imp.add_argument("path", help="CSV file produced by an export")

    args = p.parse_args()
    if args.command == "export":
        sys.exit(run_export(args.output))
    sys.exit(run_import(args.path))


if __name__ == "__main__":
    main()
