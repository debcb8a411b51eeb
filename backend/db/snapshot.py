"""
Snapshot backends.

The inventory is stored as one JSON document `{ "items": [...], "moves": [...] }`
written wholesale after every mutation. Backends never raise: read problems
give the empty default, write problems give `False`.

- KeyValueBackend: one row in the `kv_store` table under a fixed key
- JsonFileBackend: a pretty-printed JSON file (also served by /api/state)
- RemoteBackend (db/remote.py): GET/POST against a /api/state endpoint
"""

import json
import logging
import os
import tempfile
from typing import Any, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from core.config import Settings
from schemas.inventory import Item, Movement, Snapshot
from .database import KeyValueEntry

logger = logging.getLogger(__name__)


def parse_snapshot(raw: Any) -> Snapshot:
    """Lenient snapshot parse; malformed parts are dropped, never raised."""
    if not isinstance(raw, dict):
        return Snapshot()

    raw_items = raw.get("items")
    raw_moves = raw.get("moves")

    items = []
    for entry in raw_items if isinstance(raw_items, list) else []:
        try:
            items.append(Item.model_validate(entry))
        except SchemaValidationError:
            logger.warning("Dropping malformed item in snapshot: %r", entry)

    moves = []
    for entry in raw_moves if isinstance(raw_moves, list) else []:
        try:
            moves.append(Movement.model_validate(entry))
        except SchemaValidationError:
            logger.warning("Dropping malformed movement in snapshot: %r", entry)

    return Snapshot(items=items, moves=moves)


class SnapshotBackend:
    name = "base"

    def load(self) -> Snapshot:
        raise NotImplementedError

    def save(self, snapshot: Snapshot) -> bool:
        raise NotImplementedError

    def clear(self) -> bool:
        raise NotImplementedError


class JsonFileBackend(SnapshotBackend):
    name = "file"

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def read_raw(self) -> Any:
        """Raises FileNotFoundError or ValueError; callers decide the fallback."""
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def write_raw(self, data: Any) -> None:
        folder = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(folder, exist_ok=True)

        # Write next to the target and swap in, so readers never see half a file
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=folder, suffix=".tmp", delete=False
            ) as temp_file:
                temp_path = temp_file.name
                json.dump(data, temp_file, indent=2, ensure_ascii=False)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            os.replace(temp_path, self.path)
            temp_path = None
        finally:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)

    def load(self) -> Snapshot:
        if not self.exists():
            return Snapshot()
        try:
            return parse_snapshot(self.read_raw())
        except (OSError, ValueError):
            logger.exception("Could not read snapshot file %s", self.path)
            return Snapshot()

    def save(self, snapshot: Snapshot) -> bool:
        try:
            self.write_raw(snapshot.to_wire())
            return True
        except (OSError, TypeError, ValueError):
            logger.exception("Could not write snapshot file %s", self.path)
            return False

    def clear(self) -> bool:
        try:
            if self.exists():
                os.unlink(self.path)
            return True
        except OSError:
            logger.exception("Could not remove snapshot file %s", self.path)
            return False


class KeyValueBackend(SnapshotBackend):
    name = "local"

    def __init__(self, session_factory: sessionmaker, key: str = "stockpilot_v1"):
        self.session_factory = session_factory
        self.key = key

    def _read(self, session: Session) -> Optional[str]:
        res = session.execute(select(KeyValueEntry.value).where(KeyValueEntry.key == self.key))
        return res.scalar_one_or_none()

    def load(self) -> Snapshot:
        try:
            with self.session_factory() as session:
                raw = self._read(session)
        except SQLAlchemyError:
            logger.exception("Could not read storage key %s", self.key)
            return Snapshot()
        if not raw:
            return Snapshot()
        try:
            return parse_snapshot(json.loads(raw))
        except ValueError:
            logger.warning("Storage key %s holds malformed JSON, starting empty", self.key)
            return Snapshot()

    def save(self, snapshot: Snapshot) -> bool:
        try:
            payload = json.dumps(snapshot.to_wire(), ensure_ascii=False)
            with self.session_factory() as session:
                row = session.get(KeyValueEntry, self.key)
                if row is None:
                    session.add(KeyValueEntry(key=self.key, value=payload))
                else:
                    row.value = payload
                session.commit()
            return True
        except (SQLAlchemyError, TypeError, ValueError):
            logger.exception("Could not write storage key %s", self.key)
            return False

    def clear(self) -> bool:
        try:
            with self.session_factory() as session:
                session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == self.key))
                session.commit()
            return True
        except SQLAlchemyError:
            logger.exception("Could not clear storage key %s", self.key)
            return False


def build_backend(settings: Settings, session_factory: Optional[sessionmaker] = None) -> SnapshotBackend:
    kind = settings.storage_backend
    if kind == "file":
        return JsonFileBackend(settings.state_file)
    if kind == "remote":
        from .remote import RemoteBackend

        return RemoteBackend(settings.remote_state_url)
    if kind != "local":
        logger.warning("Unknown STORAGE_BACKEND=%r, falling back to local", kind)
    if session_factory is None:
        from .database import session_maker as session_factory
    return KeyValueBackend(session_factory, key=settings.storage_key)
