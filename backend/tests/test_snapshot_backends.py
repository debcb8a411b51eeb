import json

import pytest
import requests
from sqlalchemy.orm import sessionmaker

from core.config import Settings
from db.database import create_db_and_tables, make_engine
from db.remote import ApiError, RemoteBackend, StateApiClient
from db.snapshot import JsonFileBackend, KeyValueBackend, build_backend, parse_snapshot
from schemas.inventory import Item, Movement, Snapshot


def _snapshot():
    return Snapshot(
        items=[Item(id="i1", sku="A-1", name="Bolt", cost=1.5, price=3, stock=4)],
        moves=[Movement(id="m1", ts=10, kind="sale", item_id="i1", quantity=-1, unit_price=3.0)],
    )


def test_parse_snapshot_drops_malformed_elements():
    snap = parse_snapshot({
        "items": [{"id": "i1", "sku": "A", "name": "ok"}, {"sku": "no id"}, "junk"],
        "moves": [{"id": "m1", "ts": 1, "type": "sale", "itemId": "i1", "qty": -1}, {"id": "m2", "type": "teleport"}],
    })
    assert [i.id for i in snap.items] == ["i1"]
    assert [m.id for m in snap.moves] == ["m1"]


@pytest.mark.parametrize("raw", [None, [], "text", {"items": "nope", "moves": 3}])
def test_parse_snapshot_falls_back_to_empty(raw):
    snap = parse_snapshot(raw)
    assert snap.items == [] and snap.moves == []


def test_snapshot_wire_format_uses_short_movement_keys():
    wire = _snapshot().to_wire()
    assert wire["moves"][0] == {
        "id": "m1", "ts": 10, "type": "sale", "itemId": "i1", "qty": -1, "unit": 3.0, "note": "",
    }


# ----------------------------
# JSON file
# ----------------------------

def test_file_backend_missing_file_is_empty(tmp_path):
    backend = JsonFileBackend(str(tmp_path / "missing.json"))
    assert backend.load() == Snapshot()


def test_file_backend_round_trip(tmp_path):
    path = tmp_path / "nested" / "state.json"
    backend = JsonFileBackend(str(path))

    assert backend.save(_snapshot()) is True
    assert json.loads(path.read_text(encoding="utf-8"))["items"][0]["sku"] == "A-1"
    assert backend.load() == _snapshot()
    assert list(path.parent.iterdir()) == [path]


def test_file_backend_malformed_json_is_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileBackend(str(path)).load() == Snapshot()


def test_file_backend_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    backend = JsonFileBackend(str(blocker / "state.json"))

    assert backend.save(_snapshot()) is False
    with pytest.raises(OSError):
        backend.write_raw({})


def test_file_backend_clear(tmp_path):
    backend = JsonFileBackend(str(tmp_path / "state.json"))
    backend.save(_snapshot())
    assert backend.clear() is True
    assert not backend.exists()
    assert backend.clear() is True


# ----------------------------
# Key/value table
# ----------------------------

@pytest.fixture
def kv_backend(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'kv.db'}")
    create_db_and_tables(engine)
    yield KeyValueBackend(sessionmaker(engine, expire_on_commit=False), key="test_key")
    engine.dispose()


def test_kv_backend_round_trip(kv_backend):
    assert kv_backend.load() == Snapshot()
    assert kv_backend.save(_snapshot()) is True
    assert kv_backend.load() == _snapshot()

    # Overwrite in place
    assert kv_backend.save(Snapshot()) is True
    assert kv_backend.load() == Snapshot()


def test_kv_backend_clear(kv_backend):
    kv_backend.save(_snapshot())
    assert kv_backend.clear() is True
    assert kv_backend.load() == Snapshot()


def test_kv_backend_unreachable_database(tmp_path):
    # No tables created
    engine = make_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    backend = KeyValueBackend(sessionmaker(engine), key="k")

    assert backend.load() == Snapshot()
    assert backend.save(_snapshot()) is False
    engine.dispose()


# ----------------------------
# Remote
# ----------------------------

class _FakeClient:
    base_url = "http://remote"

    def __init__(self, state=None, ok=True, fail=False):
        self.state = state
        self.ok = ok
        self.fail = fail
        self.posted = []

    def get_state(self):
        if self.fail:
            raise ApiError("down")
        return self.state

    def put_state(self, data):
        if self.fail:
            raise ApiError("down")
        self.posted.append(data)
        return self.ok


def test_remote_backend_load_and_save():
    client = _FakeClient(state=_snapshot().to_wire())
    backend = RemoteBackend("http://remote", client=client)

    assert backend.load() == _snapshot()
    assert backend.save(_snapshot()) is True
    assert client.posted == [_snapshot().to_wire()]


def test_remote_backend_never_raises():
    backend = RemoteBackend("http://remote", client=_FakeClient(fail=True))
    assert backend.load() == Snapshot()
    assert backend.save(_snapshot()) is False
    assert backend.clear() is False


def test_remote_backend_reported_failure():
    backend = RemoteBackend("http://remote", client=_FakeClient(ok=False))
    assert backend.save(_snapshot()) is False


def test_state_api_client_wraps_transport_errors(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "request", boom)
    with pytest.raises(ApiError):
        StateApiClient("http://remote").get_state()


def test_state_api_client_posts_to_state_endpoint(monkeypatch):
    calls = []

    class _Resp:
        status_code = 200
        text = ""

        def json(self):
            return {"ok": True}

    def fake_request(method, url, **kwargs):
        calls.append((method, url, kwargs["json"]))
        return _Resp()

    monkeypatch.setattr(requests, "request", fake_request)
    assert StateApiClient("http://remote/").put_state({"items": [], "moves": []}) is True
    assert calls == [("POST", "http://remote/api/state", {"items": [], "moves": []})]


# ----------------------------
# Selection
# ----------------------------

def test_build_backend_by_setting(monkeypatch, tmp_path):
    monkeypatch.setenv("STATE_FILE", str(tmp_path / "s.json"))
    monkeypatch.setenv("REMOTE_STATE_URL", "http://remote")

    monkeypatch.setenv("STORAGE_BACKEND", "file")
    assert isinstance(build_backend(Settings()), JsonFileBackend)

    monkeypatch.setenv("STORAGE_BACKEND", "remote")
    assert isinstance(build_backend(Settings()), RemoteBackend)

    monkeypatch.setenv("STORAGE_BACKEND", "local")
    assert isinstance(build_backend(Settings(), session_factory=sessionmaker()), KeyValueBackend)
