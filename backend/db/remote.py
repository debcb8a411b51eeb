"""
Remote snapshot backend: a client for another StockPilot's /api/state.

GET /api/state returns the stored snapshot (or the empty default),
POST /api/state overwrites it and answers {"ok": true|false}.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import requests

from schemas.inventory import Snapshot
from .snapshot import SnapshotBackend, parse_snapshot

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    pass


@dataclass
class StateApiClient:
    base_url: str
    timeout: float = 30

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        try:
            resp = requests.request(
                method,
                url,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ApiError(f"{method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            raise ApiError(f"{method} {path} failed ({resp.status_code}): {resp.text}")
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON") from e

    def get_state(self) -> Any:
        return self._request("GET", "/api/state")

    def put_state(self, data: Any) -> bool:
        body = self._request("POST", "/api/state", json=data)
        return bool(isinstance(body, dict) and body.get("ok"))


class RemoteBackend(SnapshotBackend):
    name = "remote"

    def __init__(self, base_url: str, client: StateApiClient | None = None):
        self.client = client or StateApiClient(base_url)

    def load(self) -> Snapshot:
        try:
            return parse_snapshot(self.client.get_state())
        except ApiError:
            logger.exception("Could not load remote state from %s", self.client.base_url)
            return Snapshot()

    def save(self, snapshot: Snapshot) -> bool:
        try:
            ok = self.client.put_state(snapshot.to_wire())
        except ApiError:
            logger.exception("Could not save remote state to %s", self.client.base_url)
            return False
        if not ok:
            logger.warning("Remote state endpoint %s reported a failed write", self.client.base_url)
        return ok

    def clear(self) -> bool:
        return self.save(Snapshot())
