"""Shared test helpers: import in test files via from tests.helpers import make_bet."""

from __future__ import annotations

import json
from typing import Any

import httpx

from src.connectors.remote import RemoteClient
from src.store.models import Bet, Event

REMOTE_URL = "https://test-project.supabase.co"
REMOTE_KEY = "test-anon-key"


def make_event(name: str = "Spain vs Italy", market: str = "1X2", coef: float = 1.8) -> Event:
    return Event(name=name, market=market, coef=coef)


def make_bet(**overrides) -> Bet:
    """Single 1.8 bet of 100 with sensible defaults. Override any field via kwargs."""
    defaults: dict[str, Any] = {
        "events": [make_event()],
        "amount": 100.0,
    }
    defaults.update(overrides)
    return Bet(**defaults)


def bet_row(id: int, *, status: str = "pending", profile_id: int | None = None,
            created_at: str = "2026-01-01T10:00:00+00:00", coef: float = 2.0,
            amount: float = 10.0) -> dict[str, Any]:
    """Wire-shaped bet record as the server would return it."""
    return {
        "id": id,
        "events": json.dumps([{"name": f"Game {id}", "market": "1X2", "coef": coef}]),
        "total_coef": coef,
        "amount": amount,
        "status": status,
        "type": "single",
        "profile_id": profile_id,
        "created_at": created_at,
        "image": None,
    }


class FakeRest:
    """In-memory PostgREST stand-in served through httpx.MockTransport.

    Supports select/order, eq.<value> filters, POST/PATCH/DELETE with
    return=representation. Set ``down`` to simulate a network failure or
    ``error_status`` to answer every table call with that HTTP status.
    """

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {"bets": [], "profiles": []}
        self.requests: list[httpx.Request] = []
        self.down = False
        self.error_status: int | None = None
        self._next_id = 100

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        self.tables[table].extend(dict(r) for r in rows)

    def calls(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]

    @staticmethod
    def _filters(request: httpx.Request) -> dict[str, str]:
        return {
            k: v[len("eq."):]
            for k, v in request.url.params.items()
            if k not in ("select", "order") and v.startswith("eq.")
        }

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, str]) -> bool:
        return all(str(row.get(k)) == v for k, v in filters.items())

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        table = request.url.path.rstrip("/").rsplit("/", 1)[-1]
        if table not in self.tables:
            # REST ルート (ping)
            return httpx.Response(200, json={})
        if self.error_status is not None:
            return httpx.Response(self.error_status, json={"message": "server exploded"})

        rows = self.tables[table]
        filters = self._filters(request)
        body = json.loads(request.content) if request.content else None

        if request.method == "GET":
            found = [dict(r) for r in rows if self._matches(r, filters)]
            found.sort(key=lambda r: str(r.get("created_at", "")), reverse=True)
            return httpx.Response(200, json=found)

        if request.method == "POST":
            self._next_id += 1
            row = {**body, "id": self._next_id}
            rows.append(row)
            return httpx.Response(201, json=[dict(row)])

        if request.method == "PATCH":
            updated = []
            for r in rows:
                if self._matches(r, filters):
                    r.update(body)
                    updated.append(dict(r))
            return httpx.Response(200, json=updated)

        if request.method == "DELETE":
            removed = [r for r in rows if self._matches(r, filters)]
            self.tables[table] = [r for r in rows if not self._matches(r, filters)]
            return httpx.Response(200, json=removed)

        return httpx.Response(405)

    def client(self) -> RemoteClient:
        return RemoteClient(REMOTE_URL, REMOTE_KEY, transport=httpx.MockTransport(self.handler))
