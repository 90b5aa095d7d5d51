from __future__ import annotations

import asyncio
import contextlib
import itertools
from typing import Any

import httpx
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from inspection_drafts.reconcile.engine import ReconciliationEngine
from inspection_drafts.session.controller import DraftSessionController
from inspection_drafts.store.db import SqliteKeyValueStore
from inspection_drafts.store.records import RecordStore
from inspection_drafts.sync.client import Credentials, SyncClient
from inspection_drafts.sync.remote import InspectionAPI

TOKEN = "test-token"
BASE_URL = "http://testserver/api"


class FakeInspectionBackend:
    """In-memory stand-in for the inspections REST backend."""

    def __init__(self, token: str = TOKEN) -> None:
        self.token = token
        self.records: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self._ids = itertools.count(1)
        self.app = Starlette(
            routes=[
                Route("/api/inspections", self.list_or_create, methods=["GET", "POST"]),
                Route("/api/inspections/migrate", self.migrate, methods=["POST"]),
                Route(
                    "/api/inspections/{id}",
                    self.item,
                    methods=["GET", "PUT", "DELETE"],
                ),
            ]
        )

    def _authorized(self, request: Request) -> bool:
        return request.headers.get("authorization") == f"Bearer {self.token}"

    def _store(self, data: dict[str, Any]) -> dict[str, Any]:
        local_id = data.get("id")
        record = dict(data)
        record.pop("id", None)
        record["localId"] = local_id
        record["_id"] = self.records.get(local_id, {}).get("_id") or f"oid{next(self._ids)}"
        record["userId"] = "user-1"
        self.records[local_id] = record
        return record

    async def list_or_create(self, request: Request) -> JSONResponse:
        self.calls.append((request.method, request.url.path))
        if not self._authorized(request):
            return JSONResponse({"success": False, "error": "unauthorized"}, status_code=401)
        if request.method == "GET":
            return JSONResponse({"success": True, "inspections": list(self.records.values())})
        record = self._store(await request.json())
        return JSONResponse({"success": True, "inspection": record})

    async def item(self, request: Request) -> JSONResponse:
        draft_id = request.path_params["id"]
        self.calls.append((request.method, draft_id))
        if not self._authorized(request):
            return JSONResponse({"success": False, "error": "unauthorized"}, status_code=401)
        if draft_id not in self.records:
            return JSONResponse({"success": False, "error": "not found"}, status_code=404)
        if request.method == "GET":
            return JSONResponse({"success": True, "inspection": self.records[draft_id]})
        if request.method == "PUT":
            record = self._store(await request.json())
            return JSONResponse({"success": True, "inspection": record})
        del self.records[draft_id]
        return JSONResponse({"success": True, "message": "deleted"})

    async def migrate(self, request: Request) -> JSONResponse:
        self.calls.append((request.method, request.url.path))
        if not self._authorized(request):
            return JSONResponse({"success": False, "error": "unauthorized"}, status_code=401)
        body = await request.json()
        inspections = body.get("inspections")
        if not isinstance(inspections, dict):
            return JSONResponse({"success": False, "error": "invalid"}, status_code=400)
        for data in inspections.values():
            self._store(data)
        count = len(inspections)
        return JSONResponse(
            {"success": True, "count": count, "message": f"{count} vistorias migradas"}
        )


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> None:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


@pytest.fixture
def backend(tmp_path):
    kv = SqliteKeyValueStore(str(tmp_path / "inspections.sqlite"))
    yield kv
    kv.close()


@pytest.fixture
def store(backend) -> RecordStore:
    return RecordStore(backend, user_id="user-1")


@pytest.fixture
def fake_backend() -> FakeInspectionBackend:
    return FakeInspectionBackend()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(token=TOKEN, user_id="user-1")


@pytest.fixture
def api(fake_backend, credentials) -> InspectionAPI:
    return InspectionAPI(
        BASE_URL,
        credentials,
        transport=httpx.ASGITransport(app=fake_backend.app),
    )


@pytest.fixture
def sync(api, credentials) -> SyncClient:
    return SyncClient(api, credentials)


@pytest.fixture
def engine(store, sync) -> ReconciliationEngine:
    return ReconciliationEngine(store, sync)


@pytest.fixture
def offline_engine(store) -> ReconciliationEngine:
    return ReconciliationEngine(store, SyncClient(None, Credentials()))


@pytest.fixture
def controller(engine) -> DraftSessionController:
    return DraftSessionController(engine, autosave_interval_seconds=0.01)
