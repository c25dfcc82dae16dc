"""Test fixtures for the dealdesk client core.

Provides:
- FakeBackend: in-memory stand-in for the CRM REST API, served by a FastAPI
  app and reached through httpx.ASGITransport (no network)
- Request log and failure injection on the fake backend
- DossierApiClient, QueryCache, NotificationCenter, Navigator and
  MutationRunner wired to the fake backend
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse

from src.dealdesk.api.client import DossierApiClient
from src.dealdesk.cache.mutations import MutationRunner
from src.dealdesk.cache.query_cache import QueryCache
from src.dealdesk.ui.navigation import Navigator
from src.dealdesk.ui.notifications import NotificationCenter

BASE_URL = "http://test"


# ── Fake Backend ────────────────────────────────────────────────────────────


def make_dossier(dossier_id: int, statut: str = "ACTIF", **overrides: Any) -> dict[str, Any]:
    """Server-shaped dossier row with sensible defaults."""
    row = {
        "id": dossier_id,
        "nom": f"Projet {dossier_id}",
        "type": "CESSION",
        "statut": statut,
        "etape_kanban": "PREPARATION",
        "date_debut": "2024-01-15T09:00:00Z",
        "date_cloture": None,
        "description": "",
        "societes_count": 0,
        "interactions_count": 0,
        "last_activity": None,
        "is_member": True,
        "role": "responsable",
    }
    row.update(overrides)
    return row


class FakeBackend:
    """In-memory CRM backend with a request log and failure injection."""

    def __init__(self) -> None:
        self.dossiers: dict[int, dict[str, Any]] = {}
        self.interactions: list[dict[str, Any]] = []
        self.reminders: list[dict[str, Any]] = []
        self.roadshow: dict[int, list[dict[str, Any]]] = {}
        self.requests: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], int] = {}

    def seed_dossiers(self, *rows: dict[str, Any]) -> None:
        for row in rows:
            self.dossiers[row["id"]] = row

    def fail(self, method: str, path: str, status_code: int = 500) -> None:
        """Make every ``method path`` request answer ``status_code``."""
        self.failures[(method, path)] = status_code

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p == path)


def build_backend_app(backend: FakeBackend) -> FastAPI:
    app = FastAPI()

    @app.middleware("http")
    async def record_and_fail(request: Request, call_next):
        key = (request.method, request.url.path)
        backend.requests.append(key)
        status_code = backend.failures.get(key)
        if status_code is not None:
            return JSONResponse(status_code=status_code, content={"message": "Erreur serveur simulée"})
        return await call_next(request)

    @app.get("/api/dossiers")
    async def list_dossiers(membre: str | None = None):
        rows = list(backend.dossiers.values())
        if membre == "true":
            rows = [row for row in rows if row["is_member"]]
        return rows

    @app.get("/api/dashboard/stats")
    async def dashboard_stats():
        rows = list(backend.dossiers.values())
        return {
            "total": len(rows),
            "actifs": sum(1 for row in rows if row["statut"] == "ACTIF"),
        }

    @app.patch("/api/dossiers/{dossier_id}/status")
    async def update_status(dossier_id: int, payload: dict[str, Any] = Body(...)):
        statut = payload.get("statut")
        if not statut:
            return JSONResponse(status_code=400, content={"message": "Statut requis"})
        row = backend.dossiers.get(dossier_id)
        if row is None:
            return JSONResponse(status_code=404, content={"message": "Dossier non trouvé"})
        row["statut"] = statut
        return row

    @app.patch("/api/dossiers/{dossier_id}")
    async def patch_dossier(dossier_id: int, payload: dict[str, Any] = Body(...)):
        row = backend.dossiers.get(dossier_id)
        if row is None:
            return JSONResponse(status_code=404, content={"message": "Dossier non trouvé"})
        row.update(payload)
        return row

    @app.delete("/api/dossiers/{dossier_id}")
    async def delete_dossier(dossier_id: int):
        if backend.dossiers.pop(dossier_id, None) is None:
            return JSONResponse(status_code=404, content={"message": "Dossier non trouvé"})
        return {"message": "Dossier supprimé avec succès"}

    @app.get("/api/interactions")
    async def list_interactions(dossier_id: int | None = None, societe_id: int | None = None):
        rows = backend.interactions
        if dossier_id is not None:
            rows = [row for row in rows if row["dossier_id"] == dossier_id]
        elif societe_id is not None:
            rows = [row for row in rows if row["societe_id"] == societe_id]
        return rows

    @app.post("/api/interactions", status_code=201)
    async def create_interaction(payload: dict[str, Any] = Body(...)):
        row = {"id": len(backend.interactions) + 1, **payload}
        backend.interactions.append(row)
        return row

    @app.get("/api/roadshow/{dossier_id}")
    async def roadshow(dossier_id: int):
        return backend.roadshow.get(dossier_id, [])

    @app.get("/api/rappels")
    async def list_reminders(echus: str | None = None):
        if echus != "true":
            return backend.reminders
        now = datetime.now(timezone.utc)
        return [
            row for row in backend.reminders
            if datetime.fromisoformat(row["date_echeance"]) < now
        ]

    return app


def overdue_reminder(reminder_id: int, days: int = 2) -> dict[str, Any]:
    due = datetime.now(timezone.utc) - timedelta(days=days)
    return {"id": reminder_id, "date_echeance": due.isoformat(), "note": "Relancer", "cree_par": "Alice"}


# ── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture
def backend() -> FakeBackend:
    """Backend seeded with three dossiers: Active, Closed, Failed."""
    fake = FakeBackend()
    fake.seed_dossiers(
        make_dossier(1, "ACTIF", nom="Alpha", etape_kanban="SCREENING"),
        make_dossier(2, "CLOTURE", nom="Beta"),
        make_dossier(3, "PERDU", nom="Gamma", is_member=False),
    )
    return fake


@pytest.fixture
def transport(backend: FakeBackend) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=build_backend_app(backend))


@pytest.fixture
def api_client(transport: httpx.ASGITransport) -> DossierApiClient:
    return DossierApiClient(base_url=BASE_URL, transport=transport)


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def notifications() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def navigator() -> Navigator:
    return Navigator()


@pytest.fixture
def runner(cache: QueryCache, notifications: NotificationCenter) -> MutationRunner:
    return MutationRunner(cache, notifications)
