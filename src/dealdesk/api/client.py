"""Async HTTP client wrapper for the dossier CRM REST API.

Provides DossierApiClient covering every endpoint the client core consumes:
dossier listing, dashboard statistics, status and Kanban-stage updates,
deletion, interaction logging, roadshow detail and overdue reminders.

There is no retry layer: a transport failure, a non-2xx response or a 2xx
body that does not fit its schema is raised once as an ApiError and the
caller decides what to show. All methods
log with structlog.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from src.dealdesk.dossiers.schemas import (
    DashboardStats,
    Dossier,
    DossierStatus,
    KanbanStage,
    Reminder,
)
from src.dealdesk.interactions.schemas import Interaction, InteractionCreate

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# ── Errors ──────────────────────────────────────────────────────────────────


class ApiError(Exception):
    """Base error for any failed call to the REST backend."""

    def __init__(self, method: str, path: str, message: str) -> None:
        self.method = method
        self.path = path
        self.message = message
        super().__init__(f"{method} {path} failed: {message}")


class ApiTransportError(ApiError):
    """The request never produced a response (connection, DNS, read error)."""


class ApiStatusError(ApiError):
    """The server answered with a non-2xx status."""

    def __init__(self, method: str, path: str, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(method, path, message)


class ApiResponseError(ApiError):
    """A 2xx response whose body does not match the expected schema."""


def _error_message(response: httpx.Response) -> str:
    """Server-provided ``message`` when the body is JSON, else the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or f"HTTP {response.status_code}"


# ── Client ──────────────────────────────────────────────────────────────────


class DossierApiClient:
    """Async client for the dossier CRM REST API.

    Uses a fresh httpx.AsyncClient per call, mirroring how the rest of the
    codebase talks to external services.

    Args:
        base_url: Backend origin, e.g. ``http://localhost:5000``.
        timeout: Per-request timeout in seconds; None disables it.
        transport: Optional httpx transport (tests pass an ASGITransport).
        headers: Extra headers sent on every request (session cookie, etc.).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers = {"Accept": "application/json", **(headers or {})}

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client bound to the backend origin."""
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Issue one request and return the decoded JSON body (or None).

        Raises:
            ApiTransportError: On any transport-level failure.
            ApiStatusError: On any non-2xx response.
            ApiResponseError: If a 2xx body is not valid JSON.
        """
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            logger.warning(
                "api.transport_error",
                method=method,
                path=path,
                error=str(exc),
            )
            raise ApiTransportError(method, path, str(exc) or type(exc).__name__) from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "api.request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise ApiStatusError(method, path, response.status_code, message)

        logger.debug(
            "api.request_completed",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise self._response_error(method, path, "corps JSON illisible") from exc

    @staticmethod
    def _response_error(method: str, path: str, detail: str) -> ApiResponseError:
        logger.warning(
            "api.invalid_response",
            method=method,
            path=path,
            error=detail,
        )
        return ApiResponseError(method, path, f"Réponse inattendue du serveur ({detail})")

    def _decode(self, method: str, path: str, build: Callable[[], T]) -> T:
        """Run ``build`` over a decoded body, mapping schema mismatches to ApiResponseError."""
        try:
            return build()
        except (ValidationError, TypeError) as exc:
            detail = exc.errors()[0]["msg"] if isinstance(exc, ValidationError) else str(exc)
            raise self._response_error(method, path, detail) from exc

    # ── Dossiers ────────────────────────────────────────────────────────────

    async def list_dossiers(self, member_only: bool = False) -> list[Dossier]:
        """GET /api/dossiers, optionally restricted to the user's mandates."""
        params = {"membre": "true"} if member_only else None
        data = await self._request("GET", "/api/dossiers", params=params)
        return self._decode(
            "GET", "/api/dossiers",
            lambda: [Dossier.model_validate(item) for item in data or []],
        )

    async def get_dashboard_stats(self) -> DashboardStats:
        """GET /api/dashboard/stats."""
        data = await self._request("GET", "/api/dashboard/stats")
        return self._decode(
            "GET", "/api/dashboard/stats",
            lambda: DashboardStats.model_validate(data or {}),
        )

    async def update_status(self, dossier_id: int, status: DossierStatus) -> Dossier:
        """PATCH /api/dossiers/{id}/status with ``{"statut": <canonical value>}``."""
        path = f"/api/dossiers/{dossier_id}/status"
        data = await self._request("PATCH", path, json={"statut": status.value})
        logger.info(
            "api.dossier_status_patched",
            dossier_id=dossier_id,
            statut=status.value,
        )
        return self._decode("PATCH", path, lambda: Dossier.model_validate(data))

    async def update_stage(self, dossier_id: int, stage: KanbanStage) -> Dossier | None:
        """PATCH /api/dossiers/{id} with ``{"etape_kanban": <stage>}``."""
        path = f"/api/dossiers/{dossier_id}"
        data = await self._request("PATCH", path, json={"etape_kanban": stage.value})
        logger.info(
            "api.dossier_stage_patched",
            dossier_id=dossier_id,
            etape_kanban=stage.value,
        )
        return self._decode("PATCH", path, lambda: Dossier.model_validate(data) if data else None)

    async def delete_dossier(self, dossier_id: int) -> dict[str, Any]:
        """DELETE /api/dossiers/{id}. Returns the server's confirmation body."""
        data = await self._request("DELETE", f"/api/dossiers/{dossier_id}")
        logger.info("api.dossier_deleted", dossier_id=dossier_id)
        return data if isinstance(data, dict) else {}

    # ── Interactions ────────────────────────────────────────────────────────

    async def create_interaction(self, payload: InteractionCreate) -> Interaction:
        """POST /api/interactions."""
        data = await self._request("POST", "/api/interactions", json=payload.to_wire())
        interaction = self._decode(
            "POST", "/api/interactions",
            lambda: Interaction.model_validate(data),
        )
        logger.info(
            "api.interaction_created",
            interaction_id=interaction.id,
            dossier_id=payload.dossier_id,
            societe_id=payload.societe_id,
        )
        return interaction

    async def list_interactions(
        self,
        dossier_id: int | None = None,
        societe_id: int | None = None,
    ) -> list[Interaction]:
        """GET /api/interactions, filtered by dossier or company when given."""
        params: dict[str, Any] = {}
        if dossier_id is not None:
            params["dossier_id"] = dossier_id
        elif societe_id is not None:
            params["societe_id"] = societe_id
        data = await self._request("GET", "/api/interactions", params=params or None)
        return self._decode(
            "GET", "/api/interactions",
            lambda: [Interaction.model_validate(item) for item in data or []],
        )

    async def get_roadshow(self, dossier_id: int) -> list[dict[str, Any]]:
        """GET /api/roadshow/{dossier_id}: companies approached for a mandate."""
        data = await self._request("GET", f"/api/roadshow/{dossier_id}")
        return data or []

    # ── Reminders ───────────────────────────────────────────────────────────

    async def list_overdue_reminders(self) -> list[Reminder]:
        """GET /api/rappels?echus=true."""
        data = await self._request("GET", "/api/rappels", params={"echus": "true"})
        return self._decode(
            "GET", "/api/rappels",
            lambda: [Reminder.model_validate(item) for item in data or []],
        )
