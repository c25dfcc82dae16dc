"""Unit tests for DossierApiClient against the in-memory fake backend.

Covers request construction for every endpoint, error taxonomy (transport
failure vs. non-2xx status vs. a 2xx body that does not match its
schema), and the absence of retries.
"""

from __future__ import annotations

from datetime import datetime

import httpx
import pytest

from src.dealdesk.api.client import (
    ApiError,
    ApiResponseError,
    ApiStatusError,
    ApiTransportError,
    DossierApiClient,
)
from src.dealdesk.dossiers.schemas import DossierStatus, KanbanStage
from src.dealdesk.interactions.schemas import InteractionCreate, InteractionType

from tests.conftest import BASE_URL, overdue_reminder


class TestDossierEndpoints:
    @pytest.mark.asyncio
    async def test_list_dossiers(self, api_client, backend) -> None:
        dossiers = await api_client.list_dossiers()
        assert [d.id for d in dossiers] == [1, 2, 3]
        assert backend.count("GET", "/api/dossiers") == 1

    @pytest.mark.asyncio
    async def test_list_member_only(self, api_client) -> None:
        dossiers = await api_client.list_dossiers(member_only=True)
        assert [d.id for d in dossiers] == [1, 2]

    @pytest.mark.asyncio
    async def test_update_status_sends_canonical_value(self, api_client, backend) -> None:
        dossier = await api_client.update_status(1, DossierStatus.STAND_BY)
        assert backend.dossiers[1]["statut"] == "PAUSE"
        assert dossier.statut is DossierStatus.STAND_BY

    @pytest.mark.asyncio
    async def test_update_stage(self, api_client, backend) -> None:
        dossier = await api_client.update_stage(1, KanbanStage.DEAL_MAKING)
        assert backend.dossiers[1]["etape_kanban"] == "DEAL_MAKING"
        assert dossier.etape_kanban is KanbanStage.DEAL_MAKING

    @pytest.mark.asyncio
    async def test_delete_dossier(self, api_client, backend) -> None:
        body = await api_client.delete_dossier(2)
        assert 2 not in backend.dossiers
        assert body["message"]

    @pytest.mark.asyncio
    async def test_dashboard_stats_keeps_server_fields(self, api_client) -> None:
        stats = await api_client.get_dashboard_stats()
        assert stats.model_extra == {"total": 3, "actifs": 1}


class TestInteractionAndReminderEndpoints:
    @pytest.mark.asyncio
    async def test_create_and_list_interactions(self, api_client, backend) -> None:
        payload = InteractionCreate(
            dossier_id=1,
            societe_id=4,
            type=InteractionType.NDA_SENT,
            date=datetime(2024, 3, 5, 14, 30),
            notes="NDA envoyé",
            auteur="Alice Martin",
        )
        created = await api_client.create_interaction(payload)
        assert created.id == 1
        assert backend.interactions[0]["date"] == "2024-03-05T14:30:00"

        by_dossier = await api_client.list_interactions(dossier_id=1)
        by_other = await api_client.list_interactions(dossier_id=2)
        assert [i.id for i in by_dossier] == [1]
        assert by_other == []

    @pytest.mark.asyncio
    async def test_overdue_reminders(self, api_client, backend) -> None:
        backend.reminders = [overdue_reminder(1), overdue_reminder(2, days=-3)]
        reminders = await api_client.list_overdue_reminders()
        assert [r.id for r in reminders] == [1]

    @pytest.mark.asyncio
    async def test_roadshow(self, api_client, backend) -> None:
        backend.roadshow[1] = [{"societe_id": 4, "statut": "nda_envoye"}]
        assert await api_client.get_roadshow(1) == [{"societe_id": 4, "statut": "nda_envoye"}]


class TestErrors:
    @pytest.mark.asyncio
    async def test_non_2xx_raises_status_error_with_server_message(self, api_client) -> None:
        with pytest.raises(ApiStatusError) as exc_info:
            await api_client.update_status(99, DossierStatus.CLOSED)
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Dossier non trouvé"

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self, api_client, backend) -> None:
        backend.fail("DELETE", "/api/dossiers/1", 503)
        with pytest.raises(ApiError):
            await api_client.delete_dossier(1)
        assert backend.count("DELETE", "/api/dossiers/1") == 1
        assert 1 in backend.dossiers

    @pytest.mark.asyncio
    async def test_transport_failure_raises_transport_error(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        client = DossierApiClient(BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(ApiTransportError) as exc_info:
            await client.list_dossiers()
        assert exc_info.value.method == "GET"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_non_json_error_uses_reason_phrase(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="bad gateway")

        client = DossierApiClient(BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(ApiStatusError) as exc_info:
            await client.list_dossiers()
        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"


class TestResponseBodies:
    @staticmethod
    def _client(response: httpx.Response) -> DossierApiClient:
        return DossierApiClient(BASE_URL, transport=httpx.MockTransport(lambda request: response))

    @pytest.mark.asyncio
    async def test_accented_status_spelling_accepted(self) -> None:
        body = {"id": 1, "nom": "A", "type": "CESSION", "statut": "Cloturé"}
        client = self._client(httpx.Response(200, json=body))
        dossier = await client.update_status(1, DossierStatus.CLOSED)
        assert dossier.statut is DossierStatus.CLOSED

    @pytest.mark.asyncio
    async def test_partial_body_raises_response_error(self) -> None:
        client = self._client(httpx.Response(200, json={"statut": "Cloturé"}))
        with pytest.raises(ApiResponseError) as exc_info:
            await client.update_status(1, DossierStatus.CLOSED)
        assert exc_info.value.method == "PATCH"
        assert exc_info.value.message.startswith("Réponse inattendue du serveur")

    @pytest.mark.asyncio
    async def test_unknown_status_in_listing_raises_response_error(self) -> None:
        body = [{"id": 1, "nom": "A", "type": "CESSION", "statut": "ARCHIVE"}]
        client = self._client(httpx.Response(200, json=body))
        with pytest.raises(ApiResponseError):
            await client.list_dossiers()

    @pytest.mark.asyncio
    async def test_unreadable_json_raises_response_error(self) -> None:
        client = self._client(httpx.Response(200, text="<html>maintenance</html>"))
        with pytest.raises(ApiResponseError) as exc_info:
            await client.list_overdue_reminders()
        assert isinstance(exc_info.value, ApiError)
        assert exc_info.value.path == "/api/rappels"
