"""Unit tests for dossier and interaction schemas.

Tests cover:
- DossierStatus: canonical values, client labels, legacy codes, unknown values
- StatusFilter: ALL vs. per-status selection
- Dossier: status normalisation, stage default, extra fields ignored
- InteractionFormData: required fields, ISO date, blank notes
- InteractionCreate: wire rendering
"""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from src.dealdesk.dossiers.schemas import (
    KANBAN_STAGES,
    Dossier,
    DossierStatus,
    KanbanStage,
    StatusFilter,
)
from src.dealdesk.interactions.schemas import (
    InteractionCreate,
    InteractionFormData,
    InteractionType,
)


# ── DossierStatus ───────────────────────────────────────────────────────────


class TestDossierStatus:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("ACTIF", DossierStatus.ACTIVE),
            ("Actif", DossierStatus.ACTIVE),
            ("Closed", DossierStatus.CLOSED),
            ("CLOTURE", DossierStatus.CLOSED),
            ("Stand-by", DossierStatus.STAND_BY),
            ("STAND_BY", DossierStatus.STAND_BY),
            ("PAUSE", DossierStatus.STAND_BY),
            ("Failed", DossierStatus.FAILED),
            ("PERDU", DossierStatus.FAILED),
            ("Cloturé", DossierStatus.CLOSED),
            ("Clôturé", DossierStatus.CLOSED),
            ("En pause", DossierStatus.STAND_BY),
            ("Paused", DossierStatus.STAND_BY),
        ],
    )
    def test_parse_accepts_every_known_spelling(self, raw: str, expected: DossierStatus) -> None:
        assert DossierStatus.parse(raw) is expected

    def test_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown dossier status"):
            DossierStatus.parse("ARCHIVED")

    def test_labels_are_client_facing(self) -> None:
        assert [s.label for s in DossierStatus] == ["Actif", "Closed", "Stand-by", "Failed"]

    def test_filter_all_selects_nothing_specific(self) -> None:
        assert StatusFilter.ALL.status is None
        assert StatusFilter.CLOSED.status is DossierStatus.CLOSED
        assert len(StatusFilter) == 5

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("TOUS", StatusFilter.ALL),
            ("all", StatusFilter.ALL),
            ("Closed", StatusFilter.CLOSED),
            ("Stand-by", StatusFilter.STAND_BY),
            ("Actif", StatusFilter.ACTIVE),
            ("PERDU", StatusFilter.FAILED),
        ],
    )
    def test_filter_parse_accepts_labels(self, raw: str, expected: StatusFilter) -> None:
        assert StatusFilter.parse(raw) is expected

    def test_filter_parse_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            StatusFilter.parse("Archived")


# ── Dossier ─────────────────────────────────────────────────────────────────


class TestDossier:
    def test_status_label_normalised_to_wire_value(self) -> None:
        dossier = Dossier.model_validate({"id": 1, "nom": "A", "type": "CESSION", "statut": "Closed"})
        assert dossier.statut is DossierStatus.CLOSED
        assert dossier.statut.value == "CLOTURE"

    def test_null_stage_defaults_to_preparation(self) -> None:
        dossier = Dossier.model_validate(
            {"id": 1, "nom": "A", "type": "LEVEE", "statut": "ACTIF", "etape_kanban": None}
        )
        assert dossier.etape_kanban is KanbanStage.PREPARATION

    def test_extra_server_fields_ignored(self) -> None:
        dossier = Dossier.model_validate(
            {"id": 1, "nom": "A", "type": "CESSION", "statut": "ACTIF", "retainer_montant": 10000}
        )
        assert not hasattr(dossier, "retainer_montant")

    def test_kanban_stages_in_pipeline_order(self) -> None:
        assert KANBAN_STAGES[0] is KanbanStage.PREPARATION
        assert KANBAN_STAGES[-1] is KanbanStage.ROAD_TO_CLOSING
        assert len(KANBAN_STAGES) == 8


# ── Interactions ────────────────────────────────────────────────────────────


class TestInteractionFormData:
    def test_valid_form(self) -> None:
        data = InteractionFormData(type="appel", date="2024-01-01T10:00", notes="Discussed terms")
        assert data.type is InteractionType.CALL
        assert data.parsed_date == datetime(2024, 1, 1, 10, 0)

    def test_empty_notes_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            InteractionFormData(type="appel", date="2024-01-01T10:00", notes="   ")
        assert exc_info.value.errors()[0]["loc"] == ("notes",)

    def test_empty_type_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            InteractionFormData(type="", date="2024-01-01T10:00", notes="x")
        assert "Le type d'interaction est requis" in str(exc_info.value)

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            InteractionFormData(type="fax", date="2024-01-01T10:00", notes="x")

    def test_non_iso_date_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            InteractionFormData(type="email", date="01/01/2024", notes="x")
        assert exc_info.value.errors()[0]["loc"] == ("date",)


def test_interaction_create_wire_format() -> None:
    payload = InteractionCreate(
        dossier_id=1,
        societe_id=7,
        type=InteractionType.MEETING,
        date=datetime(2024, 1, 1, 10, 0),
        notes="Kick-off",
        auteur="Alice Martin",
    )
    assert payload.to_wire() == {
        "dossier_id": 1,
        "societe_id": 7,
        "contact_id": None,
        "type": "reunion",
        "date": "2024-01-01T10:00:00",
        "notes": "Kick-off",
        "auteur": "Alice Martin",
    }
