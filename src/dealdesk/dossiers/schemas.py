"""Pydantic schemas for dossiers (M&A mandates) and reminders.

Defines the structured types the client reads from the REST backend:
- Enums: DossierStatus, StatusFilter, KanbanStage
- Records: Dossier, Reminder, DashboardStats

Status values travel on the wire in their canonical server form (ACTIF,
CLOTURE, PAUSE, PERDU). The client-facing labels (Actif, Closed, Stand-by,
Failed) are presentation only; both spellings, plus the legacy STAND_BY and
FAILED codes, parse to the same canonical member.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


# ── Enums ───────────────────────────────────────────────────────────────────


class DossierStatus(str, Enum):
    """Lifecycle status of a mandate."""

    ACTIVE = "ACTIF"
    CLOSED = "CLOTURE"
    STAND_BY = "PAUSE"
    FAILED = "PERDU"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: str | DossierStatus) -> DossierStatus:
        """Resolve a canonical value, a client label or a legacy code.

        Raises:
            ValueError: If ``value`` matches no known spelling.
        """
        if isinstance(value, DossierStatus):
            return value
        try:
            return _STATUS_ALIASES[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown dossier status: {value!r}") from None


_STATUS_LABELS: dict[DossierStatus, str] = {
    DossierStatus.ACTIVE: "Actif",
    DossierStatus.CLOSED: "Closed",
    DossierStatus.STAND_BY: "Stand-by",
    DossierStatus.FAILED: "Failed",
}

# Keys are upper-cased spellings seen on the wire or in the UI.
_STATUS_ALIASES: dict[str, DossierStatus] = {
    "ACTIF": DossierStatus.ACTIVE,
    "ACTIVE": DossierStatus.ACTIVE,
    "CLOTURE": DossierStatus.CLOSED,
    "CLOTURÉ": DossierStatus.CLOSED,
    "CLÔTURE": DossierStatus.CLOSED,
    "CLÔTURÉ": DossierStatus.CLOSED,
    "CLOSED": DossierStatus.CLOSED,
    "PAUSE": DossierStatus.STAND_BY,
    "EN PAUSE": DossierStatus.STAND_BY,
    "PAUSED": DossierStatus.STAND_BY,
    "STAND-BY": DossierStatus.STAND_BY,
    "STAND_BY": DossierStatus.STAND_BY,
    "PERDU": DossierStatus.FAILED,
    "FAILED": DossierStatus.FAILED,
}


class StatusFilter(str, Enum):
    """Five-state status filter of the dossier list (ALL + one per status)."""

    ALL = "TOUS"
    ACTIVE = "ACTIF"
    CLOSED = "CLOTURE"
    STAND_BY = "PAUSE"
    FAILED = "PERDU"

    @property
    def status(self) -> DossierStatus | None:
        """The status this filter selects, or None for ALL."""
        if self is StatusFilter.ALL:
            return None
        return DossierStatus(self.value)

    @classmethod
    def parse(cls, value: str | StatusFilter) -> StatusFilter:
        """Resolve ALL/TOUS or any spelling DossierStatus.parse accepts."""
        if isinstance(value, StatusFilter):
            return value
        if value.strip().upper() in ("TOUS", "ALL"):
            return cls.ALL
        return cls(DossierStatus.parse(value).value)


class KanbanStage(str, Enum):
    """Deal-progression pipeline phases, declared in board order."""

    PREPARATION = "PREPARATION"
    PRE_MARKETING = "PRE_MARKETING"
    SCREENING = "SCREENING"
    DEAL_MAKING = "DEAL_MAKING"
    ROADSHOW = "ROADSHOW"
    PHASE_2 = "PHASE_2"
    EXCLUSIVITE = "EXCLUSIVITE"
    ROAD_TO_CLOSING = "ROAD_TO_CLOSING"

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS: dict[KanbanStage, str] = {
    KanbanStage.PREPARATION: "Préparation",
    KanbanStage.PRE_MARKETING: "Pre-marketing",
    KanbanStage.SCREENING: "Screening",
    KanbanStage.DEAL_MAKING: "Deal making",
    KanbanStage.ROADSHOW: "Roadshow",
    KanbanStage.PHASE_2: "Phase 2",
    KanbanStage.EXCLUSIVITE: "Exclusivité",
    KanbanStage.ROAD_TO_CLOSING: "Road to closing",
}

KANBAN_STAGES: list[KanbanStage] = list(KanbanStage)


# ── Dossier ─────────────────────────────────────────────────────────────────


class Dossier(BaseModel):
    """A tracked M&A mandate as returned by ``GET /api/dossiers``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    nom: str
    type: str
    statut: DossierStatus
    etape_kanban: KanbanStage = KanbanStage.PREPARATION
    date_debut: datetime | None = None
    date_cloture: datetime | None = None
    description: str | None = None
    societes_count: int = 0
    interactions_count: int = 0
    last_activity: datetime | None = None
    is_member: bool = False
    role: str | None = None

    @field_validator("statut", mode="before")
    @classmethod
    def _normalise_status(cls, value: object) -> object:
        if isinstance(value, str):
            return DossierStatus.parse(value)
        return value

    @field_validator("etape_kanban", mode="before")
    @classmethod
    def _default_stage(cls, value: object) -> object:
        return KanbanStage.PREPARATION if value is None else value


# ── Reminders ───────────────────────────────────────────────────────────────


class Reminder(BaseModel):
    """A follow-up reminder (``rappel``). Only overdue counts are consumed."""

    model_config = ConfigDict(extra="ignore")

    id: int
    date_echeance: datetime
    note: str | None = None
    dossier_id: int | None = None
    cree_par: str | None = None


class DashboardStats(BaseModel):
    """Aggregate statistics for the dashboard; the payload is server-defined."""

    model_config = ConfigDict(extra="allow")
