"""Pydantic schemas for interaction logging.

- InteractionType: closed set of contact-event kinds offered by the form
- InteractionFormData: the synchronous validation schema of the form fields
- InteractionCreate: the POST /api/interactions payload
- Interaction: a created (immutable) interaction as returned by the server
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InteractionType(str, Enum):
    """Kinds of logged contact events."""

    CALL = "appel"
    EMAIL = "email"
    MEETING = "reunion"
    NDA_SENT = "nda"
    TEASER_SENT = "teaser"
    OTHER = "autre"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS: dict[InteractionType, str] = {
    InteractionType.CALL: "Appel téléphonique",
    InteractionType.EMAIL: "Email",
    InteractionType.MEETING: "Réunion",
    InteractionType.NDA_SENT: "Envoi NDA",
    InteractionType.TEASER_SENT: "Envoi Teaser",
    InteractionType.OTHER: "Autre",
}


class InteractionFormData(BaseModel):
    """Field-level validation of the interaction form.

    ``date`` keeps the raw ``datetime-local`` string (e.g. ``2024-01-01T10:00``)
    and is only required to be ISO-parseable; ``parsed_date`` exposes the
    parsed value.
    """

    type: InteractionType
    date: str = Field(min_length=1)
    notes: str

    @field_validator("type", mode="before")
    @classmethod
    def _type_required(cls, value: object) -> object:
        if value is None or value == "":
            raise ValueError("Le type d'interaction est requis")
        return value

    @field_validator("date")
    @classmethod
    def _date_iso(cls, value: str) -> str:
        try:
            datetime.fromisoformat(value)
        except ValueError:
            raise ValueError("La date doit être au format ISO 8601") from None
        return value

    @field_validator("notes")
    @classmethod
    def _notes_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Les notes sont requises")
        return value

    @property
    def parsed_date(self) -> datetime:
        return datetime.fromisoformat(self.date)


class InteractionCreate(BaseModel):
    """Payload of ``POST /api/interactions``."""

    dossier_id: int
    societe_id: int
    contact_id: int | None = None
    type: InteractionType
    date: datetime
    notes: str
    auteur: str

    def to_wire(self) -> dict:
        """JSON body with the date rendered as ISO 8601."""
        return self.model_dump(mode="json")


class Interaction(BaseModel):
    """A logged interaction. Immutable once created."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    dossier_id: int | None = None
    societe_id: int | None = None
    contact_id: int | None = None
    type: str
    date: datetime | None = None
    notes: str | None = None
    auteur: str | None = None
