"""Interaction-logging form: field state, schema validation, submission.

Validation runs synchronously against InteractionFormData before anything
touches the network; violations are reported per field and block submission.
The author of the interaction is the authenticated user bound in
core.identity, never a literal.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from src.dealdesk.api.client import DossierApiClient
from src.dealdesk.cache.keys import Mutation
from src.dealdesk.cache.mutations import MutationResult, MutationRunner
from src.dealdesk.core.identity import MissingIdentityError, get_current_user
from src.dealdesk.interactions.schemas import (
    Interaction,
    InteractionCreate,
    InteractionFormData,
)

logger = structlog.get_logger(__name__)

FIELDS = ("type", "date", "notes")
DATETIME_LOCAL_FORMAT = "%Y-%m-%dT%H:%M"


class FormValidationError(ValueError):
    """Per-field validation failure of a form."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        super().__init__("; ".join(f"{name}: {message}" for name, message in errors.items()))


def _field_errors(exc: ValidationError) -> dict[str, str]:
    """First message per field, without pydantic's "Value error, " prefix."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        name = str(err["loc"][0]) if err["loc"] else "__root__"
        message = err["msg"].removeprefix("Value error, ")
        errors.setdefault(name, message)
    return errors


class InteractionForm:
    """State and submission of the "new interaction" dialog.

    Args:
        client: REST client.
        runner: Mutation boundary.
        societe_id: Company the interaction is logged against (required).
        dossier_id: Owning dossier, when the dialog was opened from one.
        fallback_dossier_id: Dossier used when ``dossier_id`` is None.
        on_added: Parent callback receiving the created Interaction; may be
            a coroutine function.
        clock: Source of "now" for the default date.
    """

    def __init__(
        self,
        client: DossierApiClient,
        runner: MutationRunner,
        societe_id: int | None,
        dossier_id: int | None = None,
        fallback_dossier_id: int = 1,
        on_added: Callable[[Interaction], Any] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._client = client
        self._runner = runner
        self.societe_id = societe_id
        self.dossier_id = dossier_id
        self._fallback_dossier_id = fallback_dossier_id
        self._on_added = on_added
        self._clock = clock
        self.values: dict[str, str] = self.default_values()
        self.errors: dict[str, str] = {}
        self.is_open = False
        self.is_submitting = False

    def default_values(self) -> dict[str, str]:
        return {
            "type": "",
            "date": self._clock().strftime(DATETIME_LOCAL_FORMAT),
            "notes": "",
        }

    # ── Dialog ──────────────────────────────────────────────────────────────

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        """Close the dialog; closing always discards what was typed."""
        self.reset()
        self.is_open = False

    def reset(self) -> None:
        self.values = self.default_values()
        self.errors = {}

    # ── Fields ──────────────────────────────────────────────────────────────

    def set_value(self, name: str, value: str) -> None:
        if name not in FIELDS:
            raise KeyError(f"Unknown interaction form field: {name}")
        self.values[name] = value
        self.errors.pop(name, None)

    def validate(self) -> InteractionFormData:
        """Validate current values and refresh ``errors``.

        Raises:
            FormValidationError: If any field (or the company id) is invalid.
        """
        errors: dict[str, str] = {}
        data: InteractionFormData | None = None
        try:
            data = InteractionFormData.model_validate(self.values)
        except ValidationError as exc:
            errors.update(_field_errors(exc))
        if self.societe_id is None:
            errors["societe_id"] = "ID de société manquant"

        self.errors = errors
        if errors:
            raise FormValidationError(errors)
        return data

    # ── Submission ──────────────────────────────────────────────────────────

    def build_payload(self, data: InteractionFormData) -> InteractionCreate:
        """Assemble the POST body; raises MissingIdentityError if nobody is signed in."""
        user = get_current_user()
        return InteractionCreate(
            dossier_id=self.dossier_id if self.dossier_id is not None else self._fallback_dossier_id,
            societe_id=self.societe_id,
            contact_id=None,
            type=data.type,
            date=data.parsed_date,
            notes=data.notes,
            auteur=user.display_name,
        )

    async def submit(self) -> MutationResult[Interaction] | None:
        """Validate and POST the interaction.

        Returns:
            None when validation or identity resolution blocked the request,
            otherwise the MutationResult. On success the fields are reset and
            the parent callback is invoked; on failure values are kept.
        """
        try:
            data = self.validate()
        except FormValidationError as exc:
            logger.info("interaction_form.invalid", fields=sorted(exc.errors))
            return None

        try:
            payload = self.build_payload(data)
        except MissingIdentityError:
            logger.warning("interaction_form.no_identity", societe_id=self.societe_id)
            self._runner.notifications.error(
                "Erreur",
                "Utilisateur non authentifié : impossible d'enregistrer l'interaction.",
            )
            return None

        self.is_submitting = True
        try:
            result = await self._runner.run(
                Mutation.CREATE_INTERACTION,
                lambda: self._client.create_interaction(payload),
                dossier_id=self.dossier_id,
                success=("Interaction enregistrée", "L'interaction a été ajoutée avec succès."),
                failure=("Erreur", None),
            )
        finally:
            self.is_submitting = False

        if result.ok:
            self.reset()
            if self._on_added is not None:
                outcome = self._on_added(result.data)
                if inspect.isawaitable(outcome):
                    await outcome
        return result
