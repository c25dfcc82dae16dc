"""Dossier mutation controls: status transition, Kanban move, delete flow.

Each control issues its request through MutationRunner, so the keys it
invalidates are the ones declared in cache.keys.INVALIDATIONS and every
failure ends as a destructive notification instead of an exception.

- StatusTransitionControl: PATCH /api/dossiers/{id}/status. No debouncing;
  rapid changes are independent requests and the last response wins.
- KanbanStageControl: PATCH /api/dossiers/{id} one stage forward or back.
- DeleteConfirmationFlow: IDLE -> CONFIRMING -> DELETING -> IDLE, with a
  full-page navigation to the application root after a successful delete.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog

from src.dealdesk.api.client import DossierApiClient
from src.dealdesk.cache.keys import Mutation
from src.dealdesk.cache.mutations import MutationResult, MutationRunner
from src.dealdesk.dossiers.schemas import (
    KANBAN_STAGES,
    Dossier,
    DossierStatus,
    KanbanStage,
)
from src.dealdesk.ui.navigation import Navigator

logger = structlog.get_logger(__name__)

RefreshCallback = Callable[[], Awaitable[Any]]


# ── Status Transition ───────────────────────────────────────────────────────


class StatusTransitionControl:
    """Changes a dossier's status.

    Args:
        client: REST client.
        runner: Mutation boundary (invalidation + notifications).
    """

    OPTIONS: list[DossierStatus] = list(DossierStatus)

    def __init__(self, client: DossierApiClient, runner: MutationRunner) -> None:
        self._client = client
        self._runner = runner
        self._pending = 0

    @property
    def is_pending(self) -> bool:
        return self._pending > 0

    async def change_status(
        self,
        dossier: Dossier,
        status: DossierStatus | str,
    ) -> MutationResult[Dossier]:
        """Set ``dossier``'s status. Accepts a member, wire value or label."""
        target = DossierStatus.parse(status)
        self._pending += 1
        try:
            return await self._runner.run(
                Mutation.UPDATE_STATUS,
                lambda: self._client.update_status(dossier.id, target),
                dossier_id=dossier.id,
                success=(
                    "Statut mis à jour",
                    f'Le statut du mandat "{dossier.nom}" a été mis à jour avec succès.',
                ),
                failure=("Erreur", None),
            )
        finally:
            self._pending -= 1


# ── Kanban Stage ────────────────────────────────────────────────────────────


class Direction(str, Enum):
    PREVIOUS = "previous"
    NEXT = "next"


class KanbanStageControl:
    """Moves dossiers one stage along the pipeline.

    Only one dossier is reported as moving at a time; ``moving`` is cleared
    when the request settles, whatever the outcome.

    Args:
        client: REST client.
        runner: Mutation boundary.
        on_update: Parent refresh callback, awaited after a successful move.
    """

    def __init__(
        self,
        client: DossierApiClient,
        runner: MutationRunner,
        on_update: RefreshCallback | None = None,
    ) -> None:
        self._client = client
        self._runner = runner
        self._on_update = on_update
        self.moving: int | None = None

    @staticmethod
    def target_stage(dossier: Dossier, direction: Direction | str) -> KanbanStage | None:
        """Neighbouring stage in ``direction``, or None at either end."""
        index = KANBAN_STAGES.index(dossier.etape_kanban)
        if Direction(direction) == Direction.NEXT:
            index += 1
        else:
            index -= 1
        if 0 <= index < len(KANBAN_STAGES):
            return KANBAN_STAGES[index]
        return None

    def can_move(self, dossier: Dossier, direction: Direction | str) -> bool:
        return self.moving != dossier.id and self.target_stage(dossier, direction) is not None

    async def move(
        self,
        dossier: Dossier,
        direction: Direction | str,
    ) -> MutationResult[Dossier | None] | None:
        """Move ``dossier``; returns None without a request at the pipeline ends."""
        stage = self.target_stage(dossier, direction)
        if stage is None:
            return None

        self.moving = dossier.id
        try:
            result = await self._runner.run(
                Mutation.UPDATE_STAGE,
                lambda: self._client.update_stage(dossier.id, stage),
                dossier_id=dossier.id,
                success=("Étape mise à jour", "Le dossier a été déplacé avec succès"),
                failure=("Erreur", "Impossible de mettre à jour l'étape du dossier"),
            )
        finally:
            self.moving = None

        if result.ok and self._on_update is not None:
            await self._on_update()
        return result


# ── Delete Confirmation ─────────────────────────────────────────────────────


class DeleteState(str, Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    DELETING = "deleting"


class InvalidFlowTransitionError(ValueError):
    """Raised when a delete-flow step is requested from the wrong state."""

    def __init__(self, from_state: DeleteState, action: str) -> None:
        self.from_state = from_state
        self.action = action
        super().__init__(f"Cannot {action} while delete flow is {from_state.value}")


class DeleteConfirmationFlow:
    """Two-phase destructive action on one dossier.

    The dialog is open in CONFIRMING and DELETING. Whether the request
    succeeds or fails, the flow returns to IDLE (dialog closed).

    Args:
        client: REST client.
        runner: Mutation boundary.
        navigator: Receives the post-delete redirect.
        dossier: Dossier to delete.
        root_path: Redirect target after success.
    """

    def __init__(
        self,
        client: DossierApiClient,
        runner: MutationRunner,
        navigator: Navigator,
        dossier: Dossier,
        root_path: str = "/",
    ) -> None:
        self._client = client
        self._runner = runner
        self._navigator = navigator
        self._dossier = dossier
        self._root_path = root_path
        self.state = DeleteState.IDLE

    @property
    def dialog_open(self) -> bool:
        return self.state != DeleteState.IDLE

    @property
    def is_deleting(self) -> bool:
        return self.state == DeleteState.DELETING

    def request_delete(self) -> None:
        """Open the confirmation dialog. No request is issued."""
        if self.state != DeleteState.IDLE:
            raise InvalidFlowTransitionError(self.state, "request delete")
        self.state = DeleteState.CONFIRMING

    def cancel(self) -> None:
        if self.state == DeleteState.DELETING:
            raise InvalidFlowTransitionError(self.state, "cancel")
        self.state = DeleteState.IDLE

    async def confirm(self) -> MutationResult[dict]:
        """Issue the DELETE; close the dialog; redirect on success."""
        if self.state != DeleteState.CONFIRMING:
            raise InvalidFlowTransitionError(self.state, "confirm")

        self.state = DeleteState.DELETING
        dossier = self._dossier
        try:
            result = await self._runner.run(
                Mutation.DELETE_DOSSIER,
                lambda: self._client.delete_dossier(dossier.id),
                dossier_id=dossier.id,
                success=(
                    "Mandat supprimé",
                    f'Le mandat "{dossier.nom}" a été supprimé définitivement.',
                ),
                failure=(
                    "Erreur de suppression",
                    "Impossible de supprimer le mandat. Veuillez réessayer.",
                ),
            )
        finally:
            self.state = DeleteState.IDLE

        if result.ok:
            self._navigator.navigate(self._root_path, full_page=True)
        else:
            logger.info("dossier.delete_aborted", dossier_id=dossier.id)
        return result
