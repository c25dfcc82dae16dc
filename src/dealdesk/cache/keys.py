"""Query keys and the static mutation -> invalidated-keys table.

A query key is a tuple whose first element is the REST path the data comes
from; later elements narrow it (member-only listing, per-dossier filters).
Invalidating a key invalidates every cached key it prefixes, so
``DOSSIERS`` also covers ``("/api/dossiers", "membre")``.

INVALIDATIONS is the single place that declares which cached queries each
mutation can make stale. Templates containing ``{dossier_id}`` are resolved
per call and skipped when the mutation has no dossier id.
"""

from __future__ import annotations

from enum import Enum

QueryKey = tuple[str | int, ...]

# ── Query Keys ──────────────────────────────────────────────────────────────

DOSSIERS: QueryKey = ("/api/dossiers",)
DASHBOARD_STATS: QueryKey = ("/api/dashboard/stats",)
INTERACTIONS: QueryKey = ("/api/interactions",)
OVERDUE_REMINDERS: QueryKey = ("/api/rappels?echus=true",)


def dossiers_key(member_only: bool = False) -> QueryKey:
    return DOSSIERS + ("membre",) if member_only else DOSSIERS


def interactions_key(dossier_id: int | None = None, societe_id: int | None = None) -> QueryKey:
    if dossier_id is not None:
        return INTERACTIONS + ("dossier", dossier_id)
    if societe_id is not None:
        return INTERACTIONS + ("societe", societe_id)
    return INTERACTIONS


def roadshow_key(dossier_id: int) -> QueryKey:
    return (f"/api/roadshow/{dossier_id}",)


# ── Mutation -> Invalidation Table ──────────────────────────────────────────


class Mutation(str, Enum):
    """Every server-side write the client can issue."""

    UPDATE_STATUS = "update_status"
    UPDATE_STAGE = "update_stage"
    DELETE_DOSSIER = "delete_dossier"
    CREATE_INTERACTION = "create_interaction"


INVALIDATIONS: dict[Mutation, tuple[str, ...]] = {
    Mutation.UPDATE_STATUS: ("/api/dossiers", "/api/dashboard/stats"),
    Mutation.UPDATE_STAGE: ("/api/dossiers",),
    Mutation.DELETE_DOSSIER: ("/api/dossiers", "/api/dashboard/stats"),
    Mutation.CREATE_INTERACTION: ("/api/roadshow/{dossier_id}", "/api/interactions"),
}


def keys_invalidated_by(mutation: Mutation, dossier_id: int | None = None) -> list[QueryKey]:
    """Resolve the invalidation templates of ``mutation`` into query keys.

    Args:
        mutation: The mutation that just succeeded.
        dossier_id: Dossier the mutation targeted, if known.

    Returns:
        Keys in table order, without the per-dossier ones when ``dossier_id``
        is None.
    """
    keys: list[QueryKey] = []
    for template in INVALIDATIONS[mutation]:
        if "{dossier_id}" in template:
            if dossier_id is None:
                continue
            template = template.format(dossier_id=dossier_id)
        keys.append((template,))
    return keys
