"""Dossier list/filter view and its Kanban board projection.

DossierListView loads the dossier collection through the QueryCache, keeps
the selected status filter, and derives:
- ``displayed``: dossiers whose status equals the filter (all for ALL),
  preserving server order;
- ``board()``: the active dossiers of the displayed set grouped by Kanban
  stage in pipeline order.

DashboardStatsView mounts the dashboard aggregates on the same cache.

Load failures propagate as ApiError; the view does not retry.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, Field

from src.dealdesk.api.client import DossierApiClient
from src.dealdesk.cache.keys import DASHBOARD_STATS, dossiers_key
from src.dealdesk.cache.query_cache import QueryCache, Subscription
from src.dealdesk.dossiers.schemas import (
    KANBAN_STAGES,
    DashboardStats,
    Dossier,
    DossierStatus,
    KanbanStage,
    StatusFilter,
)

logger = structlog.get_logger(__name__)


def filter_dossiers(dossiers: list[Dossier], status_filter: StatusFilter) -> list[Dossier]:
    """Dossiers whose status equals ``status_filter``; all of them for ALL."""
    wanted = status_filter.status
    if wanted is None:
        return list(dossiers)
    return [d for d in dossiers if d.statut == wanted]


class KanbanColumn(BaseModel):
    """One stage column of the board."""

    stage: KanbanStage
    label: str
    dossiers: list[Dossier] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.dossiers)


def build_board(dossiers: list[Dossier]) -> list[KanbanColumn]:
    """Group active dossiers by stage; every stage gets a column, even empty."""
    active = [d for d in dossiers if d.statut == DossierStatus.ACTIVE]
    return [
        KanbanColumn(
            stage=stage,
            label=stage.label,
            dossiers=[d for d in active if d.etape_kanban == stage],
        )
        for stage in KANBAN_STAGES
    ]


class DossierListView:
    """Dossier collection with a client-side status filter.

    Args:
        client: REST client used as the query function.
        cache: Shared query cache.
        member_only: Restrict the listing to the user's own mandates.
    """

    def __init__(
        self,
        client: DossierApiClient,
        cache: QueryCache,
        member_only: bool = False,
    ) -> None:
        self._client = client
        self._cache = cache
        self._member_only = member_only
        self._key = dossiers_key(member_only)
        self._subscription: Subscription | None = None
        self.status_filter = StatusFilter.ALL

    async def _query(self) -> list[Dossier]:
        return await self._client.list_dossiers(member_only=self._member_only)

    @property
    def is_mounted(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def is_loading(self) -> bool:
        return self._subscription is not None and self._subscription.is_fetching

    def mount(self) -> Subscription:
        """Subscribe to the dossier key so invalidations trigger a refetch."""
        if not self.is_mounted:
            self._subscription = self._cache.subscribe(self._key, self._query)
        return self._subscription

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def load(self) -> list[Dossier]:
        """Mount if needed and return the collection (cached when fresh)."""
        self.mount()
        return await self._cache.fetch(self._key, self._query)

    async def refresh(self) -> list[Dossier]:
        """Re-fetch the collection; handed to child controls as their callback."""
        self.mount()
        return await self._cache.fetch(self._key, self._query, force=True)

    def set_filter(self, status_filter: StatusFilter | str) -> None:
        self.status_filter = StatusFilter.parse(status_filter)
        logger.debug("dossiers.filter_changed", status_filter=self.status_filter.value)

    @property
    def dossiers(self) -> list[Dossier]:
        return self._cache.get_data(self._key) or []

    @property
    def displayed(self) -> list[Dossier]:
        return filter_dossiers(self.dossiers, self.status_filter)

    def board(self) -> list[KanbanColumn]:
        return build_board(self.displayed)


class DashboardStatsView:
    """Aggregate dashboard figures, mounted so status changes and deletes refresh them."""

    def __init__(self, client: DossierApiClient, cache: QueryCache) -> None:
        self._client = client
        self._cache = cache
        self._subscription: Subscription | None = None

    async def _query(self) -> DashboardStats:
        return await self._client.get_dashboard_stats()

    @property
    def is_mounted(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def mount(self) -> Subscription:
        if not self.is_mounted:
            self._subscription = self._cache.subscribe(DASHBOARD_STATS, self._query)
        return self._subscription

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def load(self) -> DashboardStats:
        self.mount()
        return await self._cache.fetch(DASHBOARD_STATS, self._query)

    @property
    def stats(self) -> DashboardStats | None:
        return self._cache.get_data(DASHBOARD_STATS)
