"""Dossier detail view: roadshow table and interaction timeline of one mandate.

Both queries are mounted on the cache, so logging an interaction against the
dossier (which invalidates its roadshow key and every interactions key)
refreshes them in the background.
"""

from __future__ import annotations

from typing import Any

from src.dealdesk.api.client import DossierApiClient
from src.dealdesk.cache.keys import interactions_key, roadshow_key
from src.dealdesk.cache.query_cache import QueryCache, Subscription
from src.dealdesk.interactions.schemas import Interaction


class DossierDetailView:
    def __init__(self, client: DossierApiClient, cache: QueryCache, dossier_id: int) -> None:
        self._client = client
        self._cache = cache
        self.dossier_id = dossier_id
        self._roadshow_key = roadshow_key(dossier_id)
        self._interactions_key = interactions_key(dossier_id=dossier_id)
        self._subscriptions: list[Subscription] = []

    async def _roadshow(self) -> list[dict[str, Any]]:
        return await self._client.get_roadshow(self.dossier_id)

    async def _interactions(self) -> list[Interaction]:
        return await self._client.list_interactions(dossier_id=self.dossier_id)

    async def load(self) -> None:
        if not self._subscriptions:
            self._subscriptions = [
                self._cache.subscribe(self._roadshow_key, self._roadshow),
                self._cache.subscribe(self._interactions_key, self._interactions),
            ]
        await self._cache.fetch(self._roadshow_key)
        await self._cache.fetch(self._interactions_key)

    def unmount(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    @property
    def roadshow(self) -> list[dict[str, Any]]:
        return self._cache.get_data(self._roadshow_key) or []

    @property
    def interactions(self) -> list[Interaction]:
        """Timeline, most recent first."""
        items = self._cache.get_data(self._interactions_key) or []
        return sorted(items, key=lambda i: i.date.timestamp() if i.date else float("-inf"), reverse=True)
