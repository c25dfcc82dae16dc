"""Client-side query cache, query keys and the mutation invalidation table."""

from src.dealdesk.cache.keys import (
    DASHBOARD_STATS,
    DOSSIERS,
    INTERACTIONS,
    INVALIDATIONS,
    OVERDUE_REMINDERS,
    Mutation,
    QueryKey,
    keys_invalidated_by,
    roadshow_key,
)
from src.dealdesk.cache.query_cache import QueryCache, Subscription

__all__ = [
    "DASHBOARD_STATS",
    "DOSSIERS",
    "INTERACTIONS",
    "INVALIDATIONS",
    "OVERDUE_REMINDERS",
    "Mutation",
    "QueryCache",
    "QueryKey",
    "Subscription",
    "keys_invalidated_by",
    "roadshow_key",
]
