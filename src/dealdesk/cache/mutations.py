"""Mutation boundary: run a write, then invalidate or notify.

Every control that writes to the backend goes through MutationRunner.run():
- success: invalidate the keys INVALIDATIONS declares for the mutation, then
  emit the success notification;
- failure (ApiError): emit a destructive notification and return a failed
  result. Nothing is re-raised and the cache is left untouched.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import structlog

from src.dealdesk.api.client import ApiError
from src.dealdesk.cache.keys import Mutation, QueryKey, keys_invalidated_by
from src.dealdesk.cache.query_cache import QueryCache
from src.dealdesk.ui.notifications import NotificationCenter

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class MutationResult(Generic[T]):
    """Outcome of one mutation call."""

    mutation: Mutation
    ok: bool
    data: T | None = None
    error: ApiError | None = None
    invalidated: list[QueryKey] = field(default_factory=list)


class MutationRunner:
    """Executes mutations against the shared QueryCache and NotificationCenter.

    Args:
        cache: Query cache whose keys are invalidated on success.
        notifications: Sink for success and error toasts.
    """

    def __init__(self, cache: QueryCache, notifications: NotificationCenter) -> None:
        self._cache = cache
        self._notifications = notifications

    @property
    def cache(self) -> QueryCache:
        return self._cache

    @property
    def notifications(self) -> NotificationCenter:
        return self._notifications

    async def run(
        self,
        mutation: Mutation,
        call: Callable[[], Awaitable[T]],
        *,
        dossier_id: int | None = None,
        success: tuple[str, str] | None = None,
        failure: tuple[str, str | None] = ("Erreur", None),
        on_success: Callable[[T], Any] | None = None,
    ) -> MutationResult[T]:
        """Run ``call`` as ``mutation``.

        Args:
            mutation: Which write this is; selects the invalidated keys.
            call: Zero-argument coroutine factory issuing the request.
            dossier_id: Dossier targeted, used for per-dossier invalidation.
            success: (title, description) toast on success, or None.
            failure: (title, description) toast on failure. A None description
                falls back to the server's error message.
            on_success: Optional hook run after invalidation with the result.

        Returns:
            MutationResult with ``ok`` False when the backend call failed.
        """
        try:
            data = await call()
        except ApiError as exc:
            logger.warning(
                "mutation.failed",
                mutation=mutation.value,
                dossier_id=dossier_id,
                error=exc.message,
            )
            title, description = failure
            self._notifications.error(title, description if description is not None else exc.message)
            return MutationResult(mutation=mutation, ok=False, error=exc)

        invalidated: list[QueryKey] = []
        for key in keys_invalidated_by(mutation, dossier_id):
            self._cache.invalidate(key)
            invalidated.append(key)

        logger.info(
            "mutation.succeeded",
            mutation=mutation.value,
            dossier_id=dossier_id,
            invalidated=invalidated,
        )
        if success is not None:
            self._notifications.success(*success)
        if on_success is not None:
            on_success(data)
        return MutationResult(mutation=mutation, ok=True, data=data, invalidated=invalidated)
