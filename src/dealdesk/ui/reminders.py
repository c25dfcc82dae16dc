"""Overdue-reminder badge fed by a fixed-interval poll.

The badge is the only query in the client that refreshes on a timer. Each
tick forces a fetch of ``GET /api/rappels?echus=true`` through the QueryCache;
a tick that lands while the previous request is still in flight joins it
instead of issuing a second one.

Uses APScheduler's AsyncIOScheduler with an interval trigger.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.dealdesk.api.client import ApiError, DossierApiClient
from src.dealdesk.cache.keys import OVERDUE_REMINDERS
from src.dealdesk.cache.query_cache import QueryCache, Subscription
from src.dealdesk.dossiers.schemas import Reminder

logger = structlog.get_logger(__name__)

POLL_JOB_ID = "overdue_reminders_poll"


class ReminderBadge:
    """Polls overdue reminders and exposes their count.

    Args:
        client: REST client.
        cache: Shared query cache.
        interval_seconds: Poll period (60 seconds by default).
    """

    def __init__(
        self,
        client: DossierApiClient,
        cache: QueryCache,
        interval_seconds: int = 60,
    ) -> None:
        self._client = client
        self._cache = cache
        self._interval_seconds = interval_seconds
        self._scheduler: AsyncIOScheduler | None = None
        self._subscription: Subscription | None = None
        self._started = False

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    @property
    def is_running(self) -> bool:
        return self._started

    async def _query(self) -> list[Reminder]:
        return await self._client.list_overdue_reminders()

    @property
    def count(self) -> int:
        reminders = self._cache.get_data(OVERDUE_REMINDERS) or []
        return len(reminders)

    @property
    def badge(self) -> int | None:
        """Value shown on the sidebar item; None hides the badge."""
        return self.count or None

    async def poll(self) -> int:
        """Force one fetch and return the overdue count.

        Raises:
            ApiError: If the backend call fails.
        """
        await self._cache.fetch(OVERDUE_REMINDERS, self._query, force=True)
        return self.count

    async def _run_poll(self) -> None:
        try:
            count = await self.poll()
        except ApiError as exc:
            logger.warning("reminder_badge.poll_failed", error=exc.message)
            return
        logger.debug("reminder_badge.polled", overdue_count=count)

    def start(self) -> None:
        """Mount on the reminder key and schedule the poll (first run immediately).

        Must be called with a running event loop.
        """
        if self._started:
            return
        self._subscription = self._cache.subscribe(OVERDUE_REMINDERS, self._query)
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run_poll,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=POLL_JOB_ID,
            name="Overdue reminder count for the sidebar badge",
            next_run_time=datetime.now(timezone.utc),
            # Overlapping ticks are absorbed by the cache's in-flight sharing.
            max_instances=5,
            coalesce=False,
        )
        self._scheduler.start()
        self._started = True
        logger.info(
            "reminder_badge.started",
            interval_seconds=self._interval_seconds,
        )

    def stop(self) -> None:
        """Shut down the scheduler and unmount."""
        if self._scheduler is not None and self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("reminder_badge.stopped")
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def job(self):
        """The scheduled APScheduler job, or None when not started."""
        if self._scheduler is None:
            return None
        return self._scheduler.get_job(POLL_JOB_ID)
