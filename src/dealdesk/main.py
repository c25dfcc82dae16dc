"""Application factory.

Wires settings, logging, the REST client, the shared query cache, the
notification center and the navigator, and hands out the views and controls
that sit on top of them. ``async with create_app() as app:`` starts the
reminder-badge poll and stops it on exit.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import structlog

from src.dealdesk.api.client import DossierApiClient
from src.dealdesk.cache.mutations import MutationRunner
from src.dealdesk.cache.query_cache import QueryCache
from src.dealdesk.config import Settings, get_settings
from src.dealdesk.dossiers.controls import (
    DeleteConfirmationFlow,
    KanbanStageControl,
    StatusTransitionControl,
)
from src.dealdesk.dossiers.detail import DossierDetailView
from src.dealdesk.dossiers.schemas import Dossier
from src.dealdesk.dossiers.views import DashboardStatsView, DossierListView
from src.dealdesk.interactions.form import InteractionForm
from src.dealdesk.interactions.schemas import Interaction
from src.dealdesk.observability.logging import configure_structlog
from src.dealdesk.ui.navigation import Navigate, Navigator
from src.dealdesk.ui.notifications import NotificationCenter
from src.dealdesk.ui.reminders import ReminderBadge
from src.dealdesk.ui.sidebar import NavItem, main_sidebar

logger = structlog.get_logger(__name__)


class DealDeskApp:
    """Composition root holding the shared client-side state.

    Args:
        settings: Application settings.
        transport: Optional httpx transport for the REST client.
        on_navigate: Host handler for emitted navigation instructions.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        on_navigate: Callable[[Navigate], None] | None = None,
    ) -> None:
        self.settings = settings
        self.client = DossierApiClient(
            base_url=settings.API_BASE_URL,
            timeout=settings.API_TIMEOUT,
            transport=transport,
        )
        self.cache = QueryCache()
        self.notifications = NotificationCenter()
        self.navigator = Navigator(on_navigate)
        self.runner = MutationRunner(self.cache, self.notifications)
        self.reminders = ReminderBadge(
            self.client,
            self.cache,
            interval_seconds=settings.REMINDER_POLL_INTERVAL_SECONDS,
        )

    # ── Lifecycle ───────────────────────────────────────────────────────────

    async def __aenter__(self) -> DealDeskApp:
        self.reminders.start()
        logger.info("app.started", api_base_url=self.settings.API_BASE_URL)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.reminders.stop()
        await self.cache.wait_idle()
        logger.info("app.stopped")

    # ── Views & controls ────────────────────────────────────────────────────

    def dossier_list(self, member_only: bool = False) -> DossierListView:
        return DossierListView(self.client, self.cache, member_only=member_only)

    def dossier_detail(self, dossier_id: int) -> DossierDetailView:
        return DossierDetailView(self.client, self.cache, dossier_id)

    def dashboard_stats(self) -> DashboardStatsView:
        return DashboardStatsView(self.client, self.cache)

    def status_control(self) -> StatusTransitionControl:
        return StatusTransitionControl(self.client, self.runner)

    def kanban_control(self, view: DossierListView | None = None) -> KanbanStageControl:
        return KanbanStageControl(
            self.client,
            self.runner,
            on_update=view.refresh if view is not None else None,
        )

    def delete_flow(self, dossier: Dossier) -> DeleteConfirmationFlow:
        return DeleteConfirmationFlow(
            self.client,
            self.runner,
            self.navigator,
            dossier,
            root_path=self.settings.APP_ROOT_PATH,
        )

    def interaction_form(
        self,
        societe_id: int | None,
        dossier_id: int | None = None,
        on_added: Callable[[Interaction], Any] | None = None,
    ) -> InteractionForm:
        return InteractionForm(
            self.client,
            self.runner,
            societe_id=societe_id,
            dossier_id=dossier_id,
            fallback_dossier_id=self.settings.FALLBACK_DOSSIER_ID,
            on_added=on_added,
        )

    def sidebar(self, active: str = "dashboard") -> list[NavItem]:
        return main_sidebar(self.reminders.count, active=active)

    # ── Authentication redirects ────────────────────────────────────────────

    def login(self) -> Navigate:
        return self.navigator.navigate(self.settings.LOGIN_PATH, full_page=True)

    def logout(self) -> Navigate:
        return self.navigator.navigate(self.settings.LOGOUT_PATH, full_page=True)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    on_navigate: Callable[[Navigate], None] | None = None,
) -> DealDeskApp:
    """Build a DealDeskApp with structured logging configured."""
    settings = settings or get_settings()
    configure_structlog(settings)
    return DealDeskApp(settings, transport=transport, on_navigate=on_navigate)
