"""Transient user-visible notifications (toasts).

Mutation controls never re-raise backend failures; they turn them into a
Notification pushed to a NotificationCenter. A UI layer drains or observes
the center; tests inspect it directly.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


class NotificationVariant(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """A single toast message."""

    title: str
    description: str = ""
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_error(self) -> bool:
        return self.variant == NotificationVariant.DESTRUCTIVE


class NotificationCenter:
    """Collects notifications and fans them out to listeners.

    Args:
        limit: Maximum notifications kept in history (oldest dropped first).
    """

    def __init__(self, limit: int = 50) -> None:
        self._limit = limit
        self._history: list[Notification] = []
        self._listeners: list[Callable[[Notification], None]] = []

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    @property
    def last(self) -> Notification | None:
        return self._history[-1] if self._history else None

    def add_listener(self, listener: Callable[[Notification], None]) -> None:
        self._listeners.append(listener)

    def notify(
        self,
        title: str,
        description: str = "",
        variant: NotificationVariant = NotificationVariant.DEFAULT,
    ) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self._history.append(notification)
        del self._history[: -self._limit]
        logger.info(
            "notification.emitted",
            title=title,
            variant=variant.value,
        )
        for listener in self._listeners:
            listener(notification)
        return notification

    def success(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description)

    def error(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, NotificationVariant.DESTRUCTIVE)

    def clear(self) -> None:
        self._history.clear()
