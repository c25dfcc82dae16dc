"""Navigation as an explicit, observable side effect.

Controls never change location themselves. They emit a Navigate instruction
to a Navigator; the host (browser shell, CLI, test) decides how to honour it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Navigate:
    """Instruction to move to ``path``. ``full_page`` means a hard reload."""

    path: str
    full_page: bool = True


class Navigator:
    """Records emitted navigation instructions and forwards them to a handler."""

    def __init__(self, handler: Callable[[Navigate], None] | None = None) -> None:
        self._handler = handler
        self._emitted: list[Navigate] = []

    @property
    def emitted(self) -> list[Navigate]:
        return list(self._emitted)

    @property
    def last(self) -> Navigate | None:
        return self._emitted[-1] if self._emitted else None

    def navigate(self, path: str, full_page: bool = True) -> Navigate:
        instruction = Navigate(path=path, full_page=full_page)
        self._emitted.append(instruction)
        logger.info("navigation.emitted", path=path, full_page=full_page)
        if self._handler is not None:
            self._handler(instruction)
        return instruction
