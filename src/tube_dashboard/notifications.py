"""Transient user notifications ("toasts")."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toast:
    level: str
    message: str


@dataclass
class Notifier:
    """Collects toasts until the page that shows them drains the queue."""

    pending: List[Toast] = field(default_factory=list)

    def success(self, message: str) -> None:
        self._push("success", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def _push(self, level: str, message: str) -> None:
        if level == "error":
            logger.warning("Notify user: %s", message)
        self.pending.append(Toast(level, message))

    def drain(self) -> List[Toast]:
        toasts, self.pending = self.pending, []
        return toasts
