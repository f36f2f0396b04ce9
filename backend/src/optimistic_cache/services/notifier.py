"""Conflict notification: surface a version conflict with a single refresh action."""

from __future__ import annotations

import threading
from collections.abc import Awaitable, Callable
from typing import Protocol

from optimistic_cache.config import get_settings
from optimistic_cache.contracts.conflict import ConflictInfo
from optimistic_cache.logging_config import get_logger

logger = get_logger(__name__)

RefreshAction = Callable[[], Awaitable[None]]


class ConflictNotifier(Protocol):
    """Presentation layer for conflicts (toast, modal, log-only)."""

    def notify(self, conflict: ConflictInfo, refresh: RefreshAction, *, message: str | None = None) -> None: ...


class ConflictNotice:
    """A shown conflict awaiting acknowledgement. Never expires on its own."""

    def __init__(
        self,
        conflict: ConflictInfo,
        refresh: RefreshAction,
        *,
        title: str,
        message: str,
        on_close: Callable[["ConflictNotice"], None],
    ) -> None:
        self.conflict = conflict
        self.title = title
        self.message = message
        self.action_label = "Refresh"
        self._refresh = refresh
        self._on_close = on_close
        self.acknowledged = False

    async def refresh(self) -> None:
        """The primary action: reload the engine's cache keys and clear its conflict."""
        await self._refresh()
        self.acknowledged = True
        self._on_close(self)
        logger.info(
            "conflict_refreshed",
            expected_version=self.conflict.expected_version,
            actual_version=self.conflict.actual_version,
        )


class LoggingConflictNotifier:
    """Log-only notifier that keeps notices pending until someone refreshes."""

    def __init__(self, title: str | None = None, message: str | None = None) -> None:
        settings = get_settings()
        self.title = title or settings.conflict_title
        self.message = message or settings.conflict_message
        self._pending: list[ConflictNotice] = []
        self._lock = threading.Lock()

    def notify(self, conflict: ConflictInfo, refresh: RefreshAction, *, message: str | None = None) -> None:
        notice = ConflictNotice(
            conflict,
            refresh,
            title=self.title,
            message=message or self.message,
            on_close=self._close,
        )
        with self._lock:
            self._pending.append(notice)
        logger.warning(
            "conflict_notification_shown",
            title=notice.title,
            message=notice.message,
            expected_version=conflict.expected_version,
            actual_version=conflict.actual_version,
        )

    def _close(self, notice: ConflictNotice) -> None:
        # refreshing one notice closes all of them, like destroying every toast
        with self._lock:
            self._pending.clear()

    @property
    def pending(self) -> list[ConflictNotice]:
        """Notices still waiting for acknowledgement (oldest first)."""
        with self._lock:
            return list(self._pending)

    @property
    def latest(self) -> ConflictNotice | None:
        with self._lock:
            return self._pending[-1] if self._pending else None

    def dismiss_all(self) -> None:
        """Drop every pending notice without refreshing."""
        with self._lock:
            self._pending.clear()
