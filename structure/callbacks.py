"""Notification and selection collaborators used by the structure engine."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable

from tools.ids import now_ms

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    ACTION = "action"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A user-visible message about a structural edit."""
    level: NoticeLevel
    message: str
    details: dict = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)


@runtime_checkable
class Notifier(Protocol):
    """Protocol for anything that can surface notifications (toast, log pane, ...)."""

    def notify(self, notification: Notification) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes notifications to the standard logger."""

    _LEVELS = {
        NoticeLevel.ACTION: logging.INFO,
        NoticeLevel.INFO: logging.INFO,
        NoticeLevel.SUCCESS: logging.INFO,
        NoticeLevel.WARNING: logging.WARNING,
        NoticeLevel.ERROR: logging.ERROR,
    }

    def notify(self, notification: Notification) -> None:
        logger.log(
            self._LEVELS[notification.level],
            "[%s] %s %s",
            notification.level.value,
            notification.message,
            notification.details or "",
        )


class NotificationBus:
    """Publish-subscribe channel for notifications.

    Subscribers are called in subscription order. A failing subscriber is
    logged and skipped so the others still receive the notification.
    """

    def __init__(self):
        self._handlers: list[Callable[[Notification], None]] = []

    def subscribe(self, handler: Callable[[Notification], None]) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def notify(self, notification: Notification) -> None:
        for handler in list(self._handlers):
            try:
                handler(notification)
            except Exception:
                logger.exception("Notification handler %r failed", handler)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)


@runtime_checkable
class SelectionState(Protocol):
    """The active-chapter pointer, owned outside the structure engine."""

    @property
    def active_chapter_id(self) -> Optional[str]:
        ...

    def select(self, chapter_id: str) -> None:
        ...

    def clear(self) -> None:
        ...


class NovelSelection:
    """Default selection state stored on ``Novel.active_chapter_id``."""

    def __init__(self, novel):
        self._novel = novel

    @property
    def active_chapter_id(self) -> Optional[str]:
        return self._novel.active_chapter_id

    def select(self, chapter_id: str) -> None:
        self._novel.active_chapter_id = chapter_id

    def clear(self) -> None:
        self._novel.active_chapter_id = None
