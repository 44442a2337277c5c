# reselec/client/notifications.py

"""
Transient notifications ("toasts") shown to the user.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

LEVELS = ("info", "success", "warning", "error")

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


@dataclass(frozen=True)
class Notification:
    id: int
    level: str
    message: str
    retry: Optional[Callable[[], Awaitable[Any]]] = None


Listener = Callable[[Tuple[Notification, ...]], None]


class Notifier:
    """
    Holds the notifications currently displayed and informs subscribers of every change.
    """

    def __init__(self):
        self._items: List[Notification] = []
        self._listeners: List[Listener] = []
        self._ids = itertools.count(1)

    @property
    def notifications(self) -> Tuple[Notification, ...]:
        return tuple(self._items)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener and returns the function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(
        self, level: str, message: str, retry: Optional[Callable[[], Awaitable[Any]]] = None
    ) -> Notification:
        if level not in LEVELS:
            raise ValueError(f"Unknown notification level: {level}")
        notification = Notification(id=next(self._ids), level=level, message=message, retry=retry)
        self._items.append(notification)
        logger.log(_LOG_LEVELS[level], "[%s] %s", level, message)
        self._publish()
        return notification

    def info(self, message: str) -> Notification:
        return self.notify("info", message)

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def warning(self, message: str) -> Notification:
        return self.notify("warning", message)

    def error(self, message: str, retry: Optional[Callable[[], Awaitable[Any]]] = None) -> Notification:
        return self.notify("error", message, retry=retry)

    def dismiss(self, notification_id: int) -> None:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        if len(self._items) != before:
            self._publish()

    def clear(self) -> None:
        self._items = []
        self._publish()

    def _publish(self) -> None:
        snapshot = self.notifications
        for listener in list(self._listeners):
            listener(snapshot)
