"""Transient, dismissible user notifications (the toast channel)."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Notification:
    id: int
    message: str
    description: str | None = None
    dismissed: bool = False


class Notifier:
    """Collect error notifications for the UI layer to display."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._notifications: list[Notification] = []

    def error(self, message: str, description: str | None = None) -> Notification:
        note = Notification(next(self._ids), message, description)
        self._notifications.append(note)
        if description:
            logger.warning("%s: %s", message, description)
        else:
            logger.warning("%s", message)
        return note

    def dismiss(self, notification_id: int) -> None:
        for note in self._notifications:
            if note.id == notification_id:
                note.dismissed = True

    def active(self) -> list[Notification]:
        return [n for n in self._notifications if not n.dismissed]


__all__ = ["Notification", "Notifier"]
