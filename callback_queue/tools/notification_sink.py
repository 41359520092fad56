"""
Operator notification sinks.

The queue publishes structured ``QueueEvent`` objects; turning them into
toasts, emails or chat messages is the sink's job.
"""

import logging
from typing import Protocol

from callback_queue.schemas.callback_schema import EventLevel, QueueEvent

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    EventLevel.SUCCESS: logging.INFO,
    EventLevel.INFO: logging.INFO,
    EventLevel.WARNING: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
}


class NotificationSink(Protocol):
    def publish(self, event: QueueEvent) -> None:
        """Deliver one event to operators."""


class LoggingNotificationSink:
    """Writes every event to the application log."""

    def publish(self, event: QueueEvent) -> None:
        logger.log(
            _LOG_LEVELS[event.level],
            "%s: %s (callback=%s)",
            event.title, event.message, event.callback_id or "-",
        )


class CollectingNotificationSink:
    """Keeps published events in memory, for the console demo and tests."""

    def __init__(self) -> None:
        self.events: list[QueueEvent] = []

    def publish(self, event: QueueEvent) -> None:
        self.events.append(event)

    def titles(self) -> list[str]:
        return [e.title for e in self.events]

    def clear(self) -> None:
        self.events.clear()
