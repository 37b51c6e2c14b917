"""
Event notifier for the Dealbuster system.

Subscribers are plain callables invoked synchronously in registration
order. They are expected to hand the event off (e.g. onto a queue) and
return immediately; a subscriber that raises is recorded and skipped so
that neither registry state nor the other subscribers are affected.
"""

from typing import List, Optional

from ..interfaces import EventSubscriber
from ..models.events import Event
from ..utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    ErrorTracker,
    get_error_tracker,
)
from ..utils.logging import get_logger

logger = get_logger("notifier")


class EventNotifier:
    """Fire-and-forget publish/subscribe hub."""

    def __init__(self, error_tracker: Optional[ErrorTracker] = None):
        self._subscribers: List[EventSubscriber] = []
        self.error_tracker = error_tracker or get_error_tracker()
        self.published_count = 0
        self.failed_deliveries = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: EventSubscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def publish(self, event: Event) -> None:
        self.published_count += 1
        logger.debug(
            "Publishing event",
            extra={"event_type": event.type.value, "deal_id": event.deal_id},
        )

        # Copy so a subscriber may unsubscribe itself during delivery
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                self.failed_deliveries += 1
                self.error_tracker.record_error(
                    component="notifier",
                    category=ErrorCategory.EVENT_DELIVERY,
                    severity=ErrorSeverity.LOW,
                    message=f"Subscriber failed to accept {event.type.value}: {e}",
                    exception=e,
                    context={"deal_id": event.deal_id},
                )
