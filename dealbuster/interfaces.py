"""
Protocol interfaces for the Dealbuster system.

This module defines the protocol interfaces that establish the boundaries
between the evaluation core and its collaborators, enabling dependency
injection throughout the application.
"""

from typing import Callable, List, Protocol

from .models.alert import AlertNotification
from .models.config import ModeConfig
from .models.deal import Deal
from .models.events import Event

EventSubscriber = Callable[[Event], None]


class IEventNotifier(Protocol):
    """Protocol for the publish/subscribe boundary."""

    def subscribe(self, subscriber: EventSubscriber) -> None:
        """Register a subscriber for all future events."""
        ...

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        """Remove a previously registered subscriber."""
        ...

    def publish(self, event: Event) -> None:
        """Deliver an event to every subscriber without waiting on any of them."""
        ...


class IModeController(Protocol):
    """Protocol for the holder of mode and threshold configuration."""

    def get_config(self) -> ModeConfig:
        """Return the current mode and thresholds."""
        ...

    def set_mode(self, mode: str) -> ModeConfig:
        """Replace the operating mode."""
        ...


class IAlertMatcher(Protocol):
    """Protocol for matching standing alerts against a successful deal."""

    def evaluate_alerts(self, deal: Deal) -> List[AlertNotification]:
        """Fire every not-yet-triggered alert the deal now satisfies."""
        ...


class IPromotionScheduler(Protocol):
    """Protocol for the one-shot deferred promotion check."""

    def schedule(self, deal_id: str, delay_seconds: float) -> None:
        """Schedule the single promotion check for a deal."""
        ...

    def cancel(self, deal_id: str) -> bool:
        """Cancel a pending promotion check."""
        ...

    def cancel_all(self) -> int:
        """Cancel every pending promotion check."""
        ...
