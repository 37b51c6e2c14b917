"""Alert matcher that fires standing alerts for successful deals."""

from datetime import datetime
from typing import Callable, List

from ..interfaces import IEventNotifier
from ..models.alert import AlertNotification
from ..models.deal import Deal
from ..models.events import Event, EventType
from ..utils.logging import get_logger
from .alert_registry import AlertRegistry

logger = get_logger("alert_matcher")


class AlertMatcher:
    """Scans the alert registry for a deal that just promoted or verified."""

    def __init__(
        self,
        alerts: AlertRegistry,
        notifier: IEventNotifier,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.alerts = alerts
        self.notifier = notifier
        self.clock = clock

    def evaluate_alerts(self, deal: Deal) -> List[AlertNotification]:
        """
        Fire every alert that matches ``deal`` and has not fired for it yet.

        Args:
            deal: A deal in a success state (promoted or verified)

        Returns:
            The notifications emitted by this call, in alert creation order
        """
        notifications = []

        for alert in self.alerts.all_alerts():
            if alert.has_triggered_for(deal.id) or not alert.matches(deal):
                continue

            self.alerts.mark_triggered(alert, deal.id)

            triggered_at = self.clock()
            notification = AlertNotification(
                alert_id=alert.id,
                deal_id=deal.id,
                user_id=alert.user_id,
                deal=deal.to_dict(),
                timestamp=triggered_at,
                latency_seconds=(triggered_at - deal.timestamp).total_seconds(),
            )
            notifications.append(notification)

            self.notifier.publish(
                Event(
                    type=EventType.ALERT_TRIGGERED,
                    payload={"notification": notification.to_dict()},
                    deal_id=deal.id,
                    timestamp=triggered_at,
                )
            )

            logger.info(
                "Alert triggered",
                extra={
                    "alert_id": alert.id,
                    "user_id": alert.user_id,
                    "deal_id": deal.id,
                    "title": deal.title,
                    "price": deal.price,
                    "latency_seconds": notification.latency_seconds,
                },
            )

        return notifications
