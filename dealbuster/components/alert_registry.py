"""Alert registry for the Dealbuster system."""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List

from ..models.alert import DEFAULT_MIN_VERIFICATIONS, Alert
from ..models.deal import parse_amount
from ..utils.error_handling import NotFoundError, ValidationError
from ..utils.logging import get_logger
from .user_registry import UserRegistry

logger = get_logger("alert_registry")


def _parse_min_verifications(value: Any) -> int:
    """
    Missing or blank values fall back to the default. An explicit 0 is kept,
    so such an alert drops the verification floor and fires on any matching
    deal once it is promoted or approved.
    """
    if value in (None, ""):
        return DEFAULT_MIN_VERIFICATIONS

    if isinstance(value, bool):
        raise ValidationError("min_verifications must be a non-negative integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError("min_verifications must be a non-negative integer")

    if parsed < 0 or parsed != float(value):
        raise ValidationError("min_verifications must be a non-negative integer")

    return parsed


class AlertRegistry:
    """In-memory store of standing alerts keyed by id."""

    def __init__(self, users: UserRegistry, clock: Callable[[], datetime] = datetime.now):
        self.users = users
        self.clock = clock
        self._alerts: Dict[str, Alert] = {}

    def __len__(self) -> int:
        return len(self._alerts)

    def create(
        self, user_id: Any, keywords: Any, max_price: Any, min_verifications: Any = None
    ) -> Alert:
        """
        Register a standing alert.

        Raises:
            ValidationError: on missing user, keywords or max price, or on a
                malformed price or verification count.
            NotFoundError: if the user is not registered.
        """
        if not user_id or not isinstance(keywords, str) or not keywords.strip() or max_price in (None, ""):
            raise ValidationError("Missing required fields")

        price_ceiling = parse_amount(max_price, "max_price")
        minimum = _parse_min_verifications(min_verifications)
        user = self.users.get(user_id)

        alert = Alert(
            id=str(uuid.uuid4()),
            user_id=user.id,
            keywords=keywords.strip().lower(),
            max_price=price_ceiling,
            min_verifications=minimum,
            created_at=self.clock(),
        )
        self._alerts[alert.id] = alert

        logger.info(
            "Alert created",
            extra={
                "alert_id": alert.id,
                "user_id": user.id,
                "keywords": alert.keywords,
                "max_price": alert.max_price,
                "min_verifications": alert.min_verifications,
            },
        )
        return alert

    def delete(self, alert_id: str) -> Alert:
        alert = self._alerts.pop(alert_id, None)
        if alert is None:
            raise NotFoundError("Alert not found")

        logger.info("Alert deleted", extra={"alert_id": alert_id})
        return alert

    def get(self, alert_id: str) -> Alert:
        alert = self._alerts.get(alert_id)
        if alert is None:
            raise NotFoundError("Alert not found")
        return alert

    def list_for_user(self, user_id: str) -> List[Alert]:
        return [a for a in self._alerts.values() if a.user_id == user_id]

    def all_alerts(self) -> List[Alert]:
        return list(self._alerts.values())

    def mark_triggered(self, alert: Alert, deal_id: str) -> bool:
        """Record that ``alert`` fired for ``deal_id``; False if it already had."""
        if alert.has_triggered_for(deal_id):
            return False
        alert.triggered.append(deal_id)
        return True
