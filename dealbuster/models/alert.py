"""
Alert models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from .deal import Deal

DEFAULT_MIN_VERIFICATIONS = 3


@dataclass
class Alert:
    """A user's standing keyword/price/verification criteria."""

    id: str
    user_id: str
    keywords: str
    max_price: float
    min_verifications: int
    created_at: datetime
    triggered: List[str] = field(default_factory=list)

    def has_triggered_for(self, deal_id: str) -> bool:
        return deal_id in self.triggered

    def matches(self, deal: Deal) -> bool:
        """Keyword (title or category), price ceiling and verification floor."""
        keyword_match = (
            self.keywords in deal.title.lower() or self.keywords in deal.category.lower()
        )
        price_match = deal.price <= self.max_price
        verification_match = deal.verification_count >= self.min_verifications

        return keyword_match and price_match and verification_match

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "keywords": self.keywords,
            "max_price": self.max_price,
            "min_verifications": self.min_verifications,
            "created_at": self.created_at.isoformat(),
            "triggered": list(self.triggered),
        }


@dataclass
class AlertNotification:
    """Payload emitted when an alert fires for a deal."""

    alert_id: str
    deal_id: str
    user_id: str
    deal: Dict[str, Any]
    timestamp: datetime
    latency_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "deal_id": self.deal_id,
            "user_id": self.user_id,
            "deal": self.deal,
            "timestamp": self.timestamp.isoformat(),
            "latency_seconds": self.latency_seconds,
        }
