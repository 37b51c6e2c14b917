"""
Outbound event models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class EventType(Enum):
    """Events published to notifier subscribers."""

    DEAL_CREATED = "deal-created"
    DEAL_UPDATED = "deal-updated"
    DEAL_PROMOTED = "deal-promoted"
    DEAL_VERIFIED = "deal-verified"
    DEAL_REJECTED = "deal-rejected"
    ALERT_TRIGGERED = "alert-triggered"
    CONFIG_UPDATED = "config-updated"


@dataclass
class Event:
    """A single published event.

    ``payload`` is a snapshot taken at publish time, so later mutations of
    the deal or configuration never leak into an already published event.
    """

    type: EventType
    payload: Dict[str, Any]
    deal_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            **self.payload,
        }
