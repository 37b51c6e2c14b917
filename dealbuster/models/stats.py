"""
Aggregate statistics models.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple


@dataclass
class DealStats:
    """Counts per status plus the two comparative timing averages."""

    total_deals: int
    pending_deals: int
    promoted_deals: int
    verified_deals: int
    rejected_deals: int
    total_users: int
    total_alerts: int
    total_verifications: int
    average_promotion_time: float
    average_verification_time: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def average_elapsed(pairs: Iterable[Tuple[datetime, Optional[datetime]]]) -> float:
    """Mean of (end - start) in seconds over (start, end) pairs; 0 when empty."""
    durations = [(end - start).total_seconds() for start, end in pairs if end is not None]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)
