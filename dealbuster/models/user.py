"""
User models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

STARTING_REPUTATION = 100


@dataclass
class User:
    """A registered participant.

    ``reputation_score`` is carried for display only; no evaluation rule
    reads or changes it.
    """

    id: str
    username: str
    created_at: datetime
    reputation_score: int = STARTING_REPUTATION
    verification_history: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "reputation_score": self.reputation_score,
            "verifications_count": len(self.verification_history),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "reputation_score": self.reputation_score,
            "verification_history": list(self.verification_history),
            "created_at": self.created_at.isoformat(),
        }
