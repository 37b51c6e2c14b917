"""
Deal data models for the Dealbuster system.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..utils.error_handling import ConflictError, ValidationError

DEFAULT_CATEGORY = "General"


class DealStatus(Enum):
    """Lifecycle states of a deal."""

    PENDING = "pending"
    PROMOTED = "promoted"
    VERIFIED = "verified"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not DealStatus.PENDING

    @property
    def is_success(self) -> bool:
        """Promoted and verified deals are both eligible for alert matching."""
        return self in (DealStatus.PROMOTED, DealStatus.VERIFIED)


class Verdict(Enum):
    """A verifier's judgment on a deal."""

    VALID = "valid"
    INVALID = "invalid"

    @classmethod
    def parse(cls, value: Any) -> "Verdict":
        if isinstance(value, Verdict):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("Verdict must be 'valid' or 'invalid'")


def parse_amount(value: Any, field_name: str, allow_zero: bool = False) -> float:
    """Convert a price-like value to float, rejecting anything non-positive."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")

    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")

    if not math.isfinite(amount):
        raise ValidationError(f"{field_name} must be a finite number")

    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field_name} must be a positive number")

    return amount


@dataclass
class DealDraft:
    """Unvalidated deal submission."""

    title: Any
    price: Any
    url: Any
    submitted_by: Any
    original_price: Any = None
    category: Any = None

    def validate(self) -> bool:
        """Validate the draft; raises ValidationError on missing or malformed fields."""
        for name in ("title", "price", "url", "submitted_by"):
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(f"Missing required field: {name}")

        if not isinstance(self.title, str):
            raise ValidationError("title must be a string")

        if len(self.title) > 500:
            raise ValidationError("Deal title too long (max 500 characters)")

        parse_amount(self.price, "price")

        if self.original_price not in (None, ""):
            parse_amount(self.original_price, "original_price")

        parsed_url = urlparse(str(self.url))
        if not parsed_url.scheme or not parsed_url.netloc:
            raise ValidationError(f"Invalid URL format: {self.url}")

        if self.category is not None and not isinstance(self.category, str):
            raise ValidationError("category must be a string")

        return True


@dataclass
class Verification:
    """A single user's verdict on a deal."""

    id: str
    deal_id: str
    verifier_id: str
    verifier_username: str
    verdict: Verdict
    evidence: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "deal_id": self.deal_id,
            "verifier_id": self.verifier_id,
            "verifier_username": self.verifier_username,
            "verdict": self.verdict.value,
            "evidence": self.evidence,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Deal:
    """A submitted deal and its vote/verification state."""

    id: str
    title: str
    price: float
    original_price: Optional[float]
    url: str
    category: str
    submitted_by: str
    submitted_by_username: str
    timestamp: datetime
    verifications: List[Verification] = field(default_factory=list)
    votes: int = 0
    status: DealStatus = DealStatus.PENDING
    promoted_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None

    @property
    def verification_count(self) -> int:
        return len(self.verifications)

    @property
    def valid_count(self) -> int:
        return sum(1 for v in self.verifications if v.verdict is Verdict.VALID)

    @property
    def invalid_count(self) -> int:
        return sum(1 for v in self.verifications if v.verdict is Verdict.INVALID)

    @property
    def is_pending(self) -> bool:
        return self.status is DealStatus.PENDING

    def has_verification_from(self, user_id: str) -> bool:
        return any(v.verifier_id == user_id for v in self.verifications)

    def transition_to(self, status: DealStatus, at: datetime) -> None:
        """
        Move a pending deal into a terminal state.

        Raises:
            ConflictError: if the deal already left ``pending``.
        """
        if not self.is_pending:
            raise ConflictError(
                f"Deal {self.id} is already {self.status.value}, cannot become {status.value}"
            )
        if not status.is_terminal:
            raise ConflictError("A deal can never re-enter pending")

        self.status = status
        if status is DealStatus.PROMOTED:
            self.promoted_at = at
        elif status is DealStatus.VERIFIED:
            self.verified_at = at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "original_price": self.original_price,
            "url": self.url,
            "category": self.category,
            "submitted_by": self.submitted_by,
            "submitted_by_username": self.submitted_by_username,
            "timestamp": self.timestamp.isoformat(),
            "verifications": [v.to_dict() for v in self.verifications],
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "votes": self.votes,
            "status": self.status.value,
            "promoted_at": self.promoted_at.isoformat() if self.promoted_at else None,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
        }
