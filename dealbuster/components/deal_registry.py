"""
Deal registry for the Dealbuster system.

Holds every submitted deal for the lifetime of the process and applies the
raw tally mutations (votes and verifications). Status transitions are left
to the evaluator.
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..models.deal import (
    DEFAULT_CATEGORY,
    Deal,
    DealDraft,
    DealStatus,
    Verdict,
    Verification,
    parse_amount,
)
from ..utils.error_handling import DuplicateError, NotFoundError
from ..utils.logging import get_logger
from .user_registry import UserRegistry

logger = get_logger("deal_registry")


class DealRegistry:
    """In-memory store of deals keyed by id."""

    def __init__(self, users: UserRegistry, clock: Callable[[], datetime] = datetime.now):
        self.users = users
        self.clock = clock
        self._deals: Dict[str, Deal] = {}
        self._verification_count = 0

    def __len__(self) -> int:
        return len(self._deals)

    @property
    def verification_count(self) -> int:
        return self._verification_count

    def submit(self, draft: DealDraft) -> Deal:
        """
        Create a pending deal with no votes or verifications.

        Raises:
            ValidationError: if title, price, url or submitter is missing, or
                price is not a positive number.
            NotFoundError: if the submitter is not a registered user.
        """
        draft.validate()
        submitter = self.users.get(draft.submitted_by)

        original_price: Optional[float] = None
        if draft.original_price not in (None, ""):
            original_price = parse_amount(draft.original_price, "original_price")

        category = draft.category.strip() if draft.category else ""

        deal = Deal(
            id=str(uuid.uuid4()),
            title=draft.title.strip(),
            price=parse_amount(draft.price, "price"),
            original_price=original_price,
            url=str(draft.url).strip(),
            category=category or DEFAULT_CATEGORY,
            submitted_by=submitter.id,
            submitted_by_username=submitter.username,
            timestamp=self.clock(),
        )
        self._deals[deal.id] = deal

        logger.info(
            "Deal submitted",
            extra={"deal_id": deal.id, "title": deal.title, "price": deal.price},
        )
        return deal

    def discard(self, deal_id: str) -> None:
        """Forget a deal whose submission could not be completed."""
        if self._deals.pop(deal_id, None) is not None:
            logger.warning("Deal submission rolled back", extra={"deal_id": deal_id})

    def get(self, deal_id: str) -> Deal:
        deal = self._deals.get(deal_id)
        if deal is None:
            raise NotFoundError("Deal not found")
        return deal

    def find(self, deal_id: str) -> Optional[Deal]:
        return self._deals.get(deal_id)

    def list_deals(self) -> List[Deal]:
        """All deals, newest first."""
        return sorted(self._deals.values(), key=lambda d: d.timestamp, reverse=True)

    def count_by_status(self, status: DealStatus) -> int:
        return sum(1 for d in self._deals.values() if d.status is status)

    def record_vote(self, deal_id: str, user_id: str) -> Deal:
        """
        Add one vote to the deal's tally.

        Votes are not deduplicated per user; every call adds a vote.
        """
        deal = self.get(deal_id)
        self.users.get(user_id)

        deal.votes += 1
        logger.debug("Vote recorded", extra={"deal_id": deal_id, "votes": deal.votes})
        return deal

    def record_verification(
        self, deal_id: str, user_id: str, verdict: Any, evidence: Optional[str] = None
    ) -> Verification:
        """
        Append a verification to the deal.

        Raises:
            ValidationError: if the verdict is not valid or invalid.
            NotFoundError: if the deal or user is unknown.
            DuplicateError: if the user already verified this deal.
        """
        parsed_verdict = Verdict.parse(verdict)
        deal = self.get(deal_id)
        user = self.users.get(user_id)

        if deal.has_verification_from(user.id):
            raise DuplicateError("You already verified this deal")

        verification = Verification(
            id=str(uuid.uuid4()),
            deal_id=deal.id,
            verifier_id=user.id,
            verifier_username=user.username,
            verdict=parsed_verdict,
            evidence=evidence or "",
            timestamp=self.clock(),
        )
        deal.verifications.append(verification)
        self.users.record_verification(user.id, verification.id)
        self._verification_count += 1

        logger.debug(
            "Verification recorded",
            extra={
                "deal_id": deal.id,
                "verdict": parsed_verdict.value,
                "valid": deal.valid_count,
                "invalid": deal.invalid_count,
            },
        )
        return verification
