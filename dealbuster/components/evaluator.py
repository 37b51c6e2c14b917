"""
Status transition rules for the Dealbuster system.

Two rules drive a deal out of ``pending``:

* promotion (centralized): a single delayed check compares the vote tally
  against the promotion threshold;
* consensus (decentralized): every recorded verification re-counts valid
  and invalid verdicts against the consensus threshold, valid first.

The decision functions are pure. ``DealEvaluator`` applies their outcome,
publishes the transition event and hands successful deals to the alert
matcher.
"""

from datetime import datetime
from typing import Callable, Optional

from ..interfaces import IAlertMatcher, IEventNotifier, IModeController
from ..models.config import ModeConfig, OperatingMode
from ..models.deal import Deal, DealStatus
from ..models.events import Event, EventType
from ..utils.logging import get_logger

logger = get_logger("evaluator")

_TRANSITION_EVENTS = {
    DealStatus.PROMOTED: EventType.DEAL_PROMOTED,
    DealStatus.VERIFIED: EventType.DEAL_VERIFIED,
    DealStatus.REJECTED: EventType.DEAL_REJECTED,
}


def decide_promotion(deal: Deal, config: ModeConfig) -> Optional[DealStatus]:
    """Promote a pending deal whose vote tally reached the threshold."""
    if not deal.is_pending:
        return None

    if deal.votes >= config.promotion_threshold:
        return DealStatus.PROMOTED

    return None


def decide_consensus(deal: Deal, config: ModeConfig) -> Optional[DealStatus]:
    """Verify or reject a pending deal once either verdict reaches the threshold.

    The valid count is checked before the invalid count.
    """
    if not deal.is_pending:
        return None

    if deal.valid_count >= config.consensus_threshold:
        return DealStatus.VERIFIED

    if deal.invalid_count >= config.consensus_threshold:
        return DealStatus.REJECTED

    return None


class DealEvaluator:
    """Applies the promotion and consensus rules against the current mode."""

    def __init__(
        self,
        mode_controller: IModeController,
        alert_matcher: IAlertMatcher,
        notifier: IEventNotifier,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.mode_controller = mode_controller
        self.alert_matcher = alert_matcher
        self.notifier = notifier
        self.clock = clock

    def schedules_promotion(self) -> bool:
        """Whether a newly submitted deal gets a promotion check."""
        return self.mode_controller.get_config().mode is OperatingMode.CENTRALIZED

    def on_verification(self, deal: Deal) -> Optional[DealStatus]:
        """Run the consensus rule if the engine is currently decentralized."""
        if self.mode_controller.get_config().mode is not OperatingMode.DECENTRALIZED:
            return None
        return self.check_consensus(deal)

    def check_promotion(self, deal: Deal) -> Optional[DealStatus]:
        config = self.mode_controller.get_config()
        status = decide_promotion(deal, config)

        if status is None:
            if deal.is_pending:
                logger.info(
                    "Deal did not promote",
                    extra={
                        "deal_id": deal.id,
                        "votes": deal.votes,
                        "threshold": config.promotion_threshold,
                    },
                )
            return None

        return self._apply(deal, status)

    def check_consensus(self, deal: Deal) -> Optional[DealStatus]:
        status = decide_consensus(deal, self.mode_controller.get_config())
        if status is None:
            return None
        return self._apply(deal, status)

    def _apply(self, deal: Deal, status: DealStatus) -> DealStatus:
        now = self.clock()
        deal.transition_to(status, now)

        logger.info(
            f"Deal {status.value}",
            extra={
                "deal_id": deal.id,
                "status": status.value,
                "elapsed_seconds": (now - deal.timestamp).total_seconds(),
                "votes": deal.votes,
                "valid": deal.valid_count,
                "invalid": deal.invalid_count,
            },
        )

        self.notifier.publish(
            Event(
                type=_TRANSITION_EVENTS[status],
                payload={"deal": deal.to_dict()},
                deal_id=deal.id,
                timestamp=now,
            )
        )

        if status.is_success:
            self.alert_matcher.evaluate_alerts(deal)

        return status
