"""
Deal service: the single entry point for inbound operations and queries.

Every inbound operation runs as one synchronous step (registry mutation,
evaluation, event publication) so readers never observe partial updates.
"""

from datetime import datetime
from typing import Any, Callable, List, Optional

from ..components.alert_matcher import AlertMatcher
from ..components.alert_registry import AlertRegistry
from ..components.deal_registry import DealRegistry
from ..components.evaluator import DealEvaluator
from ..components.mode_controller import ModeController
from ..components.notifier import EventNotifier
from ..components.promotion_scheduler import PromotionScheduler
from ..components.user_registry import UserRegistry
from ..interfaces import IPromotionScheduler
from ..models.alert import Alert
from ..models.config import ModeConfig
from ..models.deal import Deal, DealDraft, DealStatus, Verification
from ..models.events import Event, EventType
from ..models.stats import DealStats, average_elapsed
from ..models.user import User
from ..utils.logging import get_logger

logger = get_logger("deal_service")


class DealService:
    """
    Wires registries, mode controller, evaluator and notifier together.

    Args:
        mode_config: Initial mode and thresholds
        notifier: Event hub; a private one is created when omitted
        scheduler_factory: Builds the promotion scheduler from the check
            callback; defaults to the asyncio ``PromotionScheduler``
        clock: Source of timestamps
    """

    def __init__(
        self,
        mode_config: Optional[ModeConfig] = None,
        notifier: Optional[EventNotifier] = None,
        scheduler_factory: Optional[Callable[[Callable[[str], None]], IPromotionScheduler]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.clock = clock
        self.notifier = notifier or EventNotifier()

        self.users = UserRegistry(clock=clock)
        self.deals = DealRegistry(self.users, clock=clock)
        self.alerts = AlertRegistry(self.users, clock=clock)

        self.mode_controller = ModeController(self.notifier, mode_config)
        self.alert_matcher = AlertMatcher(self.alerts, self.notifier, clock=clock)
        self.evaluator = DealEvaluator(
            self.mode_controller, self.alert_matcher, self.notifier, clock=clock
        )

        factory = scheduler_factory or PromotionScheduler
        self.scheduler = factory(self.run_promotion_check)

    # Inbound operations

    def register_user(self, username: Any) -> User:
        return self.users.register(username)

    def submit_deal(self, draft: DealDraft) -> Deal:
        deal = self.deals.submit(draft)

        if self.evaluator.schedules_promotion():
            try:
                self.scheduler.schedule(
                    deal.id, self.mode_controller.get_config().promotion_delay_seconds
                )
            except Exception:
                self.deals.discard(deal.id)
                raise

        self._publish(EventType.DEAL_CREATED, deal)
        return deal

    def record_vote(self, deal_id: str, user_id: str) -> Deal:
        deal = self.deals.record_vote(deal_id, user_id)
        self._publish(EventType.DEAL_UPDATED, deal)
        return deal

    def record_verification(
        self, deal_id: str, user_id: str, verdict: Any, evidence: Optional[str] = None
    ) -> Verification:
        verification = self.deals.record_verification(deal_id, user_id, verdict, evidence)
        deal = self.deals.get(deal_id)

        # A transition publishes its own event; otherwise report the new tally
        if self.evaluator.on_verification(deal) is None:
            self._publish(EventType.DEAL_UPDATED, deal)

        return verification

    def create_alert(
        self, user_id: Any, keywords: Any, max_price: Any, min_verifications: Any = None
    ) -> Alert:
        return self.alerts.create(user_id, keywords, max_price, min_verifications)

    def delete_alert(self, alert_id: str) -> Alert:
        return self.alerts.delete(alert_id)

    def set_mode(self, mode: Any) -> ModeConfig:
        return self.mode_controller.set_mode(mode)

    def run_promotion_check(self, deal_id: str) -> Optional[DealStatus]:
        """Fire the single scheduled promotion check for a deal."""
        deal = self.deals.find(deal_id)
        if deal is None:
            logger.warning("Promotion check for unknown deal", extra={"deal_id": deal_id})
            return None
        return self.evaluator.check_promotion(deal)

    # Queries

    def list_deals(self) -> List[Deal]:
        return self.deals.list_deals()

    def get_deal(self, deal_id: str) -> Deal:
        return self.deals.get(deal_id)

    def list_users(self) -> List[User]:
        return self.users.list_users()

    def get_user(self, user_id: str) -> User:
        return self.users.get(user_id)

    def list_alerts(self, user_id: str) -> List[Alert]:
        return self.alerts.list_for_user(user_id)

    def get_config(self) -> ModeConfig:
        return self.mode_controller.get_config()

    def get_stats(self) -> DealStats:
        deals = self.deals.list_deals()

        return DealStats(
            total_deals=len(deals),
            pending_deals=self.deals.count_by_status(DealStatus.PENDING),
            promoted_deals=self.deals.count_by_status(DealStatus.PROMOTED),
            verified_deals=self.deals.count_by_status(DealStatus.VERIFIED),
            rejected_deals=self.deals.count_by_status(DealStatus.REJECTED),
            total_users=len(self.users),
            total_alerts=len(self.alerts),
            total_verifications=self.deals.verification_count,
            average_promotion_time=average_elapsed(
                (d.timestamp, d.promoted_at) for d in deals
            ),
            average_verification_time=average_elapsed(
                (d.timestamp, d.verified_at) for d in deals
            ),
        )

    def shutdown(self) -> None:
        self.scheduler.cancel_all()

    def _publish(self, event_type: EventType, deal: Deal) -> None:
        self.notifier.publish(
            Event(
                type=event_type,
                payload={"deal": deal.to_dict()},
                deal_id=deal.id,
                timestamp=self.clock(),
            )
        )
