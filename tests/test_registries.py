"""
Unit tests for the user, deal and alert registries.
"""

import pytest

from dealbuster.components.alert_registry import AlertRegistry
from dealbuster.components.deal_registry import DealRegistry
from dealbuster.components.user_registry import UserRegistry
from dealbuster.models.deal import DealDraft, DealStatus, Verdict
from dealbuster.utils.error_handling import (
    DuplicateError,
    NotFoundError,
    ValidationError,
)

from engine_fixtures import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users(clock):
    return UserRegistry(clock=clock)


@pytest.fixture
def deals(users, clock):
    return DealRegistry(users, clock=clock)


@pytest.fixture
def alerts(users, clock):
    return AlertRegistry(users, clock=clock)


@pytest.fixture
def alice(users):
    return users.register("alice")


def draft_for(user, **overrides) -> DealDraft:
    values = dict(
        title="  Sony WH-1000XM5  ",
        price="299.00",
        url="https://example.com/sony",
        submitted_by=user.id,
        original_price=449,
        category="Audio",
    )
    values.update(overrides)
    return DealDraft(**values)


class TestUserRegistry:
    """Test user registration."""

    def test_register(self, users, clock):
        user = users.register("  alice ")

        assert user.username == "alice"
        assert user.reputation_score == 100
        assert user.created_at == clock.now
        assert user.id in users
        assert users.get(user.id) is user

    @pytest.mark.parametrize("username", [None, "", "   ", 42])
    def test_username_required(self, users, username):
        with pytest.raises(ValidationError, match="Username required"):
            users.register(username)
        assert len(users) == 0

    def test_duplicate_username(self, users):
        users.register("alice")
        with pytest.raises(DuplicateError, match="Username already exists"):
            users.register(" alice")
        assert len(users) == 1

    def test_unknown_user(self, users):
        with pytest.raises(NotFoundError, match="User not found"):
            users.get("missing")


class TestDealRegistry:
    """Test deal submission and tally mutations."""

    def test_submit_normalizes_fields(self, deals, alice, clock):
        deal = deals.submit(draft_for(alice))

        assert deal.title == "Sony WH-1000XM5"
        assert deal.price == 299.0
        assert deal.original_price == 449.0
        assert deal.submitted_by_username == "alice"
        assert deal.timestamp == clock.now
        assert deal.status is DealStatus.PENDING
        assert deal.votes == 0
        assert deal.verifications == []

    def test_ids_are_unique(self, deals, alice):
        ids = {deals.submit(draft_for(alice)).id for _ in range(20)}
        assert len(ids) == 20

    def test_blank_category_defaults(self, deals, alice):
        assert deals.submit(draft_for(alice, category="  ")).category == "General"

    def test_invalid_original_price(self, deals, alice):
        with pytest.raises(ValidationError, match="original_price"):
            deals.submit(draft_for(alice, original_price=-1))
        assert len(deals) == 0

    def test_votes_are_not_deduplicated(self, deals, alice):
        deal = deals.submit(draft_for(alice))
        deals.record_vote(deal.id, alice.id)
        deals.record_vote(deal.id, alice.id)

        assert deal.votes == 2

    def test_vote_from_unknown_user(self, deals, alice):
        deal = deals.submit(draft_for(alice))
        with pytest.raises(NotFoundError):
            deals.record_vote(deal.id, "ghost")
        assert deal.votes == 0

    def test_record_verification(self, deals, users, alice, clock):
        bob = users.register("bob")
        deal = deals.submit(draft_for(alice))
        clock.advance(3)

        verification = deals.record_verification(deal.id, bob.id, "VALID", "Checked site")

        assert verification.verdict is Verdict.VALID
        assert verification.verifier_username == "bob"
        assert verification.evidence == "Checked site"
        assert verification.timestamp == clock.now
        assert deal.verifications == [verification]
        assert bob.verification_history == [verification.id]
        assert deals.verification_count == 1

    def test_submitter_may_verify_own_deal(self, deals, alice):
        deal = deals.submit(draft_for(alice))
        deals.record_verification(deal.id, alice.id, "valid")

        assert deal.valid_count == 1

    def test_duplicate_verification(self, deals, alice):
        deal = deals.submit(draft_for(alice))
        deals.record_verification(deal.id, alice.id, "valid")

        with pytest.raises(DuplicateError, match="already verified"):
            deals.record_verification(deal.id, alice.id, "valid")

        assert deal.verification_count == 1
        assert deals.verification_count == 1

    def test_invalid_verdict_checked_first(self, deals, alice):
        with pytest.raises(ValidationError):
            deals.record_verification("missing", alice.id, "maybe")

    def test_verification_on_unknown_deal(self, deals, alice):
        with pytest.raises(NotFoundError, match="Deal not found"):
            deals.record_verification("missing", alice.id, "valid")

    def test_count_by_status(self, deals, alice, clock):
        first = deals.submit(draft_for(alice))
        deals.submit(draft_for(alice))
        first.transition_to(DealStatus.REJECTED, clock.now)

        assert deals.count_by_status(DealStatus.PENDING) == 1
        assert deals.count_by_status(DealStatus.REJECTED) == 1
        assert deals.find("missing") is None


class TestAlertRegistry:
    """Test alert creation and removal."""

    def test_create(self, alerts, alice, clock):
        alert = alerts.create(alice.id, "  Laptop ", "500", "2")

        assert alert.keywords == "laptop"
        assert alert.max_price == 500.0
        assert alert.min_verifications == 2
        assert alert.created_at == clock.now
        assert alert.triggered == []

    @pytest.mark.parametrize("min_verifications", [None, ""])
    def test_default_min_verifications(self, alerts, alice, min_verifications):
        alert = alerts.create(alice.id, "laptop", 500, min_verifications)
        assert alert.min_verifications == 3

    def test_zero_min_verifications_allowed(self, alerts, alice):
        assert alerts.create(alice.id, "laptop", 500, 0).min_verifications == 0

    @pytest.mark.parametrize(
        "user_id,keywords,max_price",
        [(None, "laptop", 500), ("u", "", 500), ("u", "   ", 500), ("u", "laptop", None)],
    )
    def test_missing_fields(self, alerts, user_id, keywords, max_price):
        with pytest.raises(ValidationError, match="Missing required fields"):
            alerts.create(user_id, keywords, max_price)

    @pytest.mark.parametrize("min_verifications", [-1, 2.5, "many", True])
    def test_bad_min_verifications(self, alerts, alice, min_verifications):
        with pytest.raises(ValidationError):
            alerts.create(alice.id, "laptop", 500, min_verifications)

    def test_bad_max_price(self, alerts, alice):
        with pytest.raises(ValidationError):
            alerts.create(alice.id, "laptop", -10)

    def test_unknown_user(self, alerts):
        with pytest.raises(NotFoundError):
            alerts.create("ghost", "laptop", 500)
        assert len(alerts) == 0

    def test_delete(self, alerts, alice):
        alert = alerts.create(alice.id, "laptop", 500)

        assert alerts.delete(alert.id) is alert
        assert alerts.list_for_user(alice.id) == []
        with pytest.raises(NotFoundError, match="Alert not found"):
            alerts.delete(alert.id)

    def test_mark_triggered_once(self, alerts, alice):
        alert = alerts.create(alice.id, "laptop", 500)

        assert alerts.mark_triggered(alert, "deal-1") is True
        assert alerts.mark_triggered(alert, "deal-1") is False
        assert alert.triggered == ["deal-1"]
