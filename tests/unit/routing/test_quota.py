"""Unit tests for the quota gate: tiers, daily limits, rollover and expiry."""

from datetime import timedelta

import pytest

from smart_router.persistence.database import Database
from smart_router.persistence.models import UNLIMITED, Tier
from smart_router.persistence.quotas import QuotaStore
from smart_router.routing.quota import QuotaGate
from tests.conftest import FakeClock


@pytest.fixture
def gate(db: Database, clock: FakeClock) -> QuotaGate:
    return QuotaGate(QuotaStore(db, free_daily_limit=3), free_daily_limit=3, clock=clock)


class TestFreeTier:
    """New wallets start free with the configured daily limit."""

    def test_new_wallet(self, gate: QuotaGate, clock: FakeClock) -> None:
        status = gate.get_quota("0xabc")
        assert status.tier is Tier.FREE
        assert status.decisions_today == 0
        assert status.decisions_limit == 3
        assert status.last_reset == clock().date()
        assert status.paid_until is None

    def test_fresh_wallet_is_available(self, gate: QuotaGate) -> None:
        availability = gate.check_quota_available("0xabc")
        assert availability.available
        assert availability.remaining == 3
        assert availability.headroom == 1.0

    def test_limit_reached(self, gate: QuotaGate) -> None:
        for _ in range(3):
            gate.increment_decision_count("0xabc")
        availability = gate.check_quota_available("0xabc")
        assert not availability.available
        assert availability.remaining == 0
        assert availability.headroom == 0.0

    def test_remaining_never_negative(self, gate: QuotaGate) -> None:
        for _ in range(5):
            gate.increment_decision_count("0xabc")
        assert gate.get_quota("0xabc").decisions_today == 5
        assert gate.check_quota_available("0xabc").remaining == 0

    def test_wallets_are_independent(self, gate: QuotaGate) -> None:
        for _ in range(3):
            gate.increment_decision_count("0xabc")
        assert gate.check_quota_available("0xother").available


class TestDayRollover:
    def test_counter_resets_on_a_new_day(self, gate: QuotaGate, clock: FakeClock) -> None:
        for _ in range(3):
            gate.increment_decision_count("0xabc")
        clock.advance(days=1)

        status = gate.get_quota("0xabc")
        assert status.decisions_today == 0
        assert status.last_reset == clock().date()
        assert gate.check_quota_available("0xabc").available

    def test_increment_on_a_new_day_starts_at_one(self, gate: QuotaGate, clock: FakeClock) -> None:
        gate.increment_decision_count("0xabc")
        gate.increment_decision_count("0xabc")
        clock.advance(days=1)
        assert gate.increment_decision_count("0xabc").decisions_today == 1

    def test_same_day_keeps_counting(self, gate: QuotaGate, clock: FakeClock) -> None:
        gate.increment_decision_count("0xabc")
        clock.advance(hours=6)
        assert gate.increment_decision_count("0xabc").decisions_today == 2


class TestProTier:
    def test_pro_is_unlimited(self, gate: QuotaGate, clock: FakeClock) -> None:
        status = gate.update_agent_tier("0xabc", Tier.PRO, clock() + timedelta(days=30))
        assert status.tier is Tier.PRO
        assert status.decisions_limit == UNLIMITED

        for _ in range(10):
            gate.increment_decision_count("0xabc")
        availability = gate.check_quota_available("0xabc")
        assert availability.available
        assert availability.is_unlimited
        assert availability.remaining == UNLIMITED
        assert availability.headroom == 1.0

    def test_pro_without_expiry(self, gate: QuotaGate, clock: FakeClock) -> None:
        gate.update_agent_tier("0xabc", "pro")
        clock.advance(days=400)
        assert gate.get_quota("0xabc").tier is Tier.PRO

    def test_lapsed_pro_is_gated_as_free(self, gate: QuotaGate, clock: FakeClock) -> None:
        gate.update_agent_tier("0xabc", Tier.PRO, clock() + timedelta(days=1))
        for _ in range(5):
            gate.increment_decision_count("0xabc")
        assert gate.check_quota_available("0xabc").available

        clock.advance(days=1, seconds=1)
        status = gate.get_quota("0xabc")
        assert status.tier is Tier.FREE
        assert status.stored_tier is Tier.PRO
        assert status.is_expired
        assert status.decisions_limit == 3

    def test_back_to_free_restores_the_cap(self, gate: QuotaGate, clock: FakeClock) -> None:
        gate.update_agent_tier("0xabc", Tier.PRO, clock() + timedelta(days=30))
        status = gate.update_agent_tier("0xabc", Tier.FREE)
        assert status.tier is Tier.FREE
        assert status.decisions_limit == 3
        assert status.paid_until is None

    def test_tier_change_keeps_todays_count(self, gate: QuotaGate) -> None:
        gate.increment_decision_count("0xabc")
        gate.increment_decision_count("0xabc")
        assert gate.update_agent_tier("0xabc", Tier.PRO).decisions_today == 2

    def test_unknown_tier(self, gate: QuotaGate) -> None:
        with pytest.raises(ValueError):
            gate.update_agent_tier("0xabc", "enterprise")
