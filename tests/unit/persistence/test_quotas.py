"""Unit tests for smart_router.persistence.quotas."""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, datetime

import pytest

from smart_router.persistence.database import Database
from smart_router.persistence.models import UNLIMITED, Tier
from smart_router.persistence.quotas import QuotaStore

DAY = date(2026, 3, 10)


@pytest.fixture
def store(db: Database) -> QuotaStore:
    return QuotaStore(db, free_daily_limit=100)


class TestGetQuota:
    def test_creates_free_default(self, store: QuotaStore) -> None:
        quota = store.get_quota("0xabc", DAY)
        assert quota.tier == Tier.FREE
        assert quota.decisions_today == 0
        assert quota.decisions_limit == 100
        assert quota.last_reset == DAY
        assert quota.paid_until is None

    def test_same_day_keeps_count(self, store: QuotaStore) -> None:
        store.increment_decision_count("0xabc", DAY)
        assert store.get_quota("0xabc", DAY).decisions_today == 1

    def test_new_day_resets_count(self, store: QuotaStore) -> None:
        store.increment_decision_count("0xabc", DAY)
        store.increment_decision_count("0xabc", DAY)

        quota = store.get_quota("0xabc", date(2026, 3, 11))
        assert quota.decisions_today == 0
        assert quota.last_reset == date(2026, 3, 11)


class TestIncrement:
    def test_increments(self, store: QuotaStore) -> None:
        for _ in range(3):
            quota = store.increment_decision_count("0xabc", DAY)
        assert quota.decisions_today == 3

    def test_stale_day_restarts_at_one(self, store: QuotaStore) -> None:
        for _ in range(5):
            store.increment_decision_count("0xabc", DAY)
        quota = store.increment_decision_count("0xabc", date(2026, 3, 12))
        assert quota.decisions_today == 1
        assert quota.last_reset == date(2026, 3, 12)

    def test_wallets_are_independent(self, store: QuotaStore) -> None:
        store.increment_decision_count("0xaaa", DAY)
        assert store.get_quota("0xbbb", DAY).decisions_today == 0

    def test_concurrent_increments_are_not_lost(self, store: QuotaStore) -> None:
        def bump(_: int) -> None:
            store.increment_decision_count("0xabc", DAY)

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(bump, range(40)))

        assert store.get_quota("0xabc", DAY).decisions_today == 40


class TestSetTier:
    def test_overwrites_tier_limit_and_paid_until(self, store: QuotaStore) -> None:
        paid_until = datetime(2026, 4, 10, tzinfo=UTC)
        quota = store.set_tier("0xabc", Tier.PRO, UNLIMITED, paid_until, DAY)
        assert quota.tier == Tier.PRO
        assert quota.is_unlimited
        assert quota.paid_until == paid_until

        quota = store.set_tier("0xabc", Tier.FREE, 100, None, DAY)
        assert quota.tier == Tier.FREE
        assert quota.decisions_limit == 100
        assert quota.paid_until is None
