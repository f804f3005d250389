"""Quota Gate: per-wallet subscription tier and daily decision allowance.

States are free and pro. A new wallet starts free with the configured daily
limit. Pro wallets are unlimited until ``paid_until`` passes; after that they
are gated as free even though the stored tier still says pro (lazy expiry).
The gate reports availability as data and never denies anything itself.

The clock is injectable so day rollover and expiry are testable.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from smart_router.observability.logging import get_logger
from smart_router.persistence.models import UNLIMITED, Quota, Tier, as_utc, utcnow
from smart_router.persistence.quotas import QuotaStore

log = get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True, slots=True)
class QuotaStatus:
    """A wallet's quota as the gate sees it.

    Attributes:
        wallet: Wallet identifier.
        tier: Effective tier (free once a pro subscription has lapsed).
        stored_tier: Tier as stored.
        decisions_today: Decisions counted for ``last_reset``.
        decisions_limit: Effective limit, UNLIMITED for active pro.
        last_reset: Day the counter belongs to.
        paid_until: End of the paid period, if any.
    """

    wallet: str
    tier: Tier
    stored_tier: Tier
    decisions_today: int
    decisions_limit: int
    last_reset: date
    paid_until: datetime | None

    @property
    def is_expired(self) -> bool:
        return self.stored_tier is Tier.PRO and self.tier is Tier.FREE


@dataclass(frozen=True, slots=True)
class QuotaAvailability:
    """Answer of check_quota_available.

    ``remaining`` is UNLIMITED (-1) for active pro wallets.
    """

    available: bool
    remaining: int
    tier: Tier
    decisions_limit: int

    @property
    def is_unlimited(self) -> bool:
        return self.remaining == UNLIMITED

    @property
    def headroom(self) -> float:
        """Unused share of today's allowance, 1.0 when unlimited."""
        if self.is_unlimited:
            return 1.0
        if self.decisions_limit <= 0:
            return 0.0
        return max(0, self.remaining) / self.decisions_limit


class QuotaGate:
    """Tier and daily counter logic over a QuotaStore."""

    def __init__(
        self,
        store: QuotaStore,
        *,
        free_daily_limit: int = 100,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._free_daily_limit = free_daily_limit
        self._clock = clock

    def _now(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo is not None else now.replace(tzinfo=UTC)

    def _today(self) -> date:
        return self._now().astimezone(UTC).date()

    def _status(self, quota: Quota) -> QuotaStatus:
        tier = quota.tier
        limit = quota.decisions_limit
        if tier is Tier.PRO and quota.paid_until is not None and quota.paid_until < self._now():
            tier = Tier.FREE
            limit = self._free_daily_limit
            log.debug("quota.tier.expired", wallet=quota.wallet, paid_until=quota.paid_until.isoformat())
        elif tier is Tier.FREE and limit == UNLIMITED:
            limit = self._free_daily_limit
        return QuotaStatus(
            wallet=quota.wallet,
            tier=tier,
            stored_tier=quota.tier,
            decisions_today=quota.decisions_today,
            decisions_limit=limit,
            last_reset=quota.last_reset,
            paid_until=quota.paid_until,
        )

    def get_quota(self, wallet: str) -> QuotaStatus:
        """Return the wallet's quota, creating and rolling it over as needed."""
        return self._status(self._store.get_quota(wallet, self._today()))

    def check_quota_available(self, wallet: str) -> QuotaAvailability:
        """Report whether the wallet may make another decision today."""
        status = self.get_quota(wallet)
        if status.decisions_limit == UNLIMITED:
            return QuotaAvailability(
                available=True,
                remaining=UNLIMITED,
                tier=status.tier,
                decisions_limit=UNLIMITED,
            )
        remaining = max(0, status.decisions_limit - status.decisions_today)
        return QuotaAvailability(
            available=status.decisions_today < status.decisions_limit,
            remaining=remaining,
            tier=status.tier,
            decisions_limit=status.decisions_limit,
        )

    def increment_decision_count(self, wallet: str) -> QuotaStatus:
        """Atomically count one decision for today."""
        status = self._status(self._store.increment_decision_count(wallet, self._today()))
        log.debug(
            "quota.decision.incremented",
            wallet=wallet,
            decisions_today=status.decisions_today,
            decisions_limit=status.decisions_limit,
        )
        return status

    def update_agent_tier(
        self, wallet: str, tier: Tier | str, paid_until: datetime | None = None
    ) -> QuotaStatus:
        """Move a wallet between tiers; paid_until is always overwritten.

        Pro sets the limit to UNLIMITED, free restores the default cap.

        Raises:
            ValueError: If ``tier`` is not a known tier name.
        """
        tier = Tier(tier)
        limit = UNLIMITED if tier is Tier.PRO else self._free_daily_limit
        quota = self._store.set_tier(wallet, tier, limit, as_utc(paid_until), self._today())
        log.info(
            "quota.tier.updated",
            wallet=wallet,
            tier=tier.value,
            paid_until=paid_until.isoformat() if paid_until else None,
        )
        return self._status(quota)
