"""Quota storage with atomic upsert-with-defaults.

Every public method first inserts the wallet's default row with
INSERT ... ON CONFLICT DO NOTHING and then mutates it with a single UPDATE,
so concurrent first accesses and concurrent increments never lose writes.
The caller supplies ``today``; date rollover is decided inside the UPDATE.
"""

from datetime import date, datetime
from typing import Any

from sqlalchemy import Connection, case, select

from smart_router.core.errors import PersistenceError
from smart_router.persistence.database import Database
from smart_router.persistence.models import Quota, Tier
from smart_router.persistence.schema import quotas_table


class QuotaStore:
    """Persisted per-wallet quota rows."""

    def __init__(self, db: Database, *, free_daily_limit: int) -> None:
        self._db = db
        self._free_daily_limit = free_daily_limit

    def _ensure_row(self, conn: Connection, wallet: str, today: date) -> None:
        conn.execute(
            self._db.insert_ignore(quotas_table).values(
                wallet=wallet,
                tier=Tier.FREE.value,
                decisions_today=0,
                decisions_limit=self._free_daily_limit,
                last_reset=today.isoformat(),
            )
        )

    def _fetch(self, conn: Connection, wallet: str) -> Quota:
        row = conn.execute(
            select(quotas_table).where(quotas_table.c.wallet == wallet)
        ).mappings().one()
        return Quota.from_row(row)

    def _failure(self, e: Exception, operation: str, wallet: str) -> PersistenceError:
        return PersistenceError(
            f"Failed to {operation} quota: {e}",
            operation=operation,
            table="quotas",
            details={"wallet": wallet},
        )

    def get_quota(self, wallet: str, today: date) -> Quota:
        """Return the wallet's quota, creating it and rolling the day over.

        Raises:
            PersistenceError: If the database operation fails.
        """
        try:
            with self._db.begin() as conn:
                self._ensure_row(conn, wallet, today)
                conn.execute(
                    quotas_table.update()
                    .where(quotas_table.c.wallet == wallet)
                    .where(quotas_table.c.last_reset != today.isoformat())
                    .values(decisions_today=0, last_reset=today.isoformat())
                )
                return self._fetch(conn, wallet)
        except Exception as e:
            raise self._failure(e, "read", wallet) from e

    def increment_decision_count(self, wallet: str, today: date) -> Quota:
        """Atomically count one decision for ``today``.

        A stale day restarts the counter at 1 in the same statement.

        Raises:
            PersistenceError: If the database operation fails.
        """
        iso_today = today.isoformat()
        try:
            with self._db.begin() as conn:
                self._ensure_row(conn, wallet, today)
                conn.execute(
                    quotas_table.update()
                    .where(quotas_table.c.wallet == wallet)
                    .values(
                        decisions_today=case(
                            (
                                quotas_table.c.last_reset == iso_today,
                                quotas_table.c.decisions_today + 1,
                            ),
                            else_=1,
                        ),
                        last_reset=iso_today,
                    )
                )
                return self._fetch(conn, wallet)
        except Exception as e:
            raise self._failure(e, "increment", wallet) from e

    def set_tier(
        self,
        wallet: str,
        tier: Tier,
        decisions_limit: int,
        paid_until: datetime | None,
        today: date,
    ) -> Quota:
        """Overwrite tier, limit and paid_until for the wallet.

        Raises:
            PersistenceError: If the database operation fails.
        """
        values: dict[str, Any] = {
            "tier": tier.value,
            "decisions_limit": decisions_limit,
            "paid_until": paid_until,
        }
        try:
            with self._db.begin() as conn:
                self._ensure_row(conn, wallet, today)
                conn.execute(
                    quotas_table.update().where(quotas_table.c.wallet == wallet).values(**values)
                )
                return self._fetch(conn, wallet)
        except Exception as e:
            raise self._failure(e, "update_tier", wallet) from e
