"""Quota command group: inspect a wallet's allowance and change its tier."""

from datetime import UTC, datetime, timedelta
from typing import Annotated

import typer

from smart_router.cli.formatters.panels import print_error, print_success
from smart_router.cli.formatters.tables import create_key_value_table, print_table
from smart_router.cli.runtime import open_router
from smart_router.persistence.models import Tier

app = typer.Typer(
    name="quota",
    help="Inspect and manage wallet quotas.",
    no_args_is_help=True,
)


@app.command()
def show(
    ctx: typer.Context,
    wallet: Annotated[str, typer.Argument(help="Agent wallet identifier.")],
) -> None:
    """Show a wallet's tier and today's decision count."""
    with open_router(ctx) as router:
        status = router.get_quota(wallet)
        availability = router.check_quota_available(wallet)

    tier = status.tier.value
    if status.is_expired:
        tier = f"{tier} (pro expired)"
    data = {
        "Wallet": status.wallet,
        "Tier": tier,
        "Decisions today": status.decisions_today,
        "Limit": "unlimited" if availability.is_unlimited else status.decisions_limit,
        "Remaining": "unlimited" if availability.is_unlimited else availability.remaining,
        "Available": "yes" if availability.available else "no",
        "Day": status.last_reset.isoformat(),
        "Paid until": status.paid_until.isoformat(timespec="seconds") if status.paid_until else None,
    }
    print_table(create_key_value_table(data, "Quota"))


@app.command("set-tier")
def set_tier(
    ctx: typer.Context,
    wallet: Annotated[str, typer.Argument(help="Agent wallet identifier.")],
    tier: Annotated[Tier, typer.Argument(help="New tier.", case_sensitive=False)],
    paid_until: Annotated[
        datetime | None,
        typer.Option("--paid-until", help="End of the paid period (ISO date/time, UTC)."),
    ] = None,
    days: Annotated[
        int | None,
        typer.Option("--days", help="Paid period length from now, in days.", min=1),
    ] = None,
) -> None:
    """Change a wallet's tier (normally done by payment verification)."""
    if paid_until is not None and days is not None:
        print_error("Use either --paid-until or --days, not both.")
        raise typer.Exit(1)
    if days is not None:
        paid_until = datetime.now(UTC) + timedelta(days=days)
    elif paid_until is not None and paid_until.tzinfo is None:
        paid_until = paid_until.replace(tzinfo=UTC)

    with open_router(ctx) as router:
        status = router.update_agent_tier(wallet, tier, paid_until)

    until = f" until {paid_until.isoformat(timespec='seconds')}" if paid_until else ""
    print_success(f"{status.wallet} is now {status.stored_tier.value}{until}")


__all__ = ["app"]
