"""Stats command: decision statistics and per-model performance."""

from datetime import UTC, datetime, timedelta
from typing import Annotated

import typer

from smart_router.cli.formatters.tables import (
    create_key_value_table,
    create_table,
    format_cost,
    format_rate,
    format_score,
    print_table,
)
from smart_router.cli.runtime import open_router
from smart_router.persistence.models import DecisionGroupStats


def _group_table(title: str, label: str, groups: list[DecisionGroupStats]) -> None:
    table = create_table(title)
    table.add_column(label, style="cyan")
    table.add_column("Decisions", justify="right")
    table.add_column("With outcome", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Avg confidence", justify="right")
    table.add_column("Actual cost", justify="right")
    for group in groups:
        table.add_row(
            group.key,
            str(group.decisions),
            str(group.decisions_with_outcome),
            format_rate(group.success_rate),
            format_score(group.avg_confidence),
            format_cost(group.total_actual_cost),
        )
    print_table(table)


def stats(
    ctx: typer.Context,
    wallet: Annotated[
        str | None, typer.Option("--wallet", "-w", help="Limit to one wallet.")
    ] = None,
    days: Annotated[
        int | None, typer.Option("--days", help="Only the last N days.", min=1)
    ] = None,
) -> None:
    """Show routing statistics."""
    since = datetime.now(UTC) - timedelta(days=days) if days else None

    with open_router(ctx) as router:
        totals = router.routing_stats(wallet, since)
        by_model = router.decisions_by_model(wallet, since)
        by_task = router.decisions_by_task_type(wallet, since)
        performance = router.list_model_performance(wallet) if wallet else []

    print_table(
        create_key_value_table(
            {
                "Decisions": totals.total_decisions,
                "With outcome": totals.decisions_with_outcome,
                "Success rate": format_rate(totals.success_rate),
                "Avg confidence": format_score(totals.avg_confidence),
                "Estimated cost": format_cost(totals.total_estimated_cost),
                "Actual cost": format_cost(totals.total_actual_cost),
                "Avg actual cost": format_cost(totals.avg_actual_cost),
            },
            "Routing Stats",
        )
    )
    if by_model:
        _group_table("By Model", "Model", by_model)
    if by_task:
        _group_table("By Task Type", "Task type", by_task)

    if performance:
        table = create_table("Model Performance")
        table.add_column("Model", style="cyan")
        table.add_column("Task type")
        table.add_column("Requests", justify="right")
        table.add_column("Success", justify="right")
        table.add_column("Avg quality", justify="right")
        table.add_column("Avg cost", justify="right")
        table.add_column("Avg latency", justify="right")
        for perf in performance:
            table.add_row(
                perf.model,
                perf.task_type,
                str(perf.total_requests),
                format_rate(perf.success_rate),
                format_score(perf.avg_quality) if perf.quality_samples else "-",
                format_cost(perf.avg_cost) if perf.cost_samples else "-",
                f"{perf.avg_latency_ms:.0f} ms" if perf.latency_samples else "-",
            )
        print_table(table)


__all__ = ["stats"]
