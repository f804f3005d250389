"""Routing commands: route, outcome and decision."""

from pathlib import Path
from typing import Annotated

import typer

from smart_router.cli.formatters import console
from smart_router.cli.formatters.panels import print_error, print_success, print_warning
from smart_router.cli.formatters.tables import (
    create_key_value_table,
    create_table,
    format_cost,
    format_score,
    print_table,
)
from smart_router.cli.runtime import open_router
from smart_router.core.errors import QuotaExceededError
from smart_router.persistence.models import UNLIMITED, DecisionOutcome, RoutingDecision


def _print_decision(decision: RoutingDecision) -> None:
    data: dict[str, object] = {
        "Decision": decision.id,
        "Wallet": decision.wallet,
        "Model": f"{decision.selected_provider}/{decision.selected_model}",
        "Reason": decision.selection_reason,
        "Confidence": format_score(decision.confidence_score),
        "Estimated cost": format_cost(decision.estimated_cost),
        "Task type": decision.task_type,
        "Complexity": format_score(decision.complexity_score),
        "Estimated tokens": decision.estimated_tokens,
        "Pattern": decision.pattern_id,
        "Created": decision.created_at.isoformat(timespec="seconds"),
    }
    if decision.outcome is not None:
        outcome = decision.outcome
        data["Outcome"] = "success" if outcome.was_successful else "failure"
        data["Actual tokens"] = outcome.actual_tokens
        data["Actual cost"] = format_cost(outcome.actual_cost)
        data["Quality"] = format_score(outcome.response_quality)
        data["Response time (ms)"] = outcome.response_time_ms
        data["Outcome revision"] = decision.outcome_revision
    print_table(create_key_value_table(data, "Routing Decision"))

    if decision.alternatives:
        table = create_table("Alternatives")
        table.add_column("Model", style="cyan")
        table.add_column("Provider")
        table.add_column("Score", justify="right")
        table.add_column("Est. cost", justify="right")
        table.add_column("Reason")
        for alt in decision.alternatives:
            table.add_row(
                alt.model,
                alt.provider,
                format_score(alt.score),
                format_cost(alt.estimated_cost),
                alt.reason,
            )
        print_table(table)


def route(
    ctx: typer.Context,
    prompt: Annotated[str, typer.Argument(help="Prompt of the request to route.")],
    wallet: Annotated[str, typer.Option("--wallet", "-w", help="Agent wallet identifier.")],
    context: Annotated[
        str | None,
        typer.Option("--context", "-c", help="Supporting context text."),
    ] = None,
    context_file: Annotated[
        Path | None,
        typer.Option(
            "--context-file",
            help="Read supporting context from a file.",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
) -> None:
    """Route a request: analyze it, pick a model and record the decision."""
    if context_file is not None:
        context = context_file.read_text(encoding="utf-8", errors="replace")

    with open_router(ctx) as router:
        result = router.route(prompt, context, wallet=wallet)
        if result.is_err:
            error = result.error
            if isinstance(error, QuotaExceededError):
                print_warning(
                    f"Daily limit of {error.limit} decisions reached for {wallet}.",
                    title="Quota exhausted",
                )
                raise typer.Exit(2)
            print_error(error.message)
            raise typer.Exit(1)

        routed = result.value
        _print_decision(routed.decision)
        if routed.quota.decisions_limit == UNLIMITED:
            console.print(f"[muted]Quota: {routed.quota.tier.value}, unlimited[/]")
        else:
            remaining = max(0, routed.quota.decisions_limit - routed.quota.decisions_today)
            console.print(
                f"[muted]Quota: {routed.quota.tier.value}, {remaining} of "
                f"{routed.quota.decisions_limit} decisions left today[/]"
            )


def outcome(
    ctx: typer.Context,
    decision_id: Annotated[str, typer.Argument(help="Decision to report on.")],
    success: Annotated[
        bool,
        typer.Option("--success/--failure", help="Whether the request succeeded."),
    ] = True,
    tokens: Annotated[int | None, typer.Option(help="Tokens actually used.", min=0)] = None,
    cost: Annotated[float | None, typer.Option(help="Actual cost in USD.", min=0.0)] = None,
    quality: Annotated[
        float | None,
        typer.Option(help="Response quality between 0 and 1.", min=0.0, max=1.0),
    ] = None,
    latency_ms: Annotated[
        int | None, typer.Option("--latency-ms", help="Response time in ms.", min=0)
    ] = None,
) -> None:
    """Record the real-world outcome of a decision (overwrites any earlier one)."""
    reported = DecisionOutcome(
        was_successful=success,
        actual_tokens=tokens,
        actual_cost=cost,
        response_quality=quality,
        response_time_ms=latency_ms,
    )
    with open_router(ctx) as router:
        result = router.record_outcome(decision_id, reported)
        if result.is_err:
            print_error(result.error.message, title="Not found")
            raise typer.Exit(1)
        revision = result.value.outcome_revision
        note = "recorded" if revision == 1 else f"updated (revision {revision})"
        print_success(f"Outcome {note} for {decision_id}")


def decision(
    ctx: typer.Context,
    decision_id: Annotated[str, typer.Argument(help="Decision to show.")],
) -> None:
    """Show a stored decision and its outcome."""
    with open_router(ctx) as router:
        result = router.get_decision(decision_id)
        if result.is_err:
            print_error(result.error.message, title="Not found")
            raise typer.Exit(1)
        _print_decision(result.value)


__all__ = ["decision", "outcome", "route"]
