"""Patterns command group: list and add routing patterns."""

from typing import Annotated

import typer

from smart_router.cli.formatters.panels import print_error, print_info, print_success
from smart_router.cli.formatters.tables import create_table, format_score, print_table
from smart_router.cli.runtime import open_router
from smart_router.persistence.models import PatternType
from smart_router.routing.analyzer import TaskType

app = typer.Typer(
    name="patterns",
    help="List and add routing patterns.",
    no_args_is_help=True,
)


@app.command("list")
def list_patterns(
    ctx: typer.Context,
    wallet: Annotated[
        str | None, typer.Option("--wallet", "-w", help="Limit to one wallet.")
    ] = None,
    task_type: Annotated[
        TaskType | None, typer.Option("--task-type", "-t", help="Limit to one task type.")
    ] = None,
) -> None:
    """List patterns, most confident first."""
    with open_router(ctx) as router:
        patterns = router.list_patterns(wallet, task_type.value if task_type else None)

    if not patterns:
        print_info("No patterns stored yet.")
        return

    table = create_table("Patterns")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Wallet")
    table.add_column("Type")
    table.add_column("Task")
    table.add_column("Complexity", justify="center")
    table.add_column("Context", justify="center")
    table.add_column("Model")
    table.add_column("S/F", justify="right")
    table.add_column("Confidence", justify="right")
    for p in patterns:
        context = "any" if p.context_min is None else f"{p.context_min}-{p.context_max}"
        table.add_row(
            p.id,
            p.wallet,
            p.pattern_type.value,
            p.task_type,
            f"{p.complexity_min:.2f}-{p.complexity_max:.2f}",
            context,
            f"{p.recommended_provider}/{p.recommended_model}",
            f"{p.success_count}/{p.failure_count}",
            format_score(p.confidence),
        )
    print_table(table)


@app.command("add")
def add_pattern(
    ctx: typer.Context,
    wallet: Annotated[str, typer.Argument(help="Agent wallet identifier.")],
    task_type: Annotated[TaskType, typer.Argument(help="Task type the pattern covers.")],
    model: Annotated[str, typer.Argument(help="Recommended model.")],
    provider: Annotated[str, typer.Option("--provider", "-p", help="Provider of the model.")],
    complexity_min: Annotated[float, typer.Option("--min", help="Lowest complexity covered.")] = 0.0,
    complexity_max: Annotated[float, typer.Option("--max", help="Highest complexity covered.")] = 1.0,
    context_min: Annotated[
        int | None, typer.Option("--context-min", help="Shortest context covered (chars).")
    ] = None,
    context_max: Annotated[
        int | None, typer.Option("--context-max", help="Longest context covered (chars).")
    ] = None,
    description: Annotated[str, typer.Option("--description", "-d")] = "",
    keywords: Annotated[
        list[str] | None, typer.Option("--keyword", "-k", help="Keyword (repeatable).")
    ] = None,
    seeded: Annotated[
        bool, typer.Option("--seeded", help="Mark as seeded rather than manual.")
    ] = False,
) -> None:
    """Add a pattern recommending MODEL for a wallet's tasks in a range."""
    spec = {
        "wallet": wallet,
        "task_type": task_type.value,
        "complexity_min": complexity_min,
        "complexity_max": complexity_max,
        "context_min": context_min,
        "context_max": context_max,
        "recommended_model": model,
        "recommended_provider": provider,
        "pattern_type": PatternType.SEEDED if seeded else PatternType.MANUAL,
        "description": description,
        "keywords": keywords or [],
    }
    with open_router(ctx) as router:
        result = router.create_pattern(spec)

    if result.is_err:
        print_error(str(result.error), title="Invalid pattern")
        raise typer.Exit(1)
    print_success(f"Pattern {result.value.id} created")


__all__ = ["app"]
