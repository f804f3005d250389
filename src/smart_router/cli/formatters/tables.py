"""Rich tables for decisions, quotas, patterns and statistics."""

from typing import Any

from rich.table import Table

from smart_router.cli.formatters import console


def create_table(
    title: str | None = None,
    *,
    show_header: bool = True,
    border_style: str = "blue",
    header_style: str = "bold cyan",
) -> Table:
    """Create a Rich Table with consistent Smart Router styling.

    Example:
        table = create_table("Alternatives")
        table.add_column("Model", style="cyan")
        table.add_row("gpt-4o")
        print_table(table)
    """
    return Table(
        title=title,
        show_header=show_header,
        border_style=border_style,
        header_style=header_style,
        row_styles=["", "dim"],
    )


def create_key_value_table(
    data: dict[str, Any],
    title: str | None = None,
    *,
    key_style: str = "cyan",
) -> Table:
    """Create a two-column table for key-value data."""
    table = create_table(title, show_header=False)
    table.add_column("Key", style=key_style, no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(str(key), "-" if value is None else str(value))

    return table


def format_cost(value: float | None) -> str:
    if value is None:
        return "-"
    return f"${value:.6f}"


def format_score(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.3f}"


def format_rate(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.1%}"


def print_table(table: Table) -> None:
    """Print a Rich Table to the shared console."""
    console.print(table)


__all__ = [
    "create_table",
    "create_key_value_table",
    "format_cost",
    "format_rate",
    "format_score",
    "print_table",
]
