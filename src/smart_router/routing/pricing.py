"""Pricing Table: read-only (provider, model) -> per-1k-token prices."""

from collections.abc import Iterable, Iterator

from smart_router.config.models import PricingEntry


class PricingTable:
    """Immutable lookup over the configured pricing entries.

    Example:
        table = PricingTable(config.pricing)
        entry = table.lookup("openai", "gpt-4o-mini")
        cost = table.estimate_cost(entry, prompt_tokens=500, completion_tokens=250)
    """

    def __init__(self, entries: Iterable[PricingEntry]) -> None:
        self._entries: dict[tuple[str, str], PricingEntry] = {
            (entry.provider, entry.model): entry for entry in entries
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PricingEntry]:
        return iter(self._entries.values())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def lookup(self, provider: str, model: str) -> PricingEntry | None:
        """Return the entry for the pair, or None if it is not priced."""
        return self._entries.get((provider, model))

    @staticmethod
    def estimate_cost(entry: PricingEntry, prompt_tokens: int, completion_tokens: int) -> float:
        """Cost in USD of a request with the given token counts."""
        return (
            prompt_tokens / 1000 * entry.cost_per_1k_prompt
            + completion_tokens / 1000 * entry.cost_per_1k_completion
        )
