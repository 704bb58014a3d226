"""Priority-based provider selection."""

from __future__ import annotations

from caamp.config.schemas import Provider, ProviderPriority

# Lower rank sorts first.
PRIORITY_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}


def validate_priority(priority: str) -> ProviderPriority:
    """Return ``priority`` unchanged, or raise ValueError if it is not a known tier."""
    if priority not in PRIORITY_ORDER:
        valid = ", ".join(PRIORITY_ORDER)
        raise ValueError(f"Invalid priority '{priority}'. Expected one of: {valid}")
    return priority  # type: ignore[return-value]


def select_providers_by_minimum_priority(
    providers: list[Provider], minimum: str = "low"
) -> list[Provider]:
    """Keep providers at or above ``minimum`` priority, highest tier first.

    Providers within the same tier keep their input order.
    """
    max_rank = PRIORITY_ORDER[validate_priority(minimum)]
    selected = [p for p in providers if PRIORITY_ORDER[p.priority] <= max_rank]
    return sorted(selected, key=lambda p: PRIORITY_ORDER[p.priority])
