"""Split helpers used when a new expense is recorded."""

from decimal import Decimal
from typing import Any

from tripshare.models.expense import coerce_amount


def build_equal_split(amount: Any, involved: list[str]) -> dict[str, Decimal]:
    """
    Split an amount equally across the involved companions.

    Every companion gets `amount / len(involved)`, unrounded. Names are
    trimmed and deduplicated in order.

    Raises:
        ValueError: If nobody is involved
    """
    names: list[str] = []
    for name in involved:
        name = " ".join(str(name).split())
        if name and name not in names:
            names.append(name)

    if not names:
        raise ValueError("At least one companion must be involved in an expense")

    share = coerce_amount(amount) / len(names)
    return {name: share for name in names}
