"""
Ledger Package

Shared-expense arithmetic: the engine that derives totals and balances,
the equal-split helper and the display-side rounding.
"""

from tripshare.ledger.engine import DEFAULT_CURRENCY, Roster, compute_ledger
from tripshare.ledger.presentation import (
    convert_amount,
    format_signed,
    group_expenses_by_day,
    round_for_display,
    summarize_balances,
)
from tripshare.ledger.splits import build_equal_split

__all__ = [
    "DEFAULT_CURRENCY",
    "Roster",
    "build_equal_split",
    "compute_ledger",
    "convert_amount",
    "format_signed",
    "group_expenses_by_day",
    "round_for_display",
    "summarize_balances",
]
