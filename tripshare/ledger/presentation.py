"""
Ledger Presentation

Rounding and formatting for the balances card. Nothing here touches the
Ledger itself: rounding is applied to copies at render time only.

Rounding rule: whole units, ROUND_HALF_UP (halves go away from zero, so
+0.5 -> 1 and -0.5 -> -1). A balance that rounds to zero is "settled".
"""

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Iterable, Union

from tripshare.ledger.engine import Roster
from tripshare.models.expense import Expense, coerce_amount
from tripshare.models.ledger import (
    BalanceDirection,
    BalanceLine,
    Ledger,
    ParticipantSummary,
)


def round_for_display(value: Any) -> int:
    """Round a money value to whole units, half-up."""
    amount = coerce_amount(value)
    with localcontext() as ctx:
        # quantize needs every integer digit to fit in the context precision
        ctx.prec = max(ctx.prec, amount.adjusted() + 2)
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_signed(amount: Any) -> str:
    """Format a balance as +1,200 / -350 (whole units)."""
    return f"{round_for_display(amount):+,}"


def _balance_lines(per_currency: dict[str, Decimal]) -> list[BalanceLine]:
    lines = []
    for currency in sorted(per_currency):
        rounded = round_for_display(per_currency[currency])
        if rounded == 0:
            continue
        lines.append(BalanceLine(
            currency=currency,
            amount=abs(rounded),
            direction=BalanceDirection.OWED if rounded > 0 else BalanceDirection.OWES,
        ))
    return lines


def summarize_balances(
    ledger: Ledger,
    participants: Union[Roster, Iterable[str], None] = None,
) -> list[ParticipantSummary]:
    """
    Build the per-person balance card.

    Roster members come first, in roster order, settled or not. Names that
    are not on the roster (a payer who left the trip, a typo in an old row)
    follow, but only when they still have something unsettled.
    """
    roster = Roster.coerce(participants)
    summaries = []
    listed = set()

    for name in roster.names:
        summaries.append(ParticipantSummary(
            name=name,
            in_roster=True,
            lines=_balance_lines(ledger.balances.get(name, {})),
        ))
        listed.add(name)

    for name, per_currency in ledger.balances.items():
        if name in listed:
            continue
        lines = _balance_lines(per_currency)
        if lines:
            summaries.append(ParticipantSummary(
                name=name,
                in_roster=False,
                lines=lines,
            ))

    return summaries


def convert_amount(amount: Any, rate: Any) -> int:
    """Quick converter: amount * rate, rounded half-up to whole units."""
    return round_for_display(coerce_amount(amount) * coerce_amount(rate))


def group_expenses_by_day(
    expenses: Iterable[Expense],
) -> list[tuple[date, list[Expense]]]:
    """Expenses grouped by calendar day, newest day first, newest first within a day."""
    by_day: dict[date, list[Expense]] = defaultdict(list)
    for expense in expenses:
        by_day[expense.spent_on].append(expense)

    return [
        (day, sorted(by_day[day], key=lambda e: e.created_at, reverse=True))
        for day in sorted(by_day, reverse=True)
    ]
