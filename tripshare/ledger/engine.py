"""
Ledger Engine

Turns a trip's expense rows into per-currency totals and per-participant,
per-currency net balances.

Positive balance = the others owe this person.
Negative balance = this person owes the others.

The engine is a pure derivation: it keeps no state between calls, never
rounds while accumulating and never raises on malformed money data. Rows
written before stricter validation existed must still produce a
best-effort ledger; anything unreadable contributes zero.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Optional, Union

import structlog

from tripshare.models.expense import ZERO, Expense, coerce_amount, coerce_split
from tripshare.models.ledger import Ledger, Participant, participant_key


logger = structlog.get_logger(__name__)

DEFAULT_CURRENCY = "TWD"

ExpenseLike = Union[Expense, Mapping[str, Any]]


class Roster:
    """
    The trip's companion list, used to seed and resolve ledger names.

    Names resolve to the roster's display name by exact match first, then
    case-insensitively. A name that matches nobody keeps its own trimmed
    text, so a payer who has since left the trip still gets a bucket.
    """

    def __init__(self, names: Iterable[str] = ()):
        self._participants: list[Participant] = []
        self._exact: dict[str, str] = {}
        self._by_key: dict[str, str] = {}

        for name in names:
            if name is None or not str(name).strip():
                continue
            participant = Participant.from_name(str(name))
            if participant.key in self._by_key:
                continue
            self._participants.append(participant)
            self._exact[participant.display_name] = participant.display_name
            self._by_key[participant.key] = participant.display_name

    @classmethod
    def coerce(cls, participants: Union["Roster", Iterable[str], None]) -> "Roster":
        if isinstance(participants, Roster):
            return participants
        return cls(participants or ())

    @property
    def participants(self) -> list[Participant]:
        return list(self._participants)

    @property
    def names(self) -> list[str]:
        """Display names in roster order."""
        return [p.display_name for p in self._participants]

    def resolve(self, name: str) -> str:
        """Map a free-text name to the display name its balance lives under."""
        text = " ".join(str(name).split())
        if text in self._exact:
            return self._exact[text]
        return self._by_key.get(participant_key(text), text)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return participant_key(name) in self._by_key

    def __len__(self) -> int:
        return len(self._participants)

    def __iter__(self):
        return iter(self.names)


def _read_expense(
    expense: Any,
    default_currency: str,
) -> Optional[tuple[Decimal, str, str, dict[str, Decimal]]]:
    """
    Extract (amount, currency, payer, split) from a model or a raw row.

    Returns None for values that are not expense-shaped at all.
    """
    if isinstance(expense, Expense):
        return (
            expense.amount,
            expense.currency or default_currency,
            expense.payer,
            expense.split_details,
        )
    if not isinstance(expense, Mapping):
        return None

    currency = expense.get("currency")
    currency = str(currency).strip().upper() if currency is not None else ""
    payer = expense.get("payer")
    return (
        coerce_amount(expense.get("amount")),
        currency or default_currency,
        str(payer).strip() if payer is not None else "",
        coerce_split(expense.get("split_details")),
    )


def compute_ledger(
    expenses: Iterable[ExpenseLike],
    participants: Union[Roster, Iterable[str], None] = None,
    default_currency: str = DEFAULT_CURRENCY,
) -> Ledger:
    """
    Compute totals and net balances for a list of expenses.

    Args:
        expenses: Expense models or raw row mappings; order does not matter
        participants: Roster (or plain names) seeded with empty balances
        default_currency: Currency for rows that have none

    Returns:
        A fresh Ledger. Every roster name appears in `balances`, even
        with no activity. Payers and split names that are not on the
        roster get their own bucket, shared by spellings that differ only
        in case or spacing and labelled with the first spelling seen.
    """
    roster = Roster.coerce(participants)
    guests: dict[str, str] = {}

    totals: dict[str, Decimal] = {}
    balances: dict[str, dict[str, Decimal]] = {name: {} for name in roster.names}

    def adjust(name: str, currency: str, delta: Decimal) -> None:
        resolved = roster.resolve(name)
        if resolved not in roster:
            resolved = guests.setdefault(participant_key(resolved), resolved)
        bucket = balances.setdefault(resolved, {})
        bucket[currency] = bucket.get(currency, ZERO) + delta

    for expense in expenses:
        row = _read_expense(expense, default_currency)
        if row is None:
            logger.warning(
                "ledger_row_skipped",
                row_type=type(expense).__name__,
            )
            continue

        amount, currency, payer, split = row
        totals[currency] = totals.get(currency, ZERO) + amount

        if payer:
            adjust(payer, currency, amount)
        else:
            logger.warning("ledger_row_without_payer", currency=currency)

        for person, share in split.items():
            adjust(person, currency, -share)

    return Ledger(totals=totals, balances=balances)
