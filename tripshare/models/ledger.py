"""
Ledger Models

Derived, never persisted. A Ledger is rebuilt from the expense rows every
time it is needed.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from tripshare.models.expense import ZERO


def participant_key(name: str) -> str:
    """Stable matching key for a display name (trimmed, casefolded)."""
    return " ".join(name.split()).casefold()


class Participant(BaseModel):
    """A companion as the ledger sees them."""

    key: str = Field(
        ...,
        description="Matching key (casefolded, whitespace-normalized name)"
    )
    display_name: str = Field(
        ...,
        description="Name shown to users"
    )

    @classmethod
    def from_name(cls, name: str) -> "Participant":
        display = " ".join(name.split())
        return cls(key=participant_key(display), display_name=display)


class Ledger(BaseModel):
    """
    Totals and net balances for one trip.

    totals:   currency -> total spent
    balances: display name -> currency -> net position
              (positive = others owe them, negative = they owe)
    """

    totals: dict[str, Decimal] = Field(default_factory=dict)
    balances: dict[str, dict[str, Decimal]] = Field(default_factory=dict)

    def balance_of(self, name: str, currency: str) -> Decimal:
        return self.balances.get(name, {}).get(currency, ZERO)

    @property
    def currencies(self) -> list[str]:
        """Currencies seen anywhere in the ledger, sorted."""
        seen = set(self.totals)
        for per_currency in self.balances.values():
            seen.update(per_currency)
        return sorted(seen)


class BalanceDirection(str, Enum):
    """Which way money flows for one balance line."""
    OWED = "owed"      # others owe this person
    OWES = "owes"      # this person owes others


class BalanceLine(BaseModel):
    """One rounded, displayable balance in one currency."""

    currency: str
    amount: int = Field(
        ...,
        description="Balance rounded to whole units (half-up)"
    )
    direction: BalanceDirection


class ParticipantSummary(BaseModel):
    """Everything the balances card shows for one person."""

    name: str
    in_roster: bool = True
    lines: list[BalanceLine] = Field(default_factory=list)

    @property
    def is_settled(self) -> bool:
        return not self.lines


class ExpenseSummary(BaseModel):
    """What the expenses page shows above the list."""

    totals: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Currency -> total spent (unrounded)"
    )
    participants: list[ParticipantSummary] = Field(default_factory=list)
    expense_count: int = 0

    @property
    def all_settled(self) -> bool:
        return all(p.is_settled for p in self.participants)
