"""
Expense Models for TripShare

These models define the schemas for shared expenses.

DESIGN DECISION: Money rows written by older versions of the app are loose:
split details arrive as JSON text or arbitrary dicts, shares may be strings
or garbage. All coercion happens HERE, at the boundary, so the ledger engine
only ever sees a fixed `dict[str, Decimal]`.

Anything that cannot be read as a number becomes zero. A bad share must
never break the balances page.
"""

import json
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


ZERO = Decimal("0")


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class Currency(str, Enum):
    """
    Currencies a new expense can be recorded in.

    Stored rows keep whatever code they were written with; this set only
    restricts what the add-expense form accepts.
    """
    TWD = "TWD"
    JPY = "JPY"
    KRW = "KRW"
    USD = "USD"
    CNY = "CNY"
    THB = "THB"
    VND = "VND"


# =============================================================================
# COERCION HELPERS
# =============================================================================

def coerce_amount(value: Any) -> Decimal:
    """
    Read a money value leniently.

    None, booleans, non-numeric text, NaN and infinities all become zero.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        text = str(value).strip().replace(",", "")
        amount = Decimal(text)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return amount if amount.is_finite() else ZERO


def coerce_split(value: Any) -> dict[str, Decimal]:
    """
    Read a split-details value leniently.

    Accepts a mapping or its JSON text. Names are trimmed; blank names are
    dropped; names that collide after trimming are summed.
    """
    if isinstance(value, str):
        try:
            value = json.loads(value) if value.strip() else {}
        except ValueError:
            return {}
    if not isinstance(value, Mapping):
        return {}

    split: dict[str, Decimal] = {}
    for person, share in value.items():
        name = str(person).strip() if person is not None else ""
        if not name:
            continue
        split[name] = split.get(name, ZERO) + coerce_amount(share)
    return split


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    A recorded shared expense.

    `payer` and the keys of `split_details` are companion display names,
    not user ids. The sum of the shares is expected to equal `amount`, but
    this is not enforced: old rows and hand-edited rows may disagree.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    trip_id: UUID = Field(
        ...,
        description="Trip this expense belongs to"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the expense was recorded"
    )
    item_name: str = Field(
        default="",
        max_length=200,
        description="What was bought"
    )
    amount: Decimal = Field(
        default=ZERO,
        description="Total amount paid"
    )
    currency: str = Field(
        default=Currency.TWD.value,
        max_length=10,
        description="Currency code the amount is in"
    )
    payer: str = Field(
        default="",
        max_length=100,
        description="Display name of whoever paid"
    )
    split_details: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Display name -> share of the amount"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount_field(cls, v: Any) -> Decimal:
        return coerce_amount(v)

    @field_validator('split_details', mode='before')
    @classmethod
    def coerce_split_field(cls, v: Any) -> dict[str, Decimal]:
        return coerce_split(v)

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> str:
        if isinstance(v, Currency):
            return v.value
        text = str(v).strip().upper() if v is not None else ""
        return text or Currency.TWD.value

    @field_validator('payer', 'item_name', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @property
    def split_total(self) -> Decimal:
        """Sum of all shares."""
        return sum(self.split_details.values(), ZERO)

    @property
    def spent_on(self) -> date:
        """Calendar day the expense was recorded on."""
        return self.created_at.date()


class ExpenseDraft(BaseModel):
    """
    What the add-expense form submits.

    PROPOSED data: fields are loose so the validator can report every
    problem at once instead of failing on the first.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    item_name: str = Field(
        default="",
        max_length=200,
        description="What was bought"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        description="Total amount paid"
    )
    currency: str = Field(
        default=Currency.TWD.value,
        description="Currency code (must be a supported Currency)"
    )
    payer: str = Field(
        default="",
        description="Who paid"
    )
    involved: list[str] = Field(
        default_factory=list,
        description="Companions sharing this expense equally"
    )

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> str:
        if isinstance(v, Currency):
            return v.value
        return str(v).strip().upper() if v is not None else ""

    @field_validator('involved')
    @classmethod
    def strip_involved(cls, v: list[str]) -> list[str]:
        """Trim names and drop blanks, keeping order and first occurrence."""
        seen = []
        for name in v:
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        return seen
