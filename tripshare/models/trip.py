"""
Trip and Itinerary Models

A trip owns its companion roster, its destination and its date range.
Weather, expenses and memories all hang off a trip.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tripshare.models.expense import utcnow


DEFAULT_COVER_IMAGE = (
    "https://images.unsplash.com/photo-1469854523086-cc02fe5d8800?w=800&q=80"
)


class TripStatus(str, Enum):
    """Trip lifecycle status."""
    ACTIVE = "active"
    ARCHIVED = "archived"


class DateRange(BaseModel):
    """Inclusive calendar date range with start <= end."""

    start: date
    end: date

    @model_validator(mode='after')
    def validate_order(self) -> 'DateRange':
        if self.end < self.start:
            raise ValueError("Date range end cannot be before start")
        return self

    @property
    def days(self) -> int:
        """Number of calendar days covered (inclusive)."""
        return (self.end - self.start).days + 1

    def dates(self) -> list[date]:
        return [self.start + timedelta(days=i) for i in range(self.days)]

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


class Trip(BaseModel):
    """
    A trip and its setup.

    `companions` is the ordered roster of display names used by the ledger.
    A trip without destination or dates is valid but "not set up yet".
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique trip ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Trip name"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="User id of whoever created the trip"
    )
    destination: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Free-text destination, geocoded for weather"
    )
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    companions: list[str] = Field(
        default_factory=list,
        description="Companion display names"
    )
    status: TripStatus = Field(
        default=TripStatus.ACTIVE,
        description="Trip status"
    )
    cover_image: str = Field(
        default=DEFAULT_COVER_IMAGE,
        description="Cover image URL"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('destination', mode='before')
    @classmethod
    def blank_destination_is_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @model_validator(mode='after')
    def validate_dates(self) -> 'Trip':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Trip end date cannot be before start date")
        return self

    @property
    def date_range(self) -> Optional[DateRange]:
        if self.start_date is None or self.end_date is None:
            return None
        return DateRange(start=self.start_date, end=self.end_date)

    @property
    def is_configured(self) -> bool:
        """Destination and both dates are set."""
        return bool(self.destination) and self.date_range is not None


class ItineraryItem(BaseModel):
    """One planned stop on one day of the trip."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    trip_id: UUID
    day: date
    title: str = Field(
        ...,
        min_length=1,
        max_length=200
    )
    start_time: Optional[time] = None
    location: Optional[str] = Field(default=None, max_length=300)
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)
