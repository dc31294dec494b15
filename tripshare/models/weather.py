"""
Weather Models

WeatherSegment is what the weather page renders: one day, one WMO code,
min/max temperature, and whether the numbers are a real forecast or last
year's weather for the same calendar day.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WeatherSource(str, Enum):
    """Where a day's weather comes from."""
    FORECAST = "forecast"
    HISTORICAL = "historical"


class Coordinates(BaseModel):
    """A point on the map."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class GeoLocation(BaseModel):
    """Best geocoding match for a destination."""

    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    country: Optional[str] = None
    admin1: Optional[str] = Field(
        default=None,
        description="Region / state / prefecture"
    )
    timezone: Optional[str] = None

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)

    @property
    def label(self) -> str:
        """Locality text, e.g. Kyoto, Kyoto, Japan."""
        parts = [self.name]
        for extra in (self.admin1, self.country):
            if extra and extra not in parts:
                parts.append(extra)
        return ", ".join(parts)


class DailyWeather(BaseModel):
    """One day as returned by a weather source, before relabelling."""

    date: dt.date
    weather_code: Optional[int] = None
    max_temp: Optional[float] = None
    min_temp: Optional[float] = None


class WeatherSegment(BaseModel):
    """One trip day's weather, tagged with its provenance."""

    date: dt.date
    weather_code: Optional[int] = Field(
        default=None,
        description="WMO weather interpretation code"
    )
    max_temp: Optional[float] = None
    min_temp: Optional[float] = None
    is_historical: bool = Field(
        ...,
        description="True when taken from the same day one year earlier"
    )


class TaggedRange(BaseModel):
    """A slice of the trip range and the source that should fill it."""
    model_config = ConfigDict(frozen=True)

    start: dt.date
    end: dt.date
    source: WeatherSource

    @model_validator(mode='after')
    def validate_order(self) -> 'TaggedRange':
        if self.end < self.start:
            raise ValueError("Range end cannot be before start")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


class WeatherReport(BaseModel):
    """What the weather flow hands to the UI."""

    destination: str
    location: GeoLocation
    segments: list[WeatherSegment] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return bool(self.segments)

    @property
    def has_historical(self) -> bool:
        return any(s.is_historical for s in self.segments)
