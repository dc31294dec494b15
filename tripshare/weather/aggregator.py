"""
Weather Aggregator

Builds one sorted list of daily weather segments for a whole trip by
combining the forecast (near days) with last year's archive (far days).

Both sources are queried concurrently. A source that fails is logged and
contributes nothing, so the other one can still render; if both fail the
result is simply empty. Only a missing precondition (no coordinates, no
dates) raises.
"""

import asyncio
from datetime import date, timedelta
from typing import Optional, Protocol

import structlog

from tripshare.models.weather import (
    Coordinates,
    DailyWeather,
    TaggedRange,
    WeatherSegment,
    WeatherSource,
)
from tripshare.weather.client import OpenMeteoClient
from tripshare.weather.errors import ConfigurationIncompleteError
from tripshare.weather.partition import archive_query_window, partition_trip_range


logger = structlog.get_logger(__name__)


class DailyWeatherSource(Protocol):
    """What the aggregator needs from a weather client."""

    async def fetch_forecast(
        self, latitude: float, longitude: float, start: date, end: date
    ) -> list[DailyWeather]: ...

    async def fetch_archive(
        self, latitude: float, longitude: float, start: date, end: date
    ) -> list[DailyWeather]: ...


def _forecast_segments(tagged: TaggedRange, days: list[DailyWeather]) -> list[WeatherSegment]:
    return [
        WeatherSegment(
            date=day.date,
            weather_code=day.weather_code,
            max_temp=day.max_temp,
            min_temp=day.min_temp,
            is_historical=False,
        )
        for day in days
        if tagged.start <= day.date <= tagged.end
    ]


def _historical_segments(tagged: TaggedRange, days: list[DailyWeather]) -> list[WeatherSegment]:
    # The archive knows nothing about future dates: the Nth archive day
    # stands in for the Nth day of the future range.
    future_dates = [tagged.start + timedelta(days=i) for i in range(tagged.days)]
    return [
        WeatherSegment(
            date=future,
            weather_code=day.weather_code,
            max_temp=day.max_temp,
            min_temp=day.min_temp,
            is_historical=True,
        )
        for future, day in zip(future_dates, days)
    ]


async def _fetch_range(
    client: DailyWeatherSource,
    coordinates: Coordinates,
    tagged: TaggedRange,
) -> list[WeatherSegment]:
    try:
        if tagged.source == WeatherSource.FORECAST:
            days = await client.fetch_forecast(
                coordinates.latitude, coordinates.longitude, tagged.start, tagged.end
            )
            return _forecast_segments(tagged, days)

        query_start, query_end = archive_query_window(tagged)
        days = await client.fetch_archive(
            coordinates.latitude, coordinates.longitude, query_start, query_end
        )
        return _historical_segments(tagged, days)
    except Exception as e:
        # Any source failure, timeouts included, drops only this range
        logger.warning(
            "weather_source_failed",
            source=tagged.source.value,
            start=tagged.start.isoformat(),
            end=tagged.end.isoformat(),
            error=str(e),
            error_type=type(e).__name__,
        )
        return []


async def aggregate_weather(
    coordinates: Optional[Coordinates],
    trip_start: Optional[date],
    trip_end: Optional[date],
    today: date,
    forecast_horizon_days: int = 14,
    *,
    client: Optional[DailyWeatherSource] = None,
) -> list[WeatherSegment]:
    """
    Weather for every day of a trip, sorted by date.

    Args:
        coordinates: Destination coordinates
        trip_start: First trip day
        trip_end: Last trip day (inclusive)
        today: Reference day for the forecast horizon
        forecast_horizon_days: Days after `today` the forecast covers
        client: Weather source; defaults to OpenMeteoClient from settings

    Raises:
        ConfigurationIncompleteError: Coordinates or dates missing
        ValueError: trip_end before trip_start
    """
    if coordinates is None:
        raise ConfigurationIncompleteError("coordinates", "No coordinates for destination")
    if trip_start is None or trip_end is None:
        raise ConfigurationIncompleteError("dates")

    client = client or OpenMeteoClient.from_settings()
    ranges = partition_trip_range(trip_start, trip_end, today, forecast_horizon_days)

    parts = await asyncio.gather(
        *(_fetch_range(client, coordinates, tagged) for tagged in ranges)
    )

    # Two sorted runs; a full sort is fine at trip length
    segments = [segment for part in parts for segment in part]
    segments.sort(key=lambda s: s.date)
    return segments
