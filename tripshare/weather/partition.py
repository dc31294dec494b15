"""
Trip Range Partitioning

Open-Meteo only forecasts a couple of weeks ahead. Days inside the forecast
horizon use the forecast; days beyond it use last year's weather for the
same calendar day as a stand-in.

    limit = today + horizon

    forecast:   trip_start .. min(trip_end, limit)      if trip_start <= limit
    historical: max(trip_start, limit + 1) .. trip_end  if trip_end > limit

Either list entry may be missing; together they always cover the trip
range exactly once.
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from tripshare.models.weather import TaggedRange, WeatherSource


def partition_trip_range(
    trip_start: date,
    trip_end: date,
    today: date,
    forecast_horizon_days: int = 14,
) -> list[TaggedRange]:
    """
    Split a trip range into a forecast part and a historical part.

    Raises:
        ValueError: If trip_end is before trip_start
    """
    if trip_end < trip_start:
        raise ValueError("Trip end date cannot be before start date")

    limit = today + timedelta(days=forecast_horizon_days)
    ranges = []

    if trip_start <= limit:
        ranges.append(TaggedRange(
            start=trip_start,
            end=min(trip_end, limit),
            source=WeatherSource.FORECAST,
        ))

    if trip_end > limit:
        ranges.append(TaggedRange(
            start=max(trip_start, limit + timedelta(days=1)),
            end=trip_end,
            source=WeatherSource.HISTORICAL,
        ))

    return ranges


def archive_query_window(tagged: TaggedRange) -> tuple[date, date]:
    """
    The archive window that stands in for a future range.

    Same calendar start one year earlier, same number of days. The end is
    counted from the shifted start rather than shifted itself so that a
    range crossing Feb 29 keeps its length.
    """
    start = tagged.start - relativedelta(years=1)
    return start, start + timedelta(days=tagged.days - 1)
