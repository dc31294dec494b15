"""Tests for range partitioning, weather aggregation and WMO code helpers."""

import asyncio
import pytest
from datetime import date, timedelta

from tripshare.models.weather import Coordinates, DailyWeather, TaggedRange, WeatherSource
from tripshare.weather import (
    ConfigurationIncompleteError,
    WeatherSourceError,
    aggregate_weather,
    archive_query_window,
    describe_weather_code,
    partition_trip_range,
    weather_icon,
    weather_label,
)


TODAY = date(2025, 1, 1)
KYOTO = Coordinates(latitude=35.02, longitude=135.75)


def day(offset: int) -> date:
    return TODAY + timedelta(days=offset)


class FakeWeatherSource:
    """Returns one record per requested day; can be told to fail per source."""

    def __init__(self, fail_forecast=False, fail_archive=False):
        self.fail_forecast = fail_forecast
        self.fail_archive = fail_archive
        self.calls = []

    def _days(self, start, end, code):
        days = []
        current = start
        while current <= end:
            days.append(DailyWeather(date=current, weather_code=code, max_temp=20.0, min_temp=10.0))
            current += timedelta(days=1)
        return days

    async def fetch_forecast(self, latitude, longitude, start, end):
        self.calls.append(("forecast", start, end))
        if self.fail_forecast:
            raise WeatherSourceError("forecast", "boom")
        return self._days(start, end, code=1)

    async def fetch_archive(self, latitude, longitude, start, end):
        self.calls.append(("archive", start, end))
        if self.fail_archive:
            raise WeatherSourceError("archive", "boom")
        return self._days(start, end, code=61)


class TestPartitionTripRange:
    """Tests for splitting a trip into forecast and historical parts."""

    def test_trip_inside_horizon_is_forecast_only(self):
        ranges = partition_trip_range(day(2), day(6), TODAY)
        assert ranges == [TaggedRange(start=day(2), end=day(6), source=WeatherSource.FORECAST)]

    def test_trip_beyond_horizon_is_historical_only(self):
        ranges = partition_trip_range(day(30), day(35), TODAY)
        assert ranges == [TaggedRange(start=day(30), end=day(35), source=WeatherSource.HISTORICAL)]

    def test_trip_straddling_horizon_is_split(self):
        ranges = partition_trip_range(day(10), day(20), TODAY)
        assert ranges == [
            TaggedRange(start=day(10), end=day(14), source=WeatherSource.FORECAST),
            TaggedRange(start=day(15), end=day(20), source=WeatherSource.HISTORICAL),
        ]

    def test_last_forecast_day_is_inclusive(self):
        ranges = partition_trip_range(day(14), day(14), TODAY)
        assert [r.source for r in ranges] == [WeatherSource.FORECAST]

        ranges = partition_trip_range(day(15), day(15), TODAY)
        assert [r.source for r in ranges] == [WeatherSource.HISTORICAL]

    def test_past_dates_go_to_forecast(self):
        ranges = partition_trip_range(day(-3), day(2), TODAY)
        assert ranges == [TaggedRange(start=day(-3), end=day(2), source=WeatherSource.FORECAST)]

    def test_custom_horizon(self):
        ranges = partition_trip_range(day(5), day(10), TODAY, forecast_horizon_days=7)
        assert [(r.start, r.end) for r in ranges] == [(day(5), day(7)), (day(8), day(10))]

    def test_ranges_cover_trip_exactly_once(self):
        for start_offset, end_offset in [(0, 0), (3, 30), (14, 15), (-5, 40)]:
            ranges = partition_trip_range(day(start_offset), day(end_offset), TODAY)
            covered = [d for r in ranges for d in (r.start + timedelta(days=i) for i in range(r.days))]
            expected = [day(i) for i in range(start_offset, end_offset + 1)]
            assert covered == expected

    def test_reversed_range_raises(self):
        with pytest.raises(ValueError):
            partition_trip_range(day(5), day(4), TODAY)


class TestArchiveQueryWindow:
    """Tests for the one-year-back archive window."""

    def test_shifted_back_one_year(self):
        tagged = TaggedRange(start=date(2025, 8, 10), end=date(2025, 8, 14), source=WeatherSource.HISTORICAL)
        assert archive_query_window(tagged) == (date(2024, 8, 10), date(2024, 8, 14))

    def test_leap_day_start_keeps_length(self):
        """Feb 29 has no counterpart a year earlier; the window still has the same day count."""
        tagged = TaggedRange(start=date(2028, 2, 29), end=date(2028, 3, 3), source=WeatherSource.HISTORICAL)
        start, end = archive_query_window(tagged)
        assert start == date(2027, 2, 28)
        assert (end - start).days + 1 == tagged.days

    def test_range_crossing_leap_day_keeps_length(self):
        tagged = TaggedRange(start=date(2025, 2, 27), end=date(2025, 3, 2), source=WeatherSource.HISTORICAL)
        start, end = archive_query_window(tagged)
        assert start == date(2024, 2, 27)
        assert end == date(2024, 3, 1)


class TestAggregateWeather:
    """Tests for aggregate_weather with a fake source."""

    @pytest.mark.asyncio
    async def test_far_trip_is_all_historical(self):
        client = FakeWeatherSource()

        segments = await aggregate_weather(KYOTO, day(30), day(34), TODAY, client=client)

        assert len(segments) == 5
        assert all(s.is_historical for s in segments)
        # Dates are the trip's own dates, not the shifted archive dates
        assert [s.date for s in segments] == [day(i) for i in range(30, 35)]
        assert client.calls == [("archive", date(2024, 1, 31), date(2024, 2, 4))]

    @pytest.mark.asyncio
    async def test_near_trip_is_all_forecast(self):
        client = FakeWeatherSource()

        segments = await aggregate_weather(KYOTO, day(1), day(5), TODAY, client=client)

        assert [s.date for s in segments] == [day(i) for i in range(1, 6)]
        assert not any(s.is_historical for s in segments)
        assert [c[0] for c in client.calls] == ["forecast"]

    @pytest.mark.asyncio
    async def test_straddling_trip_is_sorted_without_gaps(self):
        client = FakeWeatherSource()

        segments = await aggregate_weather(KYOTO, day(10), day(20), TODAY, client=client)

        assert [s.date for s in segments] == [day(i) for i in range(10, 21)]
        assert [s.is_historical for s in segments] == [False] * 5 + [True] * 6
        assert segments[0].weather_code == 1
        assert segments[-1].weather_code == 61

    @pytest.mark.asyncio
    async def test_one_source_failing_keeps_the_other(self):
        client = FakeWeatherSource(fail_archive=True)

        segments = await aggregate_weather(KYOTO, day(10), day(20), TODAY, client=client)

        assert [s.date for s in segments] == [day(i) for i in range(10, 15)]
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_unexpected_source_error_keeps_the_other(self):
        """A timeout or other non-weather error drops only its own range."""
        class SlowArchive(FakeWeatherSource):
            async def fetch_archive(self, latitude, longitude, start, end):
                raise asyncio.TimeoutError()

        segments = await aggregate_weather(KYOTO, day(9), day(19), TODAY, client=SlowArchive())

        assert [s.date for s in segments] == [day(i) for i in range(9, 15)]
        assert not any(s.is_historical for s in segments)

    @pytest.mark.asyncio
    async def test_both_sources_failing_is_empty(self):
        client = FakeWeatherSource(fail_forecast=True, fail_archive=True)

        segments = await aggregate_weather(KYOTO, day(10), day(20), TODAY, client=client)

        assert segments == []

    @pytest.mark.asyncio
    async def test_forecast_days_outside_range_are_dropped(self):
        class ChattySource(FakeWeatherSource):
            async def fetch_forecast(self, latitude, longitude, start, end):
                return self._days(start - timedelta(days=2), end + timedelta(days=2), code=3)

        segments = await aggregate_weather(KYOTO, day(3), day(4), TODAY, client=ChattySource())

        assert [s.date for s in segments] == [day(3), day(4)]

    @pytest.mark.asyncio
    async def test_short_archive_response_is_not_padded(self):
        class ShortArchive(FakeWeatherSource):
            async def fetch_archive(self, latitude, longitude, start, end):
                return self._days(start, start + timedelta(days=1), code=61)

        segments = await aggregate_weather(KYOTO, day(30), day(34), TODAY, client=ShortArchive())

        assert [s.date for s in segments] == [day(30), day(31)]

    @pytest.mark.asyncio
    async def test_missing_coordinates_raises(self):
        with pytest.raises(ConfigurationIncompleteError) as exc_info:
            await aggregate_weather(None, day(1), day(2), TODAY, client=FakeWeatherSource())
        assert exc_info.value.missing == "coordinates"

    @pytest.mark.asyncio
    async def test_missing_dates_raises(self):
        with pytest.raises(ConfigurationIncompleteError) as exc_info:
            await aggregate_weather(KYOTO, None, day(2), TODAY, client=FakeWeatherSource())
        assert exc_info.value.missing == "dates"


class TestWeatherCodes:
    """Tests for WMO code helpers."""

    def test_describe_groups_codes(self):
        assert describe_weather_code(0) == "weather.codes.0"
        assert describe_weather_code(63) == "weather.codes.61"
        assert describe_weather_code(99) == "weather.codes.95"

    def test_describe_unknown(self):
        assert describe_weather_code(None) == "weather.codes.unknown"
        assert describe_weather_code(42) == "weather.codes.unknown"

    def test_labels(self):
        assert weather_label(48) == "Fog"
        assert weather_label(None) == "Unknown"

    def test_icons(self):
        assert weather_icon(0) == "sun"
        assert weather_icon(3) == "cloud"
        assert weather_icon(81) == "rain"
        assert weather_icon(73) == "snow"
        assert weather_icon(96) == "storm"
        assert weather_icon(None) == "cloud"
        assert weather_icon(1234) == "cloud"
