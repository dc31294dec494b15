"""
Weather Package

Forecast + historical-analogue weather for a trip's date range.
"""

from tripshare.weather.aggregator import DailyWeatherSource, aggregate_weather
from tripshare.weather.client import (
    CITY_ALIASES,
    GeocodingClient,
    OpenMeteoClient,
    parse_daily,
    translate_place,
)
from tripshare.weather.codes import (
    ICON_EMOJI,
    describe_weather_code,
    weather_icon,
    weather_label,
)
from tripshare.weather.errors import (
    ConfigurationIncompleteError,
    LocationNotFoundError,
    WeatherError,
    WeatherSourceError,
)
from tripshare.weather.partition import archive_query_window, partition_trip_range

__all__ = [
    # Aggregation
    "DailyWeatherSource",
    "aggregate_weather",
    "archive_query_window",
    "partition_trip_range",
    # Clients
    "CITY_ALIASES",
    "GeocodingClient",
    "OpenMeteoClient",
    "parse_daily",
    "translate_place",
    # WMO codes
    "ICON_EMOJI",
    "describe_weather_code",
    "weather_icon",
    "weather_label",
    # Errors
    "ConfigurationIncompleteError",
    "LocationNotFoundError",
    "WeatherError",
    "WeatherSourceError",
]
