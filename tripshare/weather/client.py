"""
Open-Meteo Clients

Thin async wrappers around the three Open-Meteo endpoints we use:
forecast, historical archive and geocoding. No API key is needed.

Every transport or payload problem is turned into a WeatherSourceError
so callers deal with a single failure type. These clients never retry;
the aggregator decides what a failure means.
"""

from datetime import date
from typing import Any, Optional

import httpx
import structlog

from tripshare.config import WeatherSettings, get_settings
from tripshare.models.weather import DailyWeather, GeoLocation
from tripshare.weather.errors import LocationNotFoundError, WeatherSourceError


logger = structlog.get_logger(__name__)

DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min"

# Destinations typed in Chinese that geocode poorly as-is
CITY_ALIASES: dict[str, str] = {
    "首爾": "Seoul",
    "東京": "Tokyo",
    "大阪": "Osaka",
    "京都": "Kyoto",
    "沖繩": "Okinawa",
    "曼谷": "Bangkok",
    "清邁": "Chiang Mai",
    "巴黎": "Paris",
    "倫敦": "London",
    "紐約": "New York",
}


def translate_place(place: str) -> str:
    """Apply the alias table to a trimmed place name."""
    name = place.strip()
    return CITY_ALIASES.get(name, name)


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def parse_daily(payload: Any, source: str) -> list[DailyWeather]:
    """
    Parse the `daily` block of a forecast or archive response.

    Missing value arrays are treated as all-null; a missing or malformed
    `time` array is an error.
    """
    if not isinstance(payload, dict):
        raise WeatherSourceError(source, "response is not a JSON object")
    if payload.get("error"):
        raise WeatherSourceError(source, str(payload.get("reason", "API error")))

    daily = payload.get("daily")
    if not isinstance(daily, dict) or not isinstance(daily.get("time"), list):
        raise WeatherSourceError(source, "response has no daily.time array")

    days = daily["time"]
    columns = {}
    for field in ("weather_code", "temperature_2m_max", "temperature_2m_min"):
        values = daily.get(field)
        if values is None:
            values = [None] * len(days)
        if not isinstance(values, list) or len(values) != len(days):
            raise WeatherSourceError(source, f"daily.{field} does not match daily.time")
        columns[field] = values

    try:
        return [
            DailyWeather(
                date=date.fromisoformat(day),
                weather_code=_optional_int(columns["weather_code"][i]),
                max_temp=_optional_float(columns["temperature_2m_max"][i]),
                min_temp=_optional_float(columns["temperature_2m_min"][i]),
            )
            for i, day in enumerate(days)
        ]
    except (TypeError, ValueError) as e:
        raise WeatherSourceError(source, f"malformed daily values: {e}")


class OpenMeteoClient:
    """Forecast and archive lookups for one coordinate and date range."""

    def __init__(
        self,
        forecast_url: str = "https://api.open-meteo.com/v1/forecast",
        archive_url: str = "https://archive-api.open-meteo.com/v1/archive",
        timeout: float = 10.0,
    ):
        self.forecast_url = forecast_url
        self.archive_url = archive_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[WeatherSettings] = None) -> "OpenMeteoClient":
        settings = settings or get_settings().weather
        return cls(
            forecast_url=settings.forecast_url,
            archive_url=settings.archive_url,
            timeout=settings.request_timeout_seconds,
        )

    async def fetch_forecast(
        self,
        latitude: float,
        longitude: float,
        start: date,
        end: date,
    ) -> list[DailyWeather]:
        return await self._fetch_daily("forecast", self.forecast_url, latitude, longitude, start, end)

    async def fetch_archive(
        self,
        latitude: float,
        longitude: float,
        start: date,
        end: date,
    ) -> list[DailyWeather]:
        return await self._fetch_daily("archive", self.archive_url, latitude, longitude, start, end)

    async def _fetch_daily(
        self,
        source: str,
        url: str,
        latitude: float,
        longitude: float,
        start: date,
        end: date,
    ) -> list[DailyWeather]:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "daily": DAILY_FIELDS,
            "timezone": "auto",
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as e:
            raise WeatherSourceError(source, f"request failed: {e}")
        except ValueError as e:
            raise WeatherSourceError(source, f"invalid JSON: {e}")

        days = parse_daily(payload, source)
        logger.debug(
            "weather_source_fetched",
            source=source,
            start=start.isoformat(),
            end=end.isoformat(),
            days=len(days),
        )
        return days


class GeocodingClient:
    """Free-text place name -> best matching coordinates."""

    def __init__(
        self,
        url: str = "https://geocoding-api.open-meteo.com/v1/search",
        timeout: float = 10.0,
    ):
        self.url = url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[WeatherSettings] = None) -> "GeocodingClient":
        settings = settings or get_settings().weather
        return cls(url=settings.geocoding_url, timeout=settings.request_timeout_seconds)

    async def search(self, place: str, language: Optional[str] = "zh") -> GeoLocation:
        """
        Look up a destination.

        Known aliases are translated first. The first attempt sends the
        language hint; if it finds nothing, a second attempt goes without.

        Raises:
            LocationNotFoundError: Neither attempt matched
            WeatherSourceError: The endpoint failed
        """
        query = translate_place(place)
        if not query:
            raise LocationNotFoundError(place)

        attempts = [language, None] if language else [None]
        for hint in attempts:
            match = await self._search_once(query, hint)
            if match is not None:
                return match
            logger.info("geocoding_no_match", query=query, language=hint)

        raise LocationNotFoundError(place)

    async def _search_once(self, query: str, language: Optional[str]) -> Optional[GeoLocation]:
        params = {"name": query, "count": 1, "format": "json"}
        if language:
            params["language"] = language
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(self.url, params=params)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as e:
            raise WeatherSourceError("geocoding", f"request failed: {e}")
        except ValueError as e:
            raise WeatherSourceError("geocoding", f"invalid JSON: {e}")

        results = payload.get("results") if isinstance(payload, dict) else None
        if not results:
            return None
        try:
            return GeoLocation.model_validate(results[0])
        except ValueError as e:
            raise WeatherSourceError("geocoding", f"malformed result: {e}")
