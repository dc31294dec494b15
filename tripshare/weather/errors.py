"""Weather error hierarchy."""

from typing import Optional


class WeatherError(Exception):
    """Base exception for weather lookups."""
    pass


class ConfigurationIncompleteError(WeatherError):
    """
    The trip is not set up enough to look up weather.

    Not a transient failure: the UI should send the user to trip setup.
    """

    def __init__(self, missing: str, message: Optional[str] = None):
        self.missing = missing
        super().__init__(message or f"Trip {missing} is not set")


class WeatherSourceError(WeatherError):
    """A weather or geocoding endpoint failed or returned garbage."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class LocationNotFoundError(WeatherError):
    """Geocoding returned no match for the destination."""

    def __init__(self, place: str):
        self.place = place
        super().__init__(f"Location not found: {place}")
