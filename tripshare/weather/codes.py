"""
WMO Weather Codes

Open-Meteo reports weather as WMO interpretation codes. The UI shows an
icon, a short label and, for translated builds, an i18n key.
"""

from typing import Optional


# Codes that share a description collapse onto the first code of their group
_DESCRIPTION_GROUPS: dict[int, int] = {
    0: 0,
    1: 1,
    2: 2,
    3: 3,
    45: 45, 48: 45,
    51: 51, 53: 51, 55: 51,
    61: 61, 63: 61, 65: 61,
    71: 71, 73: 71, 75: 71,
    80: 80, 81: 80, 82: 80,
    95: 95, 96: 95, 99: 95,
}

WEATHER_LABELS: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    51: "Drizzle",
    61: "Rain",
    71: "Snow",
    80: "Rain showers",
    95: "Thunderstorm",
}

ICON_EMOJI: dict[str, str] = {
    "sun": "☀️",
    "cloud": "☁️",
    "rain": "🌧️",
    "snow": "❄️",
    "storm": "⛈️",
}


def _group(code: Optional[int]) -> Optional[int]:
    return _DESCRIPTION_GROUPS.get(code) if code is not None else None


def describe_weather_code(code: Optional[int]) -> str:
    """i18n key for a code, e.g. weather.codes.61; unknown codes map to weather.codes.unknown."""
    group = _group(code)
    return f"weather.codes.{group if group is not None else 'unknown'}"


def weather_label(code: Optional[int]) -> str:
    """English label for a code."""
    group = _group(code)
    return WEATHER_LABELS.get(group, "Unknown") if group is not None else "Unknown"


def weather_icon(code: Optional[int]) -> str:
    """Icon name: sun, cloud, rain, snow or storm. Anything unrecognised is a cloud."""
    if code is None:
        return "cloud"
    if code in (0, 1):
        return "sun"
    if 51 <= code <= 67 or 80 <= code <= 82:
        return "rain"
    if 71 <= code <= 77:
        return "snow"
    if 95 <= code <= 99:
        return "storm"
    return "cloud"
