"""
Configuration Management for TripShare

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per table
    trips_sheet_name: str = Field(
        default="Trips",
        description="Name of the sheet for trips"
    )
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expenses"
    )
    itinerary_sheet_name: str = Field(
        default="Itinerary",
        description="Name of the sheet for itinerary items"
    )
    memories_sheet_name: str = Field(
        default="Memories",
        description="Name of the sheet for trip memories"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class WeatherSettings(BaseSettings):
    """Open-Meteo weather and geocoding configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_",
        extra="ignore"
    )

    forecast_url: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        description="Forecast endpoint"
    )
    archive_url: str = Field(
        default="https://archive-api.open-meteo.com/v1/archive",
        description="Historical archive endpoint"
    )
    geocoding_url: str = Field(
        default="https://geocoding-api.open-meteo.com/v1/search",
        description="Geocoding search endpoint"
    )
    forecast_horizon_days: int = Field(
        default=14,
        ge=1,
        le=16,
        description="Days ahead for which the forecast is trusted"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Timeout for each outbound weather call"
    )
    weather_cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        description="How long aggregated weather stays cached"
    )
    geocoding_language: str = Field(
        default="zh",
        description="Language hint sent on the first geocoding attempt"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Money
    default_currency: str = Field(
        default="TWD",
        description="Currency preselected on new expenses and assumed for legacy rows"
    )
    default_conversion_rate: float = Field(
        default=0.21,
        gt=0,
        description="Initial rate shown in the quick currency converter"
    )
    large_expense_threshold: float = Field(
        default=1000000.0,
        description="Amounts above this are flagged for a second look"
    )

    # Companions
    forbidden_companion_names: str = Field(
        default="me,myself,自分,我",
        description="Placeholder names that cannot be used as a companion"
    )

    @property
    def forbidden_companion_names_list(self) -> list[str]:
        """Get forbidden companion names as a list (casefolded)."""
        return [n.strip().casefold() for n in self.forbidden_companion_names.split(",") if n.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def weather(self) -> WeatherSettings:
        return WeatherSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "weather", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
