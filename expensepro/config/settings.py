"""
Configuration Management for ExpensePro

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The vehicle defaults only seed the fuel state the first time the engine
runs against an empty store. After that the persisted vehicle settings
are the source of truth.
"""

import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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

    # One worksheet per record collection
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Worksheet holding ledger transactions"
    )
    loans_sheet_name: str = Field(
        default="Loans",
        description="Worksheet holding loans"
    )
    delivery_sheet_name: str = Field(
        default="Delivery",
        description="Worksheet holding delivery sessions"
    )
    settings_sheet_name: str = Field(
        default="Settings",
        description="Worksheet holding the single vehicle settings row"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class EngineSettings(BaseSettings):
    """
    Reconciliation engine settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXPENSEPRO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Which persistent store backs the engine"
    )

    # Alert thresholds
    low_fuel_ratio: float = Field(
        default=0.15,
        gt=0.0,
        lt=1.0,
        description="Fraction of tank capacity below which fuel is low"
    )

    # Vehicle defaults (seed values for an empty store)
    default_capacity: float = Field(
        default=5.5,
        gt=0,
        description="Tank size in litres"
    )
    default_consumption_rate: float = Field(
        default=55.0,
        gt=0,
        description="Distance driven per litre of fuel"
    )
    default_fuel_unit_cost: float = Field(
        default=101.42,
        ge=0,
        description="Price of one litre of fuel"
    )
    default_currency: str = Field(
        default="₹",
        description="Currency symbol used for display only"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are loaded lazily so a missing Google Sheets
    configuration does not break an in-memory setup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an
    ``<name>_error`` entry for every group that failed to load.
    """
    results = {}
    settings = get_settings()

    for name in ("engine", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
