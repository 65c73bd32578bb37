"""
Configuration Management for the Balance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The storage backend is chosen here at startup; nothing else in the
package decides which backend to talk to.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


StorageBackendName = Literal["memory", "json", "sqlite", "google_sheets"]


class StorageSettings(BaseSettings):
    """Which persistence backend to use, and where it keeps its data."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: StorageBackendName = Field(
        default="sqlite",
        description="Persistence backend: memory, json, sqlite or google_sheets"
    )
    json_path: str = Field(
        default="ledger.json",
        description="Data file for the json backend"
    )
    sqlite_url: str = Field(
        default="sqlite:///ledger.db",
        description="SQLAlchemy URL for the sqlite backend"
    )
    sqlite_echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )

    @field_validator("backend", mode="before")
    @classmethod
    def normalize_backend(cls, v):
        """Accept 'Google-Sheets', ' SQLITE ' and similar spellings."""
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v


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

    # Sheet names within the spreadsheet
    accounts_sheet_name: str = Field(default="Accounts")
    snapshots_sheet_name: str = Field(default="Snapshots")
    notes_sheet_name: str = Field(default="Notes")

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

    # Query defaults
    recent_periods: int = Field(
        default=12,
        ge=1,
        le=520,
        description="How many periods get_recent_periods returns by default"
    )
    history_limit: int = Field(
        default=10,
        ge=1,
        le=520,
        description="How many snapshots an account history returns by default"
    )
    unknown_account_name: str = Field(
        default="Unknown account",
        description="Label for snapshots whose account no longer exists"
    )


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

    # Note: These are loaded lazily to allow partial configuration
    # (Google Sheets credentials are only needed by that backend)

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries describing failures.
    Google Sheets is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    try:
        backend = settings.storage.backend
        results["storage"] = True
    except Exception as e:
        backend = None
        results["storage"] = False
        results["storage_error"] = str(e)

    if backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
