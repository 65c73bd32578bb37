"""Configuration package."""

from balance_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    StorageBackendName,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "StorageBackendName",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
