"""
Storage Backend Selection

The backend is picked once, at startup, from configuration. Everything
above this module only ever sees a LedgerStorageInterface.
"""

from typing import Optional

from balance_tracker.config import Settings, get_settings
from balance_tracker.services.storage.interface import LedgerStorageInterface
from balance_tracker.services.storage.json_file import JsonFileLedgerStorage
from balance_tracker.services.storage.memory import MemoryLedgerStorage
from balance_tracker.services.storage.sqlite import SqliteLedgerStorage


def create_storage(settings: Optional[Settings] = None) -> LedgerStorageInterface:
    """
    Build the storage backend named by LEDGER_STORAGE_BACKEND.

    Raises:
        ValueError: If the backend name is not recognised
    """
    settings = settings or get_settings()
    storage_settings = settings.storage
    backend = storage_settings.backend

    if backend == "memory":
        return MemoryLedgerStorage()
    if backend == "json":
        return JsonFileLedgerStorage(storage_settings.json_path)
    if backend == "sqlite":
        return SqliteLedgerStorage(
            storage_settings.sqlite_url,
            echo=storage_settings.sqlite_echo,
        )
    if backend == "google_sheets":
        # Imported here so gspread/google-auth are only loaded when used
        from balance_tracker.services.storage.google_sheets import (
            GoogleSheetsClient,
            GoogleSheetsLedgerStorage,
        )
        return GoogleSheetsLedgerStorage(GoogleSheetsClient(settings.google_sheets))

    raise ValueError(f"Unknown storage backend: {backend!r}")
