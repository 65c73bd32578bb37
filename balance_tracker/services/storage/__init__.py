"""
Storage Services Package

Provides the abstract ledger storage interface and its implementations:
in-memory, JSON file, SQLite (SQLAlchemy) and Google Sheets.
The backend in use is chosen by configuration via create_storage().
"""

from balance_tracker.services.storage.interface import (
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)
from balance_tracker.services.storage.json_file import JsonFileLedgerStorage
from balance_tracker.services.storage.memory import MemoryLedgerStorage
from balance_tracker.services.storage.sqlite import SqliteLedgerStorage
from balance_tracker.services.storage.factory import create_storage

__all__ = [
    # Interface
    "LedgerStorageInterface",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "JsonFileLedgerStorage",
    "MemoryLedgerStorage",
    "SqliteLedgerStorage",
    # Selection
    "create_storage",
]
