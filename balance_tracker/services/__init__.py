"""Services package."""

from balance_tracker.services.storage import (
    JsonFileLedgerStorage,
    LedgerStorageInterface,
    MemoryLedgerStorage,
    SqliteLedgerStorage,
    StorageConnectionError,
    StorageError,
    create_storage,
)

__all__ = [
    # Storage services
    "JsonFileLedgerStorage",
    "LedgerStorageInterface",
    "MemoryLedgerStorage",
    "SqliteLedgerStorage",
    "StorageConnectionError",
    "StorageError",
    "create_storage",
]
