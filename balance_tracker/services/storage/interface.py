"""
Abstract Storage Interface

DESIGN DECISION: We define one abstract interface for ledger persistence.
This allows us to:
1. Keep a single copy of the summary/trend logic above any backend
2. Use in-memory storage for testing
3. Move a ledger between SQLite, a JSON file and Google Sheets
4. Keep business logic decoupled from storage implementation

The interface is intentionally primitive: put (insert-or-replace by id),
delete, and filtered listing. Natural-key upserts, timestamps and id
generation belong to the ledger service, not to backends.

Every backend must guarantee:
- A failed single-record write leaves prior state unchanged
- Putting a record whose id already exists replaces it (never an error)
- Listings come back sorted by record date, newest first
"""

from abc import ABC, abstractmethod
from typing import Optional

from balance_tracker.models.ledger import Account, BalanceSnapshot, PeriodNote


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Any storage implementation (memory, JSON file, SQLite, Google Sheets)
    must implement these methods.
    """

    async def connect(self) -> None:
        """
        Acquire the backend resource (open file, engine, API client).

        Backends also connect lazily on first use, so calling this is
        optional. Default: nothing to acquire.
        """

    async def close(self) -> None:
        """Release the backend resource. Safe to call more than once."""

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """
        List all accounts.

        Returns:
            Accounts ordered by created_at, newest first
        """
        pass

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[Account]:
        """
        Retrieve an account by its ID.

        Returns:
            The account if found, None otherwise
        """
        pass

    @abstractmethod
    async def put_account(self, account: Account) -> Account:
        """
        Insert an account, or replace the stored one with the same id.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account and every snapshot that references it.

        Returns:
            True if an account was removed, False if the id was unknown
        """
        pass

    # -------------------------------------------------------------------------
    # Balance snapshots
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_snapshots(
        self,
        account_id: Optional[str] = None,
        record_date: Optional[str] = None,
    ) -> list[BalanceSnapshot]:
        """
        List snapshots with optional filters.

        Args:
            account_id: Only snapshots of this account
            record_date: Only snapshots of this period

        Returns:
            Matching snapshots sorted by record_date descending
            (ties broken by created_at descending)
        """
        pass

    @abstractmethod
    async def put_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        """
        Insert a snapshot, or replace the stored one with the same id.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_snapshot(self, snapshot_id: str) -> bool:
        """
        Delete a snapshot by ID.

        Returns:
            True if a snapshot was removed
        """
        pass

    @abstractmethod
    async def delete_snapshots_by_account(self, account_id: str) -> int:
        """
        Delete every snapshot of one account.

        Returns:
            Number of snapshots removed
        """
        pass

    # -------------------------------------------------------------------------
    # Period notes
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_notes(
        self,
        record_date: Optional[str] = None,
    ) -> list[PeriodNote]:
        """
        List notes, optionally only those of one period.

        Returns:
            Notes sorted by record_date descending
        """
        pass

    @abstractmethod
    async def put_note(self, note: PeriodNote) -> PeriodNote:
        """
        Insert a note, or replace the stored one with the same id.

        Raises:
            StorageError: If the write fails
        """
        pass


def sort_snapshots(snapshots: list[BalanceSnapshot]) -> list[BalanceSnapshot]:
    """Order snapshots the way every listing must: newest period first."""
    return sorted(
        snapshots,
        key=lambda s: (s.record_date, s.created_at),
        reverse=True,
    )


def sort_notes(notes: list[PeriodNote]) -> list[PeriodNote]:
    return sorted(notes, key=lambda n: (n.record_date, n.created_at), reverse=True)


def sort_accounts(accounts: list[Account]) -> list[Account]:
    return sorted(accounts, key=lambda a: a.created_at, reverse=True)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to or open the storage backend."""
    pass
