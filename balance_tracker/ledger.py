"""
Ledger Service

This module is the single public surface of the balance tracker.
UI and CLI layers call LedgerService; nothing else writes to storage.

DESIGN DECISION: The service enforces the ledger's rules above any backend:
- Ids and timestamps are assigned here, never by callers or backends
- Balances and notes are upserted by natural key, so saving the same
  (account, period) twice updates one record instead of creating two
- Deleting an account deletes its snapshots
- Every mutation is audited; storage failures are audited and re-raised

Unknown ids are not errors: updates return None and deletes return False.
"""

from collections.abc import Callable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional, TypeVar, Union

import structlog

from balance_tracker.aggregation import AggregationEngine
from balance_tracker.audit import AuditLogger
from balance_tracker.config import AppSettings, Settings, get_settings
from balance_tracker.models.ledger import (
    Account,
    AccountCreate,
    AccountTrend,
    AccountType,
    AccountUpdate,
    BalanceSnapshot,
    LedgerModel,
    NoteCreate,
    PeriodNote,
    PeriodSummary,
    SnapshotCreate,
    new_id,
    utc_now,
)
from balance_tracker.periods import DateLike, current_period_key, to_period_key
from balance_tracker.services.storage import (
    LedgerStorageInterface,
    StorageError,
    create_storage,
)

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=LedgerModel)
PeriodInput = Union[str, DateLike]

SAMPLE_ACCOUNTS = [
    (AccountCreate(name="Main bank card", type=AccountType.BANK, description="Salary card"), 5000.0),
    (AccountCreate(name="Payment app", type=AccountType.PAY, description="Daily spending"), 1200.0),
    (AccountCreate(name="Digital wallet", type=AccountType.PAY, description="Pocket money"), 800.0),
    (AccountCreate(name="Cash", type=AccountType.CASH, description="Emergency cash"), 300.0),
]


def _coerce(model: type[ModelT], data: Union[ModelT, Mapping[str, Any]]) -> ModelT:
    """Accept either a payload model or a plain mapping (snake_case or camelCase)."""
    if isinstance(data, model):
        return data
    return model.model_validate(data)


class LedgerService:
    """
    Storage facade for accounts, balances and notes.

    The storage handle is owned explicitly: pass one in, or build the
    configured one with create_ledger_service(). Use as an async context
    manager to connect on entry and release the backend on exit.

    Callers are expected to await operations one at a time; upserts read
    then write and assume no other writer in between.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        engine: Optional[AggregationEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = app_settings or get_settings().app
        self._storage = storage
        self._engine = engine or AggregationEngine(
            storage,
            unknown_account_name=self._settings.unknown_account_name,
        )
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or utc_now

    @property
    def storage(self) -> LedgerStorageInterface:
        return self._storage

    async def connect(self) -> None:
        await self._storage.connect()

    async def close(self) -> None:
        await self._storage.close()

    async def __aenter__(self) -> "LedgerService":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @asynccontextmanager
    async def _storage_call(self, operation: str):
        """Audit backend failures, then let them propagate unchanged."""
        try:
            yield
        except StorageError as e:
            await self._audit.log_storage_error(operation, e)
            raise

    # =========================================================================
    # Accounts
    # =========================================================================

    async def list_accounts(self) -> list[Account]:
        async with self._storage_call("list_accounts"):
            return await self._storage.list_accounts()

    async def get_account(self, account_id: str) -> Optional[Account]:
        async with self._storage_call("get_account"):
            return await self._storage.get_account(account_id)

    async def save_account(self, data: Union[AccountCreate, Mapping[str, Any]]) -> Account:
        """Create a new account. Accounts are never merged by name."""
        payload = _coerce(AccountCreate, data)
        account = Account(
            id=new_id(),
            name=payload.name,
            type=payload.type,
            description=payload.description,
            created_at=self._clock(),
        )

        async with self._storage_call("save_account"):
            await self._storage.put_account(account)

        await self._audit.log_account_created(account.id, account.name, account.type.value)
        return account

    async def update_account(
        self,
        account_id: str,
        patch: Union[AccountUpdate, Mapping[str, Any]],
    ) -> Optional[Account]:
        """
        Merge a partial update into an existing account.

        Returns:
            The updated account, or None if account_id is unknown
        """
        changes = _coerce(AccountUpdate, patch).model_dump(exclude_unset=True)

        async with self._storage_call("update_account"):
            existing = await self._storage.get_account(account_id)
            if existing is None:
                return None

            updated = Account.model_validate({**existing.model_dump(), **changes})
            await self._storage.put_account(updated)

        await self._audit.log_account_updated(account_id, sorted(changes))
        return updated

    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account together with all of its snapshots.

        Returns:
            True if the account existed and was removed
        """
        async with self._storage_call("delete_account"):
            if await self._storage.get_account(account_id) is None:
                return False
            removed = await self._storage.delete_snapshots_by_account(account_id)
            deleted = await self._storage.delete_account(account_id)

        if deleted:
            await self._audit.log_account_deleted(account_id, removed)
        return deleted

    # =========================================================================
    # Balance snapshots
    # =========================================================================

    async def list_balance_snapshots(self) -> list[BalanceSnapshot]:
        """Every stored snapshot, newest period first."""
        async with self._storage_call("list_balance_snapshots"):
            return await self._storage.list_snapshots()

    async def save_balance_snapshot(
        self,
        data: Union[SnapshotCreate, Mapping[str, Any]],
    ) -> BalanceSnapshot:
        """
        Record an account's balance for a period (upsert).

        If a snapshot already exists for (account_id, record_date) its id and
        created_at are kept and only balance and updated_at change.
        """
        payload = _coerce(SnapshotCreate, data)
        now = self._clock()

        async with self._storage_call("save_balance_snapshot"):
            matches = await self._storage.list_snapshots(
                account_id=payload.account_id,
                record_date=payload.record_date,
            )
            if len(matches) > 1:
                logger.warning(
                    "duplicate_snapshots_for_key",
                    account_id=payload.account_id,
                    record_date=payload.record_date,
                    count=len(matches),
                )

            existing = matches[0] if matches else None
            if existing is not None:
                snapshot = existing.model_copy(
                    update={"balance": payload.balance, "updated_at": now}
                )
            else:
                snapshot = BalanceSnapshot(
                    id=new_id(),
                    account_id=payload.account_id,
                    record_date=payload.record_date,
                    balance=payload.balance,
                    created_at=now,
                    updated_at=now,
                )
            await self._storage.put_snapshot(snapshot)

        await self._audit.log_snapshot_saved(
            snapshot_id=snapshot.id,
            account_id=snapshot.account_id,
            record_date=snapshot.record_date,
            balance=snapshot.balance,
            created=existing is None,
        )
        return snapshot

    async def delete_balance_snapshot(self, snapshot_id: str) -> bool:
        async with self._storage_call("delete_balance_snapshot"):
            deleted = await self._storage.delete_snapshot(snapshot_id)

        if deleted:
            await self._audit.log_snapshot_deleted(snapshot_id)
        return deleted

    async def delete_snapshots_by_account(self, account_id: str) -> int:
        """Remove every snapshot of one account; returns how many went."""
        async with self._storage_call("delete_snapshots_by_account"):
            removed = await self._storage.delete_snapshots_by_account(account_id)

        await self._audit.log_snapshots_purged(account_id, removed)
        return removed

    async def get_account_balance_history(
        self,
        account_id: str,
        limit: Optional[int] = None,
    ) -> list[BalanceSnapshot]:
        """An account's snapshots, newest period first, at most `limit` of them."""
        limit = self._settings.history_limit if limit is None else limit
        async with self._storage_call("get_account_balance_history"):
            history = await self._storage.list_snapshots(account_id=account_id)
        return history[:max(limit, 0)]

    # =========================================================================
    # Notes
    # =========================================================================

    async def list_notes(self) -> list[PeriodNote]:
        async with self._storage_call("list_notes"):
            return await self._storage.list_notes()

    async def get_note(self, record_date: PeriodInput) -> Optional[PeriodNote]:
        async with self._storage_call("get_note"):
            notes = await self._storage.list_notes(record_date=to_period_key(record_date))
        return notes[0] if notes else None

    async def save_note(self, data: Union[NoteCreate, Mapping[str, Any]]) -> PeriodNote:
        """
        Record the notes of a period (upsert by record_date).

        Both note fields are replaced by the values given; an omitted field
        is cleared.
        """
        payload = _coerce(NoteCreate, data)
        now = self._clock()

        async with self._storage_call("save_note"):
            matches = await self._storage.list_notes(record_date=payload.record_date)
            existing = matches[0] if matches else None
            note = PeriodNote(
                id=existing.id if existing else new_id(),
                record_date=payload.record_date,
                income_note=payload.income_note,
                expense_note=payload.expense_note,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            await self._storage.put_note(note)

        await self._audit.log_note_saved(note.id, note.record_date, created=existing is None)
        return note

    # =========================================================================
    # Summaries and trends
    # =========================================================================

    async def get_weekly_summary(self, record_date: PeriodInput) -> Optional[PeriodSummary]:
        """Summary of one period, or None if nothing was recorded for it."""
        async with self._storage_call("get_weekly_summary"):
            return await self._engine.summarize_period(to_period_key(record_date))

    async def get_all_weekly_summaries(self) -> list[PeriodSummary]:
        async with self._storage_call("get_all_weekly_summaries"):
            return await self._engine.summarize_all_periods()

    async def get_recent_periods(self, count: Optional[int] = None) -> list[PeriodSummary]:
        """The `count` most recent period summaries (default from settings: 12)."""
        count = self._settings.recent_periods if count is None else count
        summaries = await self.get_all_weekly_summaries()
        return summaries[:max(count, 0)]

    async def get_account_trend(
        self,
        account_id: str,
        reference_date: PeriodInput,
    ) -> Optional[AccountTrend]:
        async with self._storage_call("get_account_trend"):
            return await self._engine.account_trend(account_id, to_period_key(reference_date))

    async def get_all_account_trends(
        self,
        reference_date: Optional[PeriodInput] = None,
    ) -> list[AccountTrend]:
        """
        Trends of every account with at least one snapshot.

        reference_date defaults to the current period.
        """
        key = current_period_key() if reference_date is None else to_period_key(reference_date)
        async with self._storage_call("get_all_account_trends"):
            return await self._engine.all_account_trends(key)

    # =========================================================================
    # Bootstrap
    # =========================================================================

    async def initialize_sample_data(self) -> bool:
        """
        Seed an empty ledger with sample accounts and this period's balances.

        Returns:
            True if sample data was created, False if accounts already existed
        """
        if await self.list_accounts():
            return False

        record_date = current_period_key()
        for payload, balance in SAMPLE_ACCOUNTS:
            account = await self.save_account(payload)
            await self.save_balance_snapshot(
                SnapshotCreate(account_id=account.id, record_date=record_date, balance=balance)
            )

        await self._audit.log_sample_data_initialized(len(SAMPLE_ACCOUNTS), record_date)
        return True


def create_ledger_service(settings: Optional[Settings] = None) -> LedgerService:
    """
    Factory function to build a LedgerService from configuration.

    The storage backend is chosen by LEDGER_STORAGE_BACKEND.
    """
    settings = settings or get_settings()
    return LedgerService(
        storage=create_storage(settings),
        app_settings=settings.app,
    )
