"""
In-Memory Storage Implementation

Plain dicts keyed by id. No external dependencies; the ledger lives only as
long as the process. Used by the test suite and for throwaway sessions.

Records are copied on the way in and on the way out, so callers can never
mutate stored state by holding on to a returned model.
"""

from typing import Optional

from balance_tracker.models.ledger import Account, BalanceSnapshot, PeriodNote
from balance_tracker.services.storage.interface import (
    LedgerStorageInterface,
    sort_accounts,
    sort_notes,
    sort_snapshots,
)


class MemoryLedgerStorage(LedgerStorageInterface):
    """In-memory implementation of ledger storage."""

    def __init__(self):
        self._accounts: dict[str, Account] = {}
        self._snapshots: dict[str, BalanceSnapshot] = {}
        self._notes: dict[str, PeriodNote] = {}

    async def list_accounts(self) -> list[Account]:
        return sort_accounts([a.model_copy() for a in self._accounts.values()])

    async def get_account(self, account_id: str) -> Optional[Account]:
        account = self._accounts.get(account_id)
        return account.model_copy() if account else None

    async def put_account(self, account: Account) -> Account:
        self._accounts[account.id] = account.model_copy()
        return account

    async def delete_account(self, account_id: str) -> bool:
        if account_id not in self._accounts:
            return False
        await self.delete_snapshots_by_account(account_id)
        del self._accounts[account_id]
        return True

    async def list_snapshots(
        self,
        account_id: Optional[str] = None,
        record_date: Optional[str] = None,
    ) -> list[BalanceSnapshot]:
        matches = [
            s.model_copy()
            for s in self._snapshots.values()
            if (account_id is None or s.account_id == account_id)
            and (record_date is None or s.record_date == record_date)
        ]
        return sort_snapshots(matches)

    async def put_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        self._snapshots[snapshot.id] = snapshot.model_copy()
        return snapshot

    async def delete_snapshot(self, snapshot_id: str) -> bool:
        return self._snapshots.pop(snapshot_id, None) is not None

    async def delete_snapshots_by_account(self, account_id: str) -> int:
        doomed = [
            sid for sid, s in self._snapshots.items() if s.account_id == account_id
        ]
        for sid in doomed:
            del self._snapshots[sid]
        return len(doomed)

    async def list_notes(self, record_date: Optional[str] = None) -> list[PeriodNote]:
        matches = [
            n.model_copy()
            for n in self._notes.values()
            if record_date is None or n.record_date == record_date
        ]
        return sort_notes(matches)

    async def put_note(self, note: PeriodNote) -> PeriodNote:
        self._notes[note.id] = note.model_copy()
        return note
