"""
JSON File Storage Implementation

The whole ledger is one JSON document on disk:

    {"accounts": [...], "snapshots": [...], "notes": [...]}

Each record uses the camelCase storage field names. This is the portable,
human-readable backend: easy to back up, diff, or hand-edit.

TRADEOFFS:
- Every write rewrites the whole file (fine for a personal ledger)
- Writes go to a temp file first and are renamed into place, so a failed
  write never leaves a half-written ledger behind
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from balance_tracker.models.ledger import Account, BalanceSnapshot, PeriodNote
from balance_tracker.services.storage.interface import (
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
    sort_accounts,
    sort_notes,
    sort_snapshots,
)

logger = structlog.get_logger(__name__)

COLLECTIONS = {
    "accounts": Account,
    "snapshots": BalanceSnapshot,
    "notes": PeriodNote,
}


class JsonFileLedgerStorage(LedgerStorageInterface):
    """
    JSON file implementation of ledger storage.

    The file is read once, lazily, and kept in memory; every mutation
    writes the full document back before the in-memory copy is updated.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._state: Optional[dict[str, dict]] = None

    async def connect(self) -> None:
        self._load()

    async def close(self) -> None:
        self._state = None

    def _load(self) -> dict[str, dict]:
        if self._state is not None:
            return self._state

        state: dict[str, dict] = {name: {} for name in COLLECTIONS}
        if self._path.exists():
            try:
                document = json.loads(self._path.read_text(encoding="utf-8") or "{}")
            except (OSError, ValueError) as e:
                raise StorageConnectionError(
                    f"Cannot read ledger file {self._path}: {e}"
                ) from e
            if not isinstance(document, dict):
                raise StorageConnectionError(
                    f"Ledger file {self._path} does not hold a JSON object"
                )

            for name, model in COLLECTIONS.items():
                for record in document.get(name, []):
                    try:
                        item = model.model_validate(record)
                    except ValidationError as e:
                        logger.warning(
                            "skipping_malformed_record",
                            collection=name,
                            record_id=record.get("id") if isinstance(record, dict) else None,
                            error=str(e),
                        )
                        continue
                    state[name][item.id] = item

        logger.info("ledger_file_opened", path=str(self._path))
        self._state = state
        return state

    def _commit(self, **collections: dict) -> None:
        """Write the document with the given collections replaced, then adopt it."""
        state = self._load()
        new_state = {**state, **collections}
        document = {
            name: [item.to_record() for item in items.values()]
            for name, items in new_state.items()
        }

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write ledger file {self._path}: {e}") from e

        self._state = new_state

    # Accounts

    async def list_accounts(self) -> list[Account]:
        return sort_accounts([a.model_copy() for a in self._load()["accounts"].values()])

    async def get_account(self, account_id: str) -> Optional[Account]:
        account = self._load()["accounts"].get(account_id)
        return account.model_copy() if account else None

    async def put_account(self, account: Account) -> Account:
        accounts = dict(self._load()["accounts"])
        accounts[account.id] = account.model_copy()
        self._commit(accounts=accounts)
        return account

    async def delete_account(self, account_id: str) -> bool:
        state = self._load()
        if account_id not in state["accounts"]:
            return False

        accounts = {k: v for k, v in state["accounts"].items() if k != account_id}
        snapshots = {
            k: v for k, v in state["snapshots"].items() if v.account_id != account_id
        }
        self._commit(accounts=accounts, snapshots=snapshots)
        return True

    # Snapshots

    async def list_snapshots(
        self,
        account_id: Optional[str] = None,
        record_date: Optional[str] = None,
    ) -> list[BalanceSnapshot]:
        return sort_snapshots([
            s.model_copy()
            for s in self._load()["snapshots"].values()
            if (account_id is None or s.account_id == account_id)
            and (record_date is None or s.record_date == record_date)
        ])

    async def put_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        snapshots = dict(self._load()["snapshots"])
        snapshots[snapshot.id] = snapshot.model_copy()
        self._commit(snapshots=snapshots)
        return snapshot

    async def delete_snapshot(self, snapshot_id: str) -> bool:
        snapshots = dict(self._load()["snapshots"])
        if snapshots.pop(snapshot_id, None) is None:
            return False
        self._commit(snapshots=snapshots)
        return True

    async def delete_snapshots_by_account(self, account_id: str) -> int:
        current = self._load()["snapshots"]
        remaining = {k: v for k, v in current.items() if v.account_id != account_id}
        removed = len(current) - len(remaining)
        if removed:
            self._commit(snapshots=remaining)
        return removed

    # Notes

    async def list_notes(self, record_date: Optional[str] = None) -> list[PeriodNote]:
        return sort_notes([
            n.model_copy()
            for n in self._load()["notes"].values()
            if record_date is None or n.record_date == record_date
        ])

    async def put_note(self, note: PeriodNote) -> PeriodNote:
        notes = dict(self._load()["notes"])
        notes[note.id] = note.model_copy()
        self._commit(notes=notes)
        return note
