"""
Storage contract tests.

Every test taking `any_storage` runs once per backend: memory, JSON file,
SQLite and (faked) Google Sheets.
"""

import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from balance_tracker.models.ledger import Account, AccountType, BalanceSnapshot, PeriodNote
from balance_tracker.services.storage import (
    JsonFileLedgerStorage,
    SqliteLedgerStorage,
    StorageConnectionError,
    StorageError,
)

from conftest import FakeSheetsClient

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_account(account_id: str, minutes: int = 0, name: str = "Card") -> Account:
    return Account(
        id=account_id,
        name=name,
        type=AccountType.BANK,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def make_snapshot(snapshot_id: str, account_id: str, record_date: str, balance: float) -> BalanceSnapshot:
    return BalanceSnapshot(
        id=snapshot_id,
        account_id=account_id,
        record_date=record_date,
        balance=balance,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )


@pytest.mark.asyncio
class TestStorageContract:
    """Behaviour every backend must share."""

    async def test_empty_store(self, any_storage):
        assert await any_storage.list_accounts() == []
        assert await any_storage.list_snapshots() == []
        assert await any_storage.list_notes() == []
        assert await any_storage.get_account("missing") is None

    async def test_put_and_get_account(self, any_storage):
        account = make_account("a1")
        await any_storage.put_account(account)

        loaded = await any_storage.get_account("a1")
        assert loaded.model_dump() == account.model_dump()

    async def test_put_replaces_by_id(self, any_storage):
        await any_storage.put_account(make_account("a1", name="Old"))
        await any_storage.put_account(make_account("a1", name="New"))

        accounts = await any_storage.list_accounts()
        assert len(accounts) == 1
        assert accounts[0].name == "New"

    async def test_accounts_newest_first(self, any_storage):
        await any_storage.put_account(make_account("old", minutes=0))
        await any_storage.put_account(make_account("new", minutes=5))

        assert [a.id for a in await any_storage.list_accounts()] == ["new", "old"]

    async def test_snapshots_sorted_and_filtered(self, any_storage):
        await any_storage.put_account(make_account("a1"))
        await any_storage.put_account(make_account("a2"))
        await any_storage.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 100))
        await any_storage.put_snapshot(make_snapshot("s2", "a1", "2024-01-20", 120))
        await any_storage.put_snapshot(make_snapshot("s3", "a2", "2024-01-13", 50))

        everything = await any_storage.list_snapshots()
        assert [s.record_date for s in everything] == ["2024-01-20", "2024-01-13", "2024-01-06"]

        only_a1 = await any_storage.list_snapshots(account_id="a1")
        assert [s.id for s in only_a1] == ["s2", "s1"]

        one_period = await any_storage.list_snapshots(record_date="2024-01-13")
        assert [s.id for s in one_period] == ["s3"]

        both = await any_storage.list_snapshots(account_id="a1", record_date="2024-01-06")
        assert [s.balance for s in both] == [100]

    async def test_snapshot_values_round_trip(self, any_storage):
        snapshot = make_snapshot("s1", "a1", "2024-01-06", -42.75)
        await any_storage.put_snapshot(snapshot)

        [loaded] = await any_storage.list_snapshots()
        assert loaded.model_dump() == snapshot.model_dump()

    async def test_delete_snapshot(self, any_storage):
        await any_storage.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 1))

        assert await any_storage.delete_snapshot("s1") is True
        assert await any_storage.delete_snapshot("s1") is False
        assert await any_storage.list_snapshots() == []

    async def test_delete_snapshots_by_account(self, any_storage):
        await any_storage.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 1))
        await any_storage.put_snapshot(make_snapshot("s2", "a1", "2024-01-13", 2))
        await any_storage.put_snapshot(make_snapshot("s3", "a2", "2024-01-13", 3))

        assert await any_storage.delete_snapshots_by_account("a1") == 2
        assert await any_storage.delete_snapshots_by_account("a1") == 0
        assert [s.id for s in await any_storage.list_snapshots()] == ["s3"]

    async def test_delete_account_cascades(self, any_storage):
        await any_storage.put_account(make_account("a1"))
        await any_storage.put_account(make_account("a2"))
        await any_storage.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 1))
        await any_storage.put_snapshot(make_snapshot("s2", "a2", "2024-01-06", 2))

        assert await any_storage.delete_account("a1") is True
        assert await any_storage.get_account("a1") is None
        assert [s.account_id for s in await any_storage.list_snapshots()] == ["a2"]

    async def test_delete_unknown_account(self, any_storage):
        assert await any_storage.delete_account("missing") is False

    async def test_notes(self, any_storage):
        note = PeriodNote(
            id="n1",
            record_date="2024-01-06",
            income_note="salary",
            created_at=BASE_TIME,
            updated_at=BASE_TIME,
        )
        await any_storage.put_note(note)
        await any_storage.put_note(PeriodNote(
            id="n2",
            record_date="2024-01-13",
            expense_note="rent",
            created_at=BASE_TIME,
            updated_at=BASE_TIME,
        ))

        assert [n.id for n in await any_storage.list_notes()] == ["n2", "n1"]
        [loaded] = await any_storage.list_notes(record_date="2024-01-06")
        assert loaded.model_dump() == note.model_dump()
        assert loaded.expense_note is None

    async def test_returned_models_are_detached(self, any_storage):
        """Mutating a returned model must not change what is stored."""
        await any_storage.put_account(make_account("a1", name="Card"))

        loaded = await any_storage.get_account("a1")
        loaded.name = "Changed"

        assert (await any_storage.get_account("a1")).name == "Card"

    async def test_connect_and_close(self, any_storage):
        await any_storage.connect()
        await any_storage.put_account(make_account("a1"))
        await any_storage.close()
        await any_storage.close()


@pytest.mark.asyncio
class TestJsonFileStorage:
    """JSON file backend specifics."""

    async def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "ledger.json"
        first = JsonFileLedgerStorage(path)
        await first.put_account(make_account("a1"))
        await first.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 10))

        second = JsonFileLedgerStorage(path)
        assert (await second.get_account("a1")).name == "Card"
        assert [s.balance for s in await second.list_snapshots()] == [10]

    async def test_file_uses_storage_field_names(self, tmp_path):
        path = tmp_path / "ledger.json"
        storage = JsonFileLedgerStorage(path)
        await storage.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 10))

        document = json.loads(path.read_text(encoding="utf-8"))
        assert set(document) == {"accounts", "snapshots", "notes"}
        assert document["snapshots"][0]["accountId"] == "a1"
        assert document["snapshots"][0]["recordDate"] == "2024-01-06"

    async def test_no_temp_files_left_behind(self, tmp_path):
        storage = JsonFileLedgerStorage(tmp_path / "ledger.json")
        await storage.put_account(make_account("a1"))
        await storage.put_account(make_account("a2"))

        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]

    async def test_malformed_records_are_skipped(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({
            "accounts": [
                {"id": "a1", "name": "Card", "type": "bank", "createdAt": "2024-01-01T00:00:00+00:00"},
                {"id": "bad", "name": "", "type": "spaceship"},
            ],
        }), encoding="utf-8")

        storage = JsonFileLedgerStorage(path)
        assert [a.id for a in await storage.list_accounts()] == ["a1"]

    async def test_timestamps_without_offset_sort_with_aware_ones(self, tmp_path):
        """A hand-edited createdAt without an offset is read as UTC."""
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({
            "snapshots": [
                {"id": "aware", "accountId": "a1", "recordDate": "2024-01-06", "balance": 10,
                 "createdAt": "2024-01-06T12:00:00+00:00", "updatedAt": "2024-01-06T12:00:00+00:00"},
                {"id": "naive", "accountId": "a2", "recordDate": "2024-01-06", "balance": 5,
                 "createdAt": "2024-01-06T00:00:00", "updatedAt": "2024-01-06T00:00:00"},
            ],
        }), encoding="utf-8")

        snapshots = await JsonFileLedgerStorage(path).list_snapshots(record_date="2024-01-06")

        assert [s.id for s in snapshots] == ["aware", "naive"]
        assert all(s.created_at.tzinfo is not None for s in snapshots)

    async def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageConnectionError):
            await JsonFileLedgerStorage(path).list_accounts()

    async def test_non_object_document_raises(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(StorageConnectionError):
            await JsonFileLedgerStorage(path).connect()

    async def test_failed_write_keeps_previous_state(self, tmp_path, monkeypatch):
        storage = JsonFileLedgerStorage(tmp_path / "ledger.json")
        await storage.put_account(make_account("a1"))

        def refuse(*args, **kwargs):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", refuse)

        with pytest.raises(StorageError):
            await storage.put_account(make_account("a2"))

        assert [a.id for a in await storage.list_accounts()] == ["a1"]
        assert [a.id for a in await JsonFileLedgerStorage(tmp_path / "ledger.json").list_accounts()] == ["a1"]


@pytest.mark.asyncio
class TestSqliteStorage:
    """SQLite backend specifics."""

    async def test_data_survives_reopen(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'ledger.db'}"
        first = SqliteLedgerStorage(url)
        await first.put_account(make_account("a1"))
        await first.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 10))
        await first.close()

        second = SqliteLedgerStorage(url)
        assert (await second.get_account("a1")).name == "Card"
        assert [s.balance for s in await second.list_snapshots()] == [10]
        await second.close()

    async def test_snapshot_for_unknown_account_is_stored(self, tmp_path):
        """Foreign keys are declared but not enforced on insert."""
        storage = SqliteLedgerStorage(f"sqlite:///{tmp_path / 'ledger.db'}")
        await storage.put_snapshot(make_snapshot("s1", "ghost", "2024-01-06", 5))

        assert [s.account_id for s in await storage.list_snapshots()] == ["ghost"]
        await storage.close()

    async def test_unopenable_database_raises(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'missing-dir' / 'ledger.db'}"

        with pytest.raises(StorageConnectionError):
            await SqliteLedgerStorage(url).connect()


@pytest.mark.asyncio
class TestGoogleSheetsStorage:
    """Google Sheets backend specifics, against a fake spreadsheet."""

    async def test_rows_follow_header_columns(self):
        from balance_tracker.services.storage.google_sheets import GoogleSheetsLedgerStorage

        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        await storage.put_snapshot(make_snapshot("s1", "a1", "2024-01-06", 10))

        header, row = client.snapshots.rows
        assert header[:3] == ["id", "accountId", "recordDate"]
        assert row[:4] == ["s1", "a1", "2024-01-06", "10.0"]

    async def test_update_rewrites_row_in_place(self):
        from balance_tracker.services.storage.google_sheets import GoogleSheetsLedgerStorage

        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client)
        await storage.put_account(make_account("a1", name="Old"))
        await storage.put_account(make_account("a2"))
        await storage.put_account(make_account("a1", name="New"))

        assert len(client.accounts.rows) == 3
        assert client.accounts.rows[1][1] == "New"

    async def test_malformed_rows_are_skipped(self):
        from balance_tracker.services.storage.google_sheets import GoogleSheetsLedgerStorage

        client = FakeSheetsClient()
        client.accounts.rows.append(["bad", "", "spaceship", "", ""])
        client.accounts.rows.append([])
        storage = GoogleSheetsLedgerStorage(client)
        await storage.put_account(make_account("a1"))

        assert [a.id for a in await storage.list_accounts()] == ["a1"]

    async def test_api_failure_becomes_storage_error(self):
        from balance_tracker.services.storage.google_sheets import GoogleSheetsLedgerStorage

        client = FakeSheetsClient()

        def broken():
            raise RuntimeError("quota exceeded")

        client.get_accounts_sheet = broken
        storage = GoogleSheetsLedgerStorage(client)

        with pytest.raises(StorageError, match="quota exceeded"):
            await storage.list_accounts()

    async def test_close_releases_client(self):
        from balance_tracker.services.storage.google_sheets import GoogleSheetsLedgerStorage

        client = FakeSheetsClient()
        await GoogleSheetsLedgerStorage(client).close()
        assert client.closed is True
