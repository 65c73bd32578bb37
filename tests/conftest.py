"""
Shared test fixtures.

No test touches a real Google account: the Sheets backend is exercised
against the in-process FakeSpreadsheet below.
"""

from datetime import datetime, timedelta, timezone

import pytest

from balance_tracker.audit import AuditLogger
from balance_tracker.config import AppSettings
from balance_tracker.ledger import LedgerService
from balance_tracker.services.storage import (
    JsonFileLedgerStorage,
    MemoryLedgerStorage,
    SqliteLedgerStorage,
)


class RecordingLogger:
    """Stands in for a structlog logger and keeps every call."""

    def __init__(self):
        self.calls: list[tuple[str, str, dict]] = []

    def _record(self, level, event, **kwargs):
        self.calls.append((level, event, kwargs))

    def debug(self, event, **kwargs):
        self._record("debug", event, **kwargs)

    def info(self, event, **kwargs):
        self._record("info", event, **kwargs)

    def warning(self, event, **kwargs):
        self._record("warning", event, **kwargs)

    def error(self, event, **kwargs):
        self._record("error", event, **kwargs)

    def event_types(self) -> list[str]:
        return [kwargs["event_type"] for _, _, kwargs in self.calls]


class SteppingClock:
    """Deterministic clock: each call is one second after the previous one."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self._now = start

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


class FakeWorksheet:
    """The slice of gspread.Worksheet the Sheets backend uses."""

    def __init__(self, title: str, header: list[str]):
        self.title = title
        self.rows: list[list[str]] = [list(header)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option="RAW"):
        self.rows.append([str(v) for v in values])

    def update(self, range_name=None, values=None, value_input_option="RAW"):
        row_number = int(range_name[1:])
        self.rows[row_number - 1] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    """Replaces GoogleSheetsClient; one FakeWorksheet per collection."""

    def __init__(self):
        from balance_tracker.services.storage.google_sheets import (
            ACCOUNT_COLUMNS,
            NOTE_COLUMNS,
            SNAPSHOT_COLUMNS,
        )

        self.accounts = FakeWorksheet("Accounts", ACCOUNT_COLUMNS)
        self.snapshots = FakeWorksheet("Snapshots", SNAPSHOT_COLUMNS)
        self.notes = FakeWorksheet("Notes", NOTE_COLUMNS)
        self.closed = False

    def get_spreadsheet(self):
        return self

    def close(self):
        self.closed = True

    def get_accounts_sheet(self):
        return self.accounts

    def get_snapshots_sheet(self):
        return self.snapshots

    def get_notes_sheet(self):
        return self.notes


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def audit_logger(recording_logger):
    return AuditLogger(logger=recording_logger)


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def memory_storage():
    return MemoryLedgerStorage()


@pytest.fixture
def ledger(memory_storage, audit_logger, app_settings):
    return LedgerService(
        memory_storage,
        audit_logger=audit_logger,
        clock=SteppingClock(),
        app_settings=app_settings,
    )


@pytest.fixture(params=["memory", "json", "sqlite", "google_sheets"])
def any_storage(request, tmp_path):
    """Every backend, so the same contract tests run against each one."""
    if request.param == "memory":
        return MemoryLedgerStorage()
    if request.param == "json":
        return JsonFileLedgerStorage(tmp_path / "ledger.json")
    if request.param == "sqlite":
        return SqliteLedgerStorage(f"sqlite:///{tmp_path / 'ledger.db'}")

    from balance_tracker.services.storage.google_sheets import GoogleSheetsLedgerStorage
    return GoogleSheetsLedgerStorage(FakeSheetsClient())
