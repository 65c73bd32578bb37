"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a backend because:
1. The user can look at their balance history directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for weekly balances)
- No transactions (an account delete removes snapshot rows first)
- Limited query capabilities (we filter in Python)

Each collection is one worksheet whose header row holds the storage field
names (id, accountId, recordDate...). Rows are looked up by their id column.
"""

from typing import Optional, Type

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from balance_tracker.config import GoogleSheetsSettings, get_settings
from balance_tracker.models.ledger import (
    Account,
    BalanceSnapshot,
    LedgerModel,
    PeriodNote,
)
from balance_tracker.services.storage.interface import (
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
    sort_accounts,
    sort_notes,
    sort_snapshots,
)

logger = structlog.get_logger(__name__)


# Column layouts (header row of each worksheet)
ACCOUNT_COLUMNS = ["id", "name", "type", "description", "createdAt"]
SNAPSHOT_COLUMNS = ["id", "accountId", "recordDate", "balance", "createdAt", "updatedAt"]
NOTE_COLUMNS = ["id", "recordDate", "incomeNote", "expenseNote", "createdAt", "updatedAt"]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(FileNotFoundError),
        reraise=True,
    )
    def _authorize(self) -> gspread.Client:
        scopes = [
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
        ]
        credentials = Credentials.from_service_account_file(
            self._settings.credentials_path,
            scopes=scopes,
        )
        return gspread.authorize(credentials)

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                self._client = self._authorize()
            except FileNotFoundError as e:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StorageConnectionError(
                    f"Failed to connect to Google Sheets: {e}"
                ) from e
            logger.info("google_sheets_connected", spreadsheet_id=self._settings.spreadsheet_id)

        return self._client

    def close(self) -> None:
        self._client = None
        self._spreadsheet = None

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the Accounts worksheet."""
        return self._get_or_create_sheet(self._settings.accounts_sheet_name, ACCOUNT_COLUMNS)

    def get_snapshots_sheet(self) -> gspread.Worksheet:
        """Get or create the Snapshots worksheet."""
        return self._get_or_create_sheet(self._settings.snapshots_sheet_name, SNAPSHOT_COLUMNS)

    def get_notes_sheet(self) -> gspread.Worksheet:
        """Get or create the Notes worksheet."""
        return self._get_or_create_sheet(self._settings.notes_sheet_name, NOTE_COLUMNS)


def _model_to_row(item: LedgerModel, columns: list[str]) -> list[str]:
    record = item.to_record()
    return ["" if record.get(col) is None else str(record[col]) for col in columns]


def _row_to_model(row: list[str], columns: list[str], model: Type[LedgerModel]):
    # Handle missing trailing columns gracefully
    values = {
        col: (row[idx] if idx < len(row) and row[idx] != "" else None)
        for idx, col in enumerate(columns)
    }
    return model.model_validate(values)


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One record per row; row 1 of every worksheet is the header.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def connect(self) -> None:
        self._client.get_spreadsheet()

    async def close(self) -> None:
        self._client.close()

    def _read(self, sheet, columns: list[str], model: Type[LedgerModel]) -> list[tuple[int, LedgerModel]]:
        """Parse every data row into (sheet row number, model) pairs."""
        items = []
        for row_number, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                items.append((row_number, _row_to_model(row, columns, model)))
            except ValidationError as e:
                logger.warning(
                    "skipping_malformed_row",
                    sheet=sheet.title,
                    row=row_number,
                    error=str(e),
                )
        return items

    def _put(self, sheet, columns: list[str], model: Type[LedgerModel], item: LedgerModel) -> None:
        new_row = _model_to_row(item, columns)
        for row_number, existing in self._read(sheet, columns, model):
            if existing.id == item.id:
                sheet.update(
                    range_name=f"A{row_number}",
                    values=[new_row],
                    value_input_option="RAW",
                )
                return
        sheet.append_row(new_row, value_input_option="RAW")

    @staticmethod
    def _delete_rows(sheet, row_numbers: list[int]) -> None:
        # Bottom-up so earlier deletions don't shift the remaining row numbers
        for row_number in sorted(row_numbers, reverse=True):
            sheet.delete_rows(row_number)

    # Accounts

    async def list_accounts(self) -> list[Account]:
        try:
            sheet = self._client.get_accounts_sheet()
            return sort_accounts([a for _, a in self._read(sheet, ACCOUNT_COLUMNS, Account)])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}") from e

    async def get_account(self, account_id: str) -> Optional[Account]:
        for account in await self.list_accounts():
            if account.id == account_id:
                return account
        return None

    async def put_account(self, account: Account) -> Account:
        try:
            sheet = self._client.get_accounts_sheet()
            self._put(sheet, ACCOUNT_COLUMNS, Account, account)
            return account
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save account: {e}") from e

    async def delete_account(self, account_id: str) -> bool:
        try:
            sheet = self._client.get_accounts_sheet()
            rows = [n for n, a in self._read(sheet, ACCOUNT_COLUMNS, Account) if a.id == account_id]
            if not rows:
                return False
            await self.delete_snapshots_by_account(account_id)
            self._delete_rows(sheet, rows)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete account: {e}") from e

    # Snapshots

    async def list_snapshots(
        self,
        account_id: Optional[str] = None,
        record_date: Optional[str] = None,
    ) -> list[BalanceSnapshot]:
        try:
            sheet = self._client.get_snapshots_sheet()
            return sort_snapshots([
                s for _, s in self._read(sheet, SNAPSHOT_COLUMNS, BalanceSnapshot)
                if (account_id is None or s.account_id == account_id)
                and (record_date is None or s.record_date == record_date)
            ])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list snapshots: {e}") from e

    async def put_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        try:
            sheet = self._client.get_snapshots_sheet()
            self._put(sheet, SNAPSHOT_COLUMNS, BalanceSnapshot, snapshot)
            return snapshot
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save snapshot: {e}") from e

    async def delete_snapshot(self, snapshot_id: str) -> bool:
        try:
            sheet = self._client.get_snapshots_sheet()
            rows = [
                n for n, s in self._read(sheet, SNAPSHOT_COLUMNS, BalanceSnapshot)
                if s.id == snapshot_id
            ]
            self._delete_rows(sheet, rows)
            return bool(rows)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete snapshot: {e}") from e

    async def delete_snapshots_by_account(self, account_id: str) -> int:
        try:
            sheet = self._client.get_snapshots_sheet()
            rows = [
                n for n, s in self._read(sheet, SNAPSHOT_COLUMNS, BalanceSnapshot)
                if s.account_id == account_id
            ]
            self._delete_rows(sheet, rows)
            return len(rows)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete account snapshots: {e}") from e

    # Notes

    async def list_notes(self, record_date: Optional[str] = None) -> list[PeriodNote]:
        try:
            sheet = self._client.get_notes_sheet()
            return sort_notes([
                n for _, n in self._read(sheet, NOTE_COLUMNS, PeriodNote)
                if record_date is None or n.record_date == record_date
            ])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list notes: {e}") from e

    async def put_note(self, note: PeriodNote) -> PeriodNote:
        try:
            sheet = self._client.get_notes_sheet()
            self._put(sheet, NOTE_COLUMNS, PeriodNote, note)
            return note
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save note: {e}") from e
