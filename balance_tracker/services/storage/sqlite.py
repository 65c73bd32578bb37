"""
SQLite Storage Implementation (SQLAlchemy)

The default backend: a single local database file with three tables
(accounts, weekly_records, weekly_notes). Column names are the camelCase
storage field names, so the file stays compatible with other tools that
read the same ledger.

Each operation runs in its own short transactional session. The engine is
created lazily on first use and disposed by close().
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import Float, ForeignKey, Index, String, Text, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from balance_tracker.models.ledger import Account, BalanceSnapshot, PeriodNote
from balance_tracker.services.storage.interface import (
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column("createdAt", String, nullable=False)


class SnapshotRow(Base):
    __tablename__ = "weekly_records"
    __table_args__ = (
        Index("idx_weekly_records_date", "recordDate"),
        Index("idx_weekly_records_account", "accountId"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    account_id: Mapped[str] = mapped_column(
        "accountId",
        String,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    record_date: Mapped[str] = mapped_column("recordDate", String, nullable=False)
    balance: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[str] = mapped_column("createdAt", String, nullable=False)
    updated_at: Mapped[str] = mapped_column("updatedAt", String, nullable=False)


class NoteRow(Base):
    __tablename__ = "weekly_notes"
    __table_args__ = (Index("idx_weekly_notes_date", "recordDate"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    record_date: Mapped[str] = mapped_column("recordDate", String, nullable=False)
    income_note: Mapped[Optional[str]] = mapped_column("incomeNote", Text, nullable=True)
    expense_note: Mapped[Optional[str]] = mapped_column("expenseNote", Text, nullable=True)
    created_at: Mapped[str] = mapped_column("createdAt", String, nullable=False)
    updated_at: Mapped[str] = mapped_column("updatedAt", String, nullable=False)


def _ts(value: datetime) -> str:
    return value.isoformat()


def _account_to_row(account: Account) -> AccountRow:
    return AccountRow(
        id=account.id,
        name=account.name,
        type=account.type.value,
        description=account.description,
        created_at=_ts(account.created_at),
    )


def _row_to_account(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        type=row.type,
        description=row.description or None,
        created_at=row.created_at,
    )


def _snapshot_to_row(snapshot: BalanceSnapshot) -> SnapshotRow:
    return SnapshotRow(
        id=snapshot.id,
        account_id=snapshot.account_id,
        record_date=snapshot.record_date,
        balance=snapshot.balance,
        created_at=_ts(snapshot.created_at),
        updated_at=_ts(snapshot.updated_at),
    )


def _row_to_snapshot(row: SnapshotRow) -> BalanceSnapshot:
    return BalanceSnapshot(
        id=row.id,
        account_id=row.account_id,
        record_date=row.record_date,
        balance=row.balance,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _note_to_row(note: PeriodNote) -> NoteRow:
    return NoteRow(
        id=note.id,
        record_date=note.record_date,
        income_note=note.income_note,
        expense_note=note.expense_note,
        created_at=_ts(note.created_at),
        updated_at=_ts(note.updated_at),
    )


def _row_to_note(row: NoteRow) -> PeriodNote:
    return PeriodNote(
        id=row.id,
        record_date=row.record_date,
        income_note=row.income_note or None,
        expense_note=row.expense_note or None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqliteLedgerStorage(LedgerStorageInterface):
    """SQLite (via SQLAlchemy) implementation of ledger storage."""

    def __init__(self, database_url: str = "sqlite:///ledger.db", echo: bool = False):
        self._database_url = database_url
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._session_maker: Optional[sessionmaker[Session]] = None

    def _get_engine(self) -> Engine:
        if self._engine is None:
            try:
                engine = create_engine(self._database_url, echo=self._echo)
                Base.metadata.create_all(engine)
            except SQLAlchemyError as e:
                raise StorageConnectionError(
                    f"Failed to open database {self._database_url}: {e}"
                ) from e
            self._session_maker = sessionmaker(
                bind=engine, expire_on_commit=False, class_=Session
            )
            self._engine = engine
            logger.info("ledger_database_opened", url=self._database_url)
        return self._engine

    @contextmanager
    def _session_scope(self, operation: str) -> Iterator[Session]:
        """Provide a transactional scope around one storage operation."""
        self._get_engine()
        assert self._session_maker is not None  # bound by _get_engine
        session = self._session_maker()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Failed to {operation}: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def connect(self) -> None:
        self._get_engine()

    async def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_maker = None

    # Accounts

    async def list_accounts(self) -> list[Account]:
        with self._session_scope("list accounts") as s:
            rows = s.scalars(
                select(AccountRow).order_by(AccountRow.created_at.desc())
            ).all()
            return [_row_to_account(r) for r in rows]

    async def get_account(self, account_id: str) -> Optional[Account]:
        with self._session_scope("get account") as s:
            row = s.get(AccountRow, account_id)
            return _row_to_account(row) if row else None

    async def put_account(self, account: Account) -> Account:
        with self._session_scope("save account") as s:
            s.merge(_account_to_row(account))
        return account

    async def delete_account(self, account_id: str) -> bool:
        with self._session_scope("delete account") as s:
            row = s.get(AccountRow, account_id)
            if row is None:
                return False
            s.execute(delete(SnapshotRow).where(SnapshotRow.account_id == account_id))
            s.delete(row)
        return True

    # Snapshots

    async def list_snapshots(
        self,
        account_id: Optional[str] = None,
        record_date: Optional[str] = None,
    ) -> list[BalanceSnapshot]:
        stmt = select(SnapshotRow)
        if account_id is not None:
            stmt = stmt.where(SnapshotRow.account_id == account_id)
        if record_date is not None:
            stmt = stmt.where(SnapshotRow.record_date == record_date)
        stmt = stmt.order_by(SnapshotRow.record_date.desc(), SnapshotRow.created_at.desc())

        with self._session_scope("list snapshots") as s:
            return [_row_to_snapshot(r) for r in s.scalars(stmt).all()]

    async def put_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        with self._session_scope("save snapshot") as s:
            s.merge(_snapshot_to_row(snapshot))
        return snapshot

    async def delete_snapshot(self, snapshot_id: str) -> bool:
        with self._session_scope("delete snapshot") as s:
            result = s.execute(delete(SnapshotRow).where(SnapshotRow.id == snapshot_id))
            return result.rowcount > 0

    async def delete_snapshots_by_account(self, account_id: str) -> int:
        with self._session_scope("delete account snapshots") as s:
            result = s.execute(
                delete(SnapshotRow).where(SnapshotRow.account_id == account_id)
            )
            return result.rowcount

    # Notes

    async def list_notes(self, record_date: Optional[str] = None) -> list[PeriodNote]:
        stmt = select(NoteRow)
        if record_date is not None:
            stmt = stmt.where(NoteRow.record_date == record_date)
        stmt = stmt.order_by(NoteRow.record_date.desc(), NoteRow.created_at.desc())

        with self._session_scope("list notes") as s:
            return [_row_to_note(r) for r in s.scalars(stmt).all()]

    async def put_note(self, note: PeriodNote) -> PeriodNote:
        with self._session_scope("save note") as s:
            s.merge(_note_to_row(note))
        return note
