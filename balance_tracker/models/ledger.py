"""
Core Data Models for the Balance Tracker

These models define the schemas for everything the ledger stores or derives:
1. Account - a place money lives (bank card, wallet, cash...)
2. BalanceSnapshot - one balance for one account in one weekly period
3. PeriodNote - free-text income/expense notes for one period
4. PeriodSummary / AccountTrend - derived views, never persisted

DESIGN DECISION: Python attributes are snake_case, but every persisted
model serializes with camelCase aliases (accountId, recordDate, createdAt...).
Those names are the storage contract shared by all backends, so a ledger
written by one backend can be read by any other.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from balance_tracker.periods import to_period_key


def new_id() -> str:
    """Generate a collision-resistant identifier (random 128-bit UUID)."""
    return str(uuid4())


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _normalize_period_key(value: Any) -> Any:
    # Anything else falls through to the str check and fails there
    if isinstance(value, (str, date)):
        return to_period_key(value)
    return value


# A period key: "YYYY-MM-DD", accepted as a string or a date
PeriodKey = Annotated[str, BeforeValidator(_normalize_period_key)]


def _assume_utc(value: datetime) -> datetime:
    # Hand-edited records may drop the offset; read those as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# A timestamp that is always timezone-aware
UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


class LedgerModel(BaseModel):
    """Base for all ledger models: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted (camelCase, JSON-safe) form."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENUMS
# =============================================================================

class AccountType(str, Enum):
    """Kinds of account the user can track."""
    BANK = "bank"
    CASH = "cash"
    PAY = "pay"      # e-wallets / payment apps
    STOCK = "stock"
    OTHER = "other"


# =============================================================================
# PERSISTED ENTITIES
# =============================================================================

class Account(LedgerModel):
    """
    A tracked account.

    `id` and `created_at` are assigned once by the ledger service and
    never change afterwards.
    """

    id: str = Field(
        default_factory=new_id,
        description="Unique account identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    type: AccountType = Field(
        ...,
        description="Account type"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
    )
    created_at: UtcDatetime = Field(
        default_factory=utc_now,
        description="When the account was created (UTC)"
    )


class BalanceSnapshot(LedgerModel):
    """
    The balance of one account in one period.

    Natural key: (account_id, record_date). The ledger service guarantees
    at most one snapshot per key.
    """

    id: str = Field(default_factory=new_id)
    account_id: str = Field(..., min_length=1)
    record_date: PeriodKey = Field(
        ...,
        description="Period key, conventionally a Saturday"
    )
    balance: float = Field(
        ...,
        description="Signed balance in the account's currency"
    )
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)


class PeriodNote(LedgerModel):
    """Income/expense notes for one period. Natural key: record_date."""

    id: str = Field(default_factory=new_id)
    record_date: PeriodKey
    income_note: Optional[str] = None
    expense_note: Optional[str] = None
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)


# =============================================================================
# INPUT PAYLOADS
# =============================================================================

class AccountCreate(LedgerModel):
    """Fields a caller supplies to create an account."""
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    description: Optional[str] = Field(default=None, max_length=500)


class AccountUpdate(LedgerModel):
    """
    A partial update to an account.

    Only fields explicitly set are applied. Identity fields are not part
    of this model, so they cannot be patched.
    """
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", "type")
    @classmethod
    def reject_explicit_none(cls, v):
        """name and type can be changed but never cleared."""
        if v is None:
            raise ValueError("Field cannot be set to null")
        return v


class SnapshotCreate(LedgerModel):
    """Fields a caller supplies to record a balance."""
    account_id: str = Field(..., min_length=1)
    record_date: PeriodKey
    balance: float


class NoteCreate(LedgerModel):
    """Fields a caller supplies to record period notes."""
    record_date: PeriodKey
    income_note: Optional[str] = None
    expense_note: Optional[str] = None


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class AccountBalance(LedgerModel):
    """One account's line in a period summary."""
    account_id: str
    account_name: str
    account_type: str
    balance: float


class PeriodSummary(LedgerModel):
    """All balances recorded for one period, with their total."""
    record_date: str
    week_number: int = Field(..., ge=1, le=54, description="Sunday-based week of the year")
    total_balance: float
    accounts: list[AccountBalance] = Field(default_factory=list)


class AccountTrend(LedgerModel):
    """
    Current balance of an account and how it moved over three horizons.

    A change of 0 means either no movement or no comparable earlier record.
    """
    account_id: str
    account_name: str
    account_type: str
    current_balance: float
    weekly_change: float = 0.0
    monthly_change: float = 0.0
    quarterly_change: float = 0.0
