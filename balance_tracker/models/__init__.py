"""
Data Models Package

This package contains all Pydantic models used by the balance tracker.
All data flowing through the ledger must conform to these schemas.
"""

from balance_tracker.models.ledger import (
    Account,
    AccountBalance,
    AccountCreate,
    AccountTrend,
    AccountType,
    AccountUpdate,
    BalanceSnapshot,
    NoteCreate,
    PeriodNote,
    PeriodSummary,
    SnapshotCreate,
    new_id,
    utc_now,
)
from balance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountBalance",
    "AccountCreate",
    "AccountTrend",
    "AccountType",
    "AccountUpdate",
    "BalanceSnapshot",
    "NoteCreate",
    "PeriodNote",
    "PeriodSummary",
    "SnapshotCreate",
    "new_id",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
