"""
Audit Models for the Balance Tracker

Every change to the ledger is recorded as an audit event:
1. Accounts created, edited and deleted
2. Balances and notes saved or removed
3. Storage failures

DESIGN DECISION: Audit events are emitted, never edited. The ledger
service creates one per mutation after the backend call returns.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Balance snapshots
    SNAPSHOT_SAVED = "snapshot_saved"
    SNAPSHOT_DELETED = "snapshot_deleted"
    SNAPSHOTS_PURGED = "snapshots_purged"

    # Notes
    NOTE_SAVED = "note_saved"

    # Bootstrap
    SAMPLE_DATA_INITIALIZED = "sample_data_initialized"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'snapshot', 'note')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(account_id, name, "bank")
        event = AuditEventBuilder.snapshot_saved(snapshot_id, account_id, date, 10.0, True)
    """

    @staticmethod
    def account_created(
        account_id: str,
        name: str,
        account_type: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account created: {name}",
            details={
                "name": name,
                "type": account_type,
            },
        )

    @staticmethod
    def account_updated(
        account_id: str,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
            },
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        snapshots_removed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            description=f"Account deleted with {snapshots_removed} snapshots",
            details={
                "snapshots_removed": snapshots_removed,
            },
        )

    @staticmethod
    def snapshot_saved(
        snapshot_id: str,
        account_id: str,
        record_date: str,
        balance: float,
        created: bool,
    ) -> AuditEvent:
        action = "recorded" if created else "updated"
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            entity_type="snapshot",
            entity_id=snapshot_id,
            description=f"Balance {action} for {record_date}",
            details={
                "account_id": account_id,
                "record_date": record_date,
                "balance": balance,
                "created": created,
            },
        )

    @staticmethod
    def snapshot_deleted(snapshot_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_DELETED,
            entity_type="snapshot",
            entity_id=snapshot_id,
            description="Balance snapshot deleted",
        )

    @staticmethod
    def snapshots_purged(account_id: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOTS_PURGED,
            entity_type="account",
            entity_id=account_id,
            description=f"Removed {count} snapshots of account",
            details={
                "count": count,
            },
        )

    @staticmethod
    def note_saved(
        note_id: str,
        record_date: str,
        created: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTE_SAVED,
            entity_type="note",
            entity_id=note_id,
            description=f"Note {'recorded' if created else 'updated'} for {record_date}",
            details={
                "record_date": record_date,
                "created": created,
            },
        )

    @staticmethod
    def sample_data_initialized(account_count: int, record_date: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAMPLE_DATA_INITIALIZED,
            description=f"Created {account_count} sample accounts",
            details={
                "account_count": account_count,
                "record_date": record_date,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
                **(details or {}),
            },
        )
