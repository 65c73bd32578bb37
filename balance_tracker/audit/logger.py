"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. A history of what was recorded and when
2. Debugging capability when a balance looks wrong
3. A trace of storage failures

The audit logger writes structured (JSON) log lines through structlog.
It never raises: a logging problem must not turn a successful save
into a failed one.
"""

import structlog

from balance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """Central audit logging service for ledger mutations."""

    def __init__(self, logger=None):
        """
        Initialize audit logger.

        Args:
            logger: structlog-style logger to write to.
                    Defaults to the "balance_tracker.audit" logger.
        """
        self._logger = logger or structlog.get_logger("balance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event at the level matching its severity.

        Returns True if the event was written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            structlog.get_logger(__name__).error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

        return True

    async def log_account_created(self, account_id: str, name: str, account_type: str) -> None:
        await self.log(AuditEventBuilder.account_created(account_id, name, account_type))

    async def log_account_updated(self, account_id: str, changed_fields: list[str]) -> None:
        await self.log(AuditEventBuilder.account_updated(account_id, changed_fields))

    async def log_account_deleted(self, account_id: str, snapshots_removed: int) -> None:
        await self.log(AuditEventBuilder.account_deleted(account_id, snapshots_removed))

    async def log_snapshot_saved(
        self,
        snapshot_id: str,
        account_id: str,
        record_date: str,
        balance: float,
        created: bool,
    ) -> None:
        """Log a balance upsert (created=False means an existing one was updated)."""
        event = AuditEventBuilder.snapshot_saved(
            snapshot_id=snapshot_id,
            account_id=account_id,
            record_date=record_date,
            balance=balance,
            created=created,
        )
        await self.log(event)

    async def log_snapshot_deleted(self, snapshot_id: str) -> None:
        await self.log(AuditEventBuilder.snapshot_deleted(snapshot_id))

    async def log_snapshots_purged(self, account_id: str, count: int) -> None:
        await self.log(AuditEventBuilder.snapshots_purged(account_id, count))

    async def log_note_saved(self, note_id: str, record_date: str, created: bool) -> None:
        await self.log(AuditEventBuilder.note_saved(note_id, record_date, created))

    async def log_sample_data_initialized(self, account_count: int, record_date: str) -> None:
        await self.log(AuditEventBuilder.sample_data_initialized(account_count, record_date))

    async def log_storage_error(self, operation: str, error: Exception) -> None:
        """Log a backend failure before it is re-raised to the caller."""
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_message=str(error),
            details={"error_type": type(error).__name__},
        )
        await self.log(event)
