"""Audit logging package."""

from balance_tracker.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
