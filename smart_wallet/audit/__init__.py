"""Audit logging package."""

from smart_wallet.audit.recorder import DEFAULT_AUDIT_LIMIT, AuditRecorder

__all__ = ["AuditRecorder", "DEFAULT_AUDIT_LIMIT"]
