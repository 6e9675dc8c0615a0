"""
Audit Recorder

Every mutating wallet operation appends an entry to the audit log held in
the wallet state. The recorder:
- Keeps the log newest-first and truncated to the retention limit
- Mirrors each entry to the structured local log
- Never fails the operation that caused it (recording is best-effort)
"""

from typing import Optional

import structlog

from smart_wallet.models.audit import AuditAction, AuditEntry
from smart_wallet.models.ledger import AppState


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

DEFAULT_AUDIT_LIMIT = 500


class AuditRecorder:
    """
    Appends audit entries to a wallet state.

    The recorder holds no state of its own; the log lives in AppState
    so it is saved, exported and imported with everything else.
    """

    def __init__(self, limit: int = DEFAULT_AUDIT_LIMIT):
        """
        Initialize audit recorder.

        Args:
            limit: Number of entries retained. Older entries are dropped.
        """
        self._limit = limit
        self._logger = structlog.get_logger()

    @property
    def limit(self) -> int:
        return self._limit

    def append(self, state: AppState, entry: AuditEntry) -> Optional[AuditEntry]:
        """
        Prepend a prepared entry and truncate the log.

        Returns the entry, or None if recording failed.
        """
        try:
            self._logger.info("audit_entry", **entry.to_log_dict())
            state.audit_logs.insert(0, entry)
            del state.audit_logs[self._limit:]
            return entry
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_record_failed",
                error=str(e),
                audit_id=entry.id,
            )
            return None

    def record(
        self,
        state: AppState,
        action: AuditAction,
        target_type: str,
        target_name: str,
        details: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        """Build and append an entry from its parts."""
        try:
            entry = AuditEntry(
                action=action,
                target_type=target_type,
                target_name=target_name,
                details=details,
            )
        except Exception as e:
            self._logger.error(
                "audit_record_failed",
                error=str(e),
                action=str(action),
                target_type=target_type,
            )
            return None
        return self.append(state, entry)

    def replace_with(self, state: AppState, entry: AuditEntry) -> AuditEntry:
        """Discard the whole log and start over with a single entry."""
        self._logger.info("audit_entry", **entry.to_log_dict())
        state.audit_logs = [entry]
        return entry
