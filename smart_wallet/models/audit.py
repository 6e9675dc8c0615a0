"""
Audit Models for Smart Wallet

Every mutating operation appends one entry to the audit log kept inside
the wallet state. The log is newest-first and bounded: once it holds
the retention limit, the oldest entries are silently dropped.

Entries are never edited. A RESET replaces the whole log with a single
RESET entry.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from smart_wallet.models.ids import new_id


class AuditAction(str, Enum):
    """Kinds of mutation recorded in the audit log."""
    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    IMPORT = "IMPORT"
    RESET = "RESET"
    PAYOUT = "PAYOUT"
    REDEEM = "REDEEM"
    COLLECT = "COLLECT"


class AuditTarget(str, Enum):
    """What kind of record an audit entry is about."""
    TRANSACTION = "transaction"
    INSTALLMENT = "installment"
    RECEIVABLE = "receivable"
    CERTIFICATE = "certificate"
    SUB_CATEGORY = "sub_category"
    BUDGET = "budget"
    METAL = "metal"
    SETTINGS = "settings"
    DATA = "data"
    SYSTEM = "system"


class AuditEntry(BaseModel):
    """A single audit log entry."""

    id: str = Field(default_factory=new_id)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the entry was recorded (UTC)"
    )
    action: AuditAction
    target_type: str = Field(
        ...,
        description="Type of record (e.g., 'transaction', 'certificate')"
    )
    target_name: str = Field(
        ...,
        description="Human-readable name of the record"
    )
    details: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "audit_id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "target_type": self.target_type,
            "target_name": self.target_name,
            "details": self.details,
        }


def _money(amount: Decimal, currency: str) -> str:
    return f"{amount} {currency}"


class AuditEntryBuilder:
    """
    Helper class to build audit entries with common patterns.

    Usage:
        entry = AuditEntryBuilder.transaction_added("Groceries", Decimal("200"))
        entry = AuditEntryBuilder.certificate_redeemed("NBE", Decimal("10000"))
    """

    @staticmethod
    def transaction_added(description: str, amount: Decimal, currency: str = "EGP") -> AuditEntry:
        return AuditEntry(
            action=AuditAction.ADD,
            target_type=AuditTarget.TRANSACTION.value,
            target_name=description,
            details=f"amount {_money(amount, currency)}",
        )

    @staticmethod
    def transaction_updated(description: str, old_amount: Decimal, new_amount: Decimal) -> AuditEntry:
        return AuditEntry(
            action=AuditAction.UPDATE,
            target_type=AuditTarget.TRANSACTION.value,
            target_name=description,
            details=f"changed from {old_amount} to {new_amount}",
        )

    @staticmethod
    def transaction_deleted(description: str) -> AuditEntry:
        return AuditEntry(
            action=AuditAction.DELETE,
            target_type=AuditTarget.TRANSACTION.value,
            target_name=description,
            details="rollback of the transaction",
        )

    @staticmethod
    def record_added(target: AuditTarget, name: str, details: Optional[str] = None) -> AuditEntry:
        return AuditEntry(
            action=AuditAction.ADD,
            target_type=target.value,
            target_name=name,
            details=details,
        )

    @staticmethod
    def record_updated(target: AuditTarget, name: str, details: Optional[str] = None) -> AuditEntry:
        return AuditEntry(
            action=AuditAction.UPDATE,
            target_type=target.value,
            target_name=name,
            details=details,
        )

    @staticmethod
    def record_deleted(target: AuditTarget, name: str, details: Optional[str] = None) -> AuditEntry:
        return AuditEntry(
            action=AuditAction.DELETE,
            target_type=target.value,
            target_name=name,
            details=details,
        )

    @staticmethod
    def receivable_collected(name: str, amount: Decimal, period_key: str, currency: str = "EGP") -> AuditEntry:
        return AuditEntry(
            action=AuditAction.COLLECT,
            target_type=AuditTarget.RECEIVABLE.value,
            target_name=name,
            details=f"collected {_money(amount, currency)} for {period_key}",
        )

    @staticmethod
    def certificate_payout(bank_name: str, amount: Decimal, currency: str = "EGP") -> AuditEntry:
        return AuditEntry(
            action=AuditAction.PAYOUT,
            target_type=AuditTarget.CERTIFICATE.value,
            target_name=bank_name,
            details=f"interest payout of {_money(amount, currency)}",
        )

    @staticmethod
    def certificate_redeemed(bank_name: str, amount: Decimal, currency: str = "EGP") -> AuditEntry:
        return AuditEntry(
            action=AuditAction.REDEEM,
            target_type=AuditTarget.CERTIFICATE.value,
            target_name=bank_name,
            details=f"principal redeemed for {_money(amount, currency)}",
        )

    @staticmethod
    def data_imported() -> AuditEntry:
        return AuditEntry(
            action=AuditAction.IMPORT,
            target_type=AuditTarget.DATA.value,
            target_name="system",
        )

    @staticmethod
    def data_reset(cleared: list[str]) -> AuditEntry:
        return AuditEntry(
            action=AuditAction.RESET,
            target_type=AuditTarget.SYSTEM.value,
            target_name="selective reset",
            details="cleared: " + (", ".join(cleared) if cleared else "nothing"),
        )
