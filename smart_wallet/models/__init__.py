"""
Data Models Package

This package contains all Pydantic models used by Smart Wallet.
All state flowing through the ledger must conform to these schemas.
"""

from smart_wallet.models.audit import (
    AuditAction,
    AuditEntry,
    AuditEntryBuilder,
    AuditTarget,
)
from smart_wallet.models.ids import new_id
from smart_wallet.models.ledger import (
    AppState,
    InvestmentSettings,
    LifePillar,
    MetalId,
    PreciousMetal,
    SourceKind,
    SourceType,
    SubCategory,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from smart_wallet.models.notification import Notification, NotificationLevel
from smart_wallet.models.obligations import (
    BankCertificate,
    CertificateStatus,
    Installment,
    PayoutCycle,
    Receivable,
    ReceivableKind,
)
from smart_wallet.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Ledger models
    "AppState",
    "InvestmentSettings",
    "LifePillar",
    "MetalId",
    "PreciousMetal",
    "SourceKind",
    "SourceType",
    "SubCategory",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    # Obligation models
    "BankCertificate",
    "CertificateStatus",
    "Installment",
    "PayoutCycle",
    "Receivable",
    "ReceivableKind",
    # Audit models
    "AuditAction",
    "AuditEntry",
    "AuditEntryBuilder",
    "AuditTarget",
    # Notifications and validation
    "Notification",
    "NotificationLevel",
    "ValidationIssue",
    "ValidationResult",
    "new_id",
]
