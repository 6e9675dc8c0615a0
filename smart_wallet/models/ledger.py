"""
Core Ledger Models for Smart Wallet

The wallet keeps a single aggregate, AppState, holding the cash balance,
the transaction history and every registry (categories, obligations,
metals, audit log).

INVARIANT: cash_balance equals the sum of signed amounts of all
transactions in the ledger, given a consistent starting snapshot.
Only the ledger engine changes cash_balance and transactions together.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from smart_wallet.models.audit import AuditEntry
from smart_wallet.models.ids import new_id
from smart_wallet.models.obligations import BankCertificate, Installment, Receivable


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction's effect on cash."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class SourceType(str, Enum):
    """Which obligation registry spawned an auto-generated transaction."""
    RECEIVABLE = "RECEIVABLE"
    INSTALLMENT = "INSTALLMENT"
    CERTIFICATE = "CERTIFICATE"


class SourceKind(str, Enum):
    """
    What event of the source obligation a transaction settles.

    PERIOD is a recurring installment or receivable period.
    PAYOUT and REDEMPTION distinguish the two certificate events,
    so reversal never has to read the description.
    """
    PERIOD = "PERIOD"
    PAYOUT = "PAYOUT"
    REDEMPTION = "REDEMPTION"


class MetalId(str, Enum):
    GOLD = "GOLD"
    SILVER = "SILVER"


# =============================================================================
# CATEGORY TAXONOMY
# =============================================================================

class LifePillar(BaseModel):
    """Top-level spending/income category with its own budget."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = ""
    color: str = "#64748b"
    budget: Decimal = Field(default=Decimal("0"), ge=0)


class SubCategory(BaseModel):
    """Refinement of exactly one pillar."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    pillar_id: str
    name: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# ASSETS AND SETTINGS
# =============================================================================

class PreciousMetal(BaseModel):
    """Metal holdings, valued at the last price the user entered."""

    id: MetalId
    name: str
    weight: Decimal = Field(default=Decimal("0"), ge=0, description="Weight in grams")
    karat: Optional[int] = Field(default=None, ge=1, le=24)
    current_price_per_gram: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def value(self) -> Decimal:
        return self.weight * self.current_price_per_gram


class InvestmentSettings(BaseModel):
    """Thresholds for suggesting that idle cash be invested."""

    enabled: bool = True
    threshold_percentage: int = Field(default=50, ge=0, le=100)
    min_days: int = Field(default=30, ge=0)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction that has not been committed yet.

    Amount is always non-negative; the sign comes from `type`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    date: datetime = Field(default_factory=datetime.now)
    description: str = Field(default="", max_length=500)
    pillar_id: str = Field(..., min_length=1)
    sub_category_id: Optional[str] = None
    is_auto: bool = False

    # Link back to the obligation period this transaction settles
    source_id: Optional[str] = None
    source_type: Optional[SourceType] = None
    source_month: Optional[str] = None
    source_kind: Optional[SourceKind] = None

    @model_validator(mode='after')
    def validate_source(self) -> 'TransactionDraft':
        """A source type without a source id cannot be reversed."""
        if self.source_type is not None and not self.source_id:
            raise ValueError("source_id is required when source_type is set")
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the cash balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Transaction(TransactionDraft):
    """A committed ledger entry."""

    id: str = Field(default_factory=new_id)

    @classmethod
    def from_draft(cls, draft: TransactionDraft) -> 'Transaction':
        return cls(id=new_id(), **draft.model_dump(exclude={"id"}))


# =============================================================================
# AGGREGATE ROOT
# =============================================================================

_Entity = TypeVar("_Entity", bound=BaseModel)


def find_by_id(items: list[_Entity], item_id: str) -> Optional[_Entity]:
    """Return the entity with this id, or None."""
    for item in items:
        if getattr(item, "id", None) == item_id:
            return item
    return None


def replace_by_id(items: list[_Entity], replacement: _Entity) -> bool:
    """Replace the entity sharing the replacement's id. False if absent."""
    for index, item in enumerate(items):
        if getattr(item, "id", None) == getattr(replacement, "id", None):
            items[index] = replacement
            return True
    return False


def remove_by_id(items: list[_Entity], item_id: str) -> Optional[_Entity]:
    """Remove and return the entity with this id, or None."""
    for index, item in enumerate(items):
        if getattr(item, "id", None) == item_id:
            return items.pop(index)
    return None


class AppState(BaseModel):
    """
    The whole wallet: the unit that is loaded, saved, imported and exported.
    """

    cash_balance: Decimal = Decimal("0")
    transactions: list[Transaction] = Field(
        default_factory=list,
        description="Newest first"
    )
    pillars: list[LifePillar] = Field(default_factory=list)
    sub_categories: list[SubCategory] = Field(default_factory=list)
    metals: list[PreciousMetal] = Field(default_factory=list)
    installments: list[Installment] = Field(default_factory=list)
    receivables: list[Receivable] = Field(default_factory=list)
    certificates: list[BankCertificate] = Field(default_factory=list)
    audit_logs: list[AuditEntry] = Field(
        default_factory=list,
        description="Newest first, bounded by the audit retention limit"
    )
    investment_settings: InvestmentSettings = Field(default_factory=InvestmentSettings)

    def ledger_balance(self) -> Decimal:
        """Fold of all transaction effects."""
        return sum((t.signed_amount for t in self.transactions), Decimal("0"))

    def is_consistent(self) -> bool:
        return self.cash_balance == self.ledger_balance()
