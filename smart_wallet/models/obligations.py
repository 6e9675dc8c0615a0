"""
Obligation Models

An obligation is a scheduled commitment that can generate transactions:
- Installment: a fixed-schedule debt paid monthly
- Receivable: money expected in, one-time or monthly
- BankCertificate: principal earning periodic interest payouts

Each obligation keeps its own paid-set (period keys already settled).
The ledger reopens a period by removing its key when the settling
transaction is deleted.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from smart_wallet.models.ids import new_id


class ReceivableKind(str, Enum):
    """What kind of income a receivable represents."""
    RENT = "RENT"
    OTHER = "OTHER"


class PayoutCycle(str, Enum):
    """Interest payout cycle of a bank certificate."""
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUALLY = "SEMI_ANNUALLY"
    ANNUALLY = "ANNUALLY"

    @property
    def months(self) -> int:
        """Length of one cycle in months."""
        return _CYCLE_MONTHS[self]

    @property
    def payouts_per_year(self) -> int:
        return 12 // self.months


_CYCLE_MONTHS = {
    PayoutCycle.MONTHLY: 1,
    PayoutCycle.QUARTERLY: 3,
    PayoutCycle.SEMI_ANNUALLY: 6,
    PayoutCycle.ANNUALLY: 12,
}


class CertificateStatus(str, Enum):
    """
    Certificate lifecycle.

    REDEEMED is terminal in forward flow. Only deleting the
    redemption transaction brings a certificate back to ACTIVE.
    """
    ACTIVE = "ACTIVE"
    REDEEMED = "REDEEMED"


def _ensure_unique(keys: list[str], field_name: str) -> None:
    if len(keys) != len(set(keys)):
        raise ValueError(f"{field_name} contains duplicate period keys")


class Installment(BaseModel):
    """
    A fixed-schedule debt obligation.

    INVARIANT: remaining_months == total_months - len(paid_months)
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    total_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="monthly_amount * total_months, computed on add"
    )
    monthly_amount: Decimal = Field(..., ge=0)
    total_months: int = Field(..., ge=1)
    remaining_months: int = Field(..., ge=0)
    start_date: date
    pillar_id: str
    sub_category_id: Optional[str] = None
    payment_day: int = Field(default=1, ge=1, le=31)
    last_payment_date: Optional[datetime] = None
    paid_months: list[str] = Field(
        default_factory=list,
        description="Settled period keys (YYYY-MM), in payment order"
    )

    @model_validator(mode='after')
    def validate_schedule(self) -> 'Installment':
        """Reject a paid-set that disagrees with the remaining count."""
        _ensure_unique(self.paid_months, "paid_months")
        if self.remaining_months != self.total_months - len(self.paid_months):
            raise ValueError(
                "remaining_months must equal total_months minus the number of paid months"
            )
        return self

    @property
    def is_completed(self) -> bool:
        return self.remaining_months <= 0


class Receivable(BaseModel):
    """
    Expected incoming money.

    Three shapes share this model:
    - one-time (is_recurring=False): collected once
    - bounded recurring: total_months set, remaining_months tracked
    - unbounded recurring: total_months absent, collected every month
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    due_day: int = Field(default=1, ge=1, le=31)
    kind: ReceivableKind = ReceivableKind.OTHER
    is_collected_this_month: bool = False
    pillar_id: str
    is_recurring: bool = True
    start_date: date
    total_months: Optional[int] = Field(default=None, ge=1)
    remaining_months: Optional[int] = Field(default=None, ge=0)
    end_date: Optional[date] = None
    paid_months: list[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_schedule(self) -> 'Receivable':
        _ensure_unique(self.paid_months, "paid_months")
        if self.total_months is not None and self.remaining_months is not None:
            if self.remaining_months != self.total_months - len(self.paid_months):
                raise ValueError(
                    "remaining_months must equal total_months minus the number of paid months"
                )
        return self

    @property
    def is_bounded(self) -> bool:
        """Bounded receivables have a fixed number of periods."""
        return self.is_recurring and self.total_months is not None

    @property
    def is_completed(self) -> bool:
        if self.is_bounded:
            return self.remaining_months is not None and self.remaining_months <= 0
        if not self.is_recurring:
            return self.is_collected_this_month or bool(self.paid_months)
        return False


class BankCertificate(BaseModel):
    """
    A principal amount earning periodic interest.

    Payout dates are derived from start_date and the payout cycle;
    paid_payouts holds the ISO date keys already collected.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    bank_name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, description="Principal")
    interest_rate: Decimal = Field(..., ge=0, description="Annual rate in percent")
    start_date: date
    end_date: date
    payout_cycle: PayoutCycle = PayoutCycle.MONTHLY
    status: CertificateStatus = CertificateStatus.ACTIVE
    last_payout_date: Optional[datetime] = None
    pillar_id: str
    paid_payouts: list[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_dates(self) -> 'BankCertificate':
        if self.end_date < self.start_date:
            raise ValueError("Certificate end date cannot be before start date")
        _ensure_unique(self.paid_payouts, "paid_payouts")
        return self

    @property
    def is_redeemed(self) -> bool:
        return self.status == CertificateStatus.REDEEMED

    @property
    def payout_amount(self) -> Decimal:
        """Interest paid per cycle, rounded to cents."""
        annual = self.amount * self.interest_rate / Decimal(100)
        per_cycle = annual / Decimal(self.payout_cycle.payouts_per_year)
        return per_cycle.quantize(Decimal("0.01"))
