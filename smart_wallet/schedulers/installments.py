"""
Installment Scheduler

An installment is paid one monthly period at a time. Paying a period
marks its key, decrements the remaining count and posts an EXPENSE
transaction tagged with the installment and the period, so deleting that
transaction reopens exactly that period.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from smart_wallet.models.audit import AuditTarget
from smart_wallet.models.ledger import (
    AppState,
    SourceKind,
    SourceType,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from smart_wallet.models.obligations import Installment
from smart_wallet.schedulers.base import ObligationScheduler
from smart_wallet.schedulers.periods import first_unpaid, monthly_ladder, period_label


class InstallmentScheduler(ObligationScheduler[Installment]):
    """Schedules and settles monthly installment payments."""

    target = AuditTarget.INSTALLMENT

    def registry(self, state: AppState) -> list[Installment]:
        return state.installments

    def add(
        self,
        state: AppState,
        name: str,
        monthly_amount: Decimal,
        total_months: int,
        start_date: date,
        pillar_id: str,
        sub_category_id: Optional[str] = None,
        payment_day: int = 1,
    ) -> Installment:
        """Register a new installment with nothing paid yet."""
        installment = Installment(
            name=name,
            monthly_amount=monthly_amount,
            total_amount=monthly_amount * total_months,
            total_months=total_months,
            remaining_months=total_months,
            start_date=start_date,
            pillar_id=pillar_id,
            sub_category_id=sub_category_id,
            payment_day=payment_day,
        )
        return self._register(
            state, installment, details=f"monthly {monthly_amount} {self._ledger.currency}"
        )

    def period_ladder(self, installment: Installment) -> list[str]:
        """Every period key of the schedule, oldest first."""
        return monthly_ladder(installment.start_date, installment.total_months)

    def next_unpaid_period(self, installment: Installment) -> Optional[str]:
        """The period a payment should settle next, or None when complete."""
        if installment.is_completed:
            return None
        return first_unpaid(self.period_ladder(installment), installment.paid_months)

    def pay_period(
        self,
        state: AppState,
        installment_id: str,
        period_key: str,
    ) -> Optional[Transaction]:
        """
        Settle one period and post the matching EXPENSE.

        Returns the posted transaction, or None when the installment is
        missing, already complete or the period is already paid.
        """
        installment = self.get(state, installment_id)
        if installment is None:
            self._not_found(installment_id)
            return None
        if installment.remaining_months <= 0:
            self._skip(installment_id, "installment already completed")
            return None
        if period_key in installment.paid_months:
            self._skip(installment_id, f"period {period_key} already paid")
            return None

        now = datetime.now()
        installment.paid_months.append(period_key)
        installment.remaining_months = installment.total_months - len(installment.paid_months)
        installment.last_payment_date = now

        label = period_label(period_key)
        draft = TransactionDraft(
            amount=installment.monthly_amount,
            type=TransactionType.EXPENSE,
            date=now,
            description=f"Installment payment: {installment.name} ({label})",
            pillar_id=installment.pillar_id,
            sub_category_id=installment.sub_category_id,
            is_auto=True,
            source_id=installment.id,
            source_type=SourceType.INSTALLMENT,
            source_month=period_key,
            source_kind=SourceKind.PERIOD,
        )
        transaction = self._ledger.commit_transaction(state, draft, silent=True)

        self._ledger.notify("Paid", f"Installment {installment.name} for {label} was paid.")
        return transaction
