"""
Receivable Scheduler

Receivables come in three shapes:
- one-time: collected once, then done
- bounded recurring: a fixed number of monthly periods
- unbounded recurring: collected every month with no end; its ladder is
  generated on demand from the start month up to the current month

Collecting without an explicit period settles the current calendar month.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from smart_wallet.models.audit import AuditEntryBuilder, AuditTarget
from smart_wallet.models.ledger import (
    AppState,
    SourceKind,
    SourceType,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from smart_wallet.models.obligations import Receivable, ReceivableKind
from smart_wallet.schedulers.base import ObligationScheduler
from smart_wallet.schedulers.periods import (
    add_months,
    current_period_key,
    first_unpaid,
    monthly_ladder,
    open_monthly_ladder,
    period_label,
)


class ReceivableScheduler(ObligationScheduler[Receivable]):
    """Schedules and collects expected income."""

    target = AuditTarget.RECEIVABLE

    def registry(self, state: AppState) -> list[Receivable]:
        return state.receivables

    def add(
        self,
        state: AppState,
        name: str,
        amount: Decimal,
        pillar_id: str,
        start_date: date,
        due_day: int = 1,
        kind: ReceivableKind = ReceivableKind.OTHER,
        is_recurring: bool = True,
        total_months: Optional[int] = None,
    ) -> Receivable:
        """
        Register a receivable.

        total_months only bounds recurring receivables; the end date is
        the month of the last period.
        """
        bounded = is_recurring and total_months is not None
        receivable = Receivable(
            name=name,
            amount=amount,
            due_day=due_day,
            kind=kind,
            pillar_id=pillar_id,
            is_recurring=is_recurring,
            start_date=start_date,
            total_months=total_months if bounded else None,
            remaining_months=total_months if bounded else None,
            end_date=add_months(start_date, total_months - 1) if bounded else None,
        )
        return self._register(
            state, receivable, details=f"amount {amount} {self._ledger.currency}"
        )

    def period_ladder(self, receivable: Receivable, today: Optional[date] = None) -> list[str]:
        """
        Period keys a receivable can be collected for.

        One-time receivables have no ladder.
        """
        if not receivable.is_recurring:
            return []
        if receivable.is_bounded:
            return monthly_ladder(receivable.start_date, receivable.total_months)
        return open_monthly_ladder(receivable.start_date, today)

    def next_unpaid_period(self, receivable: Receivable, today: Optional[date] = None) -> Optional[str]:
        """The period the next collection settles, or None if nothing is due."""
        if receivable.is_completed:
            return None
        if not receivable.is_recurring:
            return current_period_key(today)
        return first_unpaid(self.period_ladder(receivable, today), receivable.paid_months)

    def collect(
        self,
        state: AppState,
        receivable_id: str,
        period_key: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Optional[Transaction]:
        """
        Collect one period and post the matching INCOME.

        Returns the posted transaction, or None when the receivable is
        missing, already settled, or the period was already collected.
        """
        receivable = self.get(state, receivable_id)
        if receivable is None:
            self._not_found(receivable_id)
            return None

        current_key = current_period_key(today)
        effective_key = period_key or current_key

        if receivable.is_completed:
            self._skip(receivable_id, "receivable already settled")
            return None
        if effective_key in receivable.paid_months:
            self._skip(receivable_id, f"period {effective_key} already collected")
            return None

        receivable.paid_months.append(effective_key)
        if receivable.remaining_months is not None:
            receivable.remaining_months -= 1
        if receivable.is_recurring:
            receivable.is_collected_this_month = current_key in receivable.paid_months
        else:
            receivable.is_collected_this_month = True

        self._ledger.audit.append(
            state,
            AuditEntryBuilder.receivable_collected(
                receivable.name, receivable.amount, effective_key, self._ledger.currency
            ),
        )

        suffix = f" ({period_label(period_key)})" if period_key else ""
        draft = TransactionDraft(
            amount=receivable.amount,
            type=TransactionType.INCOME,
            date=datetime.now(),
            description=f"Collection: {receivable.name}{suffix}",
            pillar_id=receivable.pillar_id,
            is_auto=True,
            source_id=receivable.id,
            source_type=SourceType.RECEIVABLE,
            source_month=effective_key,
            source_kind=SourceKind.PERIOD,
        )
        transaction = self._ledger.commit_transaction(state, draft, silent=True)

        self._ledger.notify("Collected", f"{receivable.name}{suffix} was added to the balance.")
        return transaction
