"""
Dashboard Queries

Read-only views derived from the wallet state. Nothing here mutates
state or talks to the advisory model; the numbers shown to the user
(and the summary handed to the advice agent) come only from here.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from smart_wallet.models.ledger import AppState, TransactionType
from smart_wallet.models.obligations import CertificateStatus, ReceivableKind
from smart_wallet.schedulers.periods import current_period_key, period_key


class FlowDirection(str, Enum):
    IN = "IN"
    OUT = "OUT"


class UpcomingObligation(BaseModel):
    """An installment to pay or a receivable to collect this month."""

    id: str
    source_id: str
    name: str
    amount: Decimal
    direction: FlowDirection
    day: int
    is_late: bool
    is_today: bool
    category: str
    paid_count: Optional[int] = None
    total_count: Optional[int] = None


class CashFlowSummary(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    transaction_count: int = 0

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class PillarBudgetStatus(BaseModel):
    pillar_id: str
    pillar_name: str
    budget: Decimal
    spent: Decimal
    remaining: Decimal
    usage_ratio: Optional[float] = Field(
        default=None,
        description="spent / budget; None when the pillar has no budget"
    )

    @property
    def is_over_budget(self) -> bool:
        return self.budget > 0 and self.spent > self.budget


def total_wealth(state: AppState) -> Decimal:
    """Cash, plus metal holdings at their last price, plus active certificate principal."""
    metal_value = sum((m.value for m in state.metals), Decimal("0"))
    certificate_value = sum(
        (c.amount for c in state.certificates if c.status == CertificateStatus.ACTIVE),
        Decimal("0"),
    )
    return state.cash_balance + metal_value + certificate_value


def _in_window(moment: datetime, start: Optional[date], end: Optional[date]) -> bool:
    day = moment.date()
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def cash_flow_summary(
    state: AppState,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> CashFlowSummary:
    """Income and expense totals, optionally within an inclusive date window."""
    summary = CashFlowSummary()
    for t in state.transactions:
        if not _in_window(t.date, start, end):
            continue
        if t.type == TransactionType.INCOME:
            summary.income += t.amount
        else:
            summary.expense += t.amount
        summary.transaction_count += 1
    return summary


def expenses_by_pillar(
    state: AppState,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> dict[str, Decimal]:
    """
    Expense total per pillar id, every pillar present (zero if unused).

    Expenses filed under a pillar that no longer exists keep their own key.
    """
    totals = {p.id: Decimal("0") for p in state.pillars}
    for t in state.transactions:
        if t.type != TransactionType.EXPENSE or not _in_window(t.date, start, end):
            continue
        totals[t.pillar_id] = totals.get(t.pillar_id, Decimal("0")) + t.amount
    return totals


def budget_status(state: AppState, month: Optional[str] = None) -> list[PillarBudgetStatus]:
    """Spent against budget for every pillar in a "YYYY-MM" month (default: current)."""
    month = month or current_period_key()
    spent = {p.id: Decimal("0") for p in state.pillars}
    for t in state.transactions:
        if t.type == TransactionType.EXPENSE and period_key(t.date.date()) == month and t.pillar_id in spent:
            spent[t.pillar_id] += t.amount

    statuses = []
    for pillar in state.pillars:
        used = spent[pillar.id]
        statuses.append(PillarBudgetStatus(
            pillar_id=pillar.id,
            pillar_name=pillar.name,
            budget=pillar.budget,
            spent=used,
            remaining=pillar.budget - used,
            usage_ratio=float(used / pillar.budget) if pillar.budget > 0 else None,
        ))
    return statuses


def upcoming_obligations(
    state: AppState,
    today: Optional[date] = None,
    horizon_days: int = 7,
) -> list[UpcomingObligation]:
    """
    Installments and receivables still open this month and due within the
    horizon (or already late). Late items come first, then by day.
    """
    today = today or date.today()
    month = current_period_key(today)
    events = []

    for i in state.installments:
        if i.is_completed or period_key(i.start_date) > month:
            continue
        paid_this_month = month in i.paid_months or (
            i.last_payment_date is not None
            and period_key(i.last_payment_date.date()) == month
        )
        if paid_this_month:
            continue
        diff = i.payment_day - today.day
        if diff <= horizon_days:
            events.append(UpcomingObligation(
                id=f"inst-{i.id}",
                source_id=i.id,
                name=i.name,
                amount=i.monthly_amount,
                direction=FlowDirection.OUT,
                day=i.payment_day,
                is_late=diff < 0,
                is_today=diff == 0,
                category="Installment",
                paid_count=i.total_months - i.remaining_months,
                total_count=i.total_months,
            ))

    for r in state.receivables:
        if r.is_completed or r.is_collected_this_month or month in r.paid_months:
            continue
        if period_key(r.start_date) > month:
            continue
        diff = r.due_day - today.day
        if diff <= horizon_days:
            paid_count = None
            if r.total_months is not None and r.remaining_months is not None:
                paid_count = r.total_months - r.remaining_months
            events.append(UpcomingObligation(
                id=f"rec-{r.id}",
                source_id=r.id,
                name=r.name,
                amount=r.amount,
                direction=FlowDirection.IN,
                day=r.due_day,
                is_late=diff < 0,
                is_today=diff == 0,
                category="Rent" if r.kind == ReceivableKind.RENT else "Receivable",
                paid_count=paid_count,
                total_count=r.total_months,
            ))

    events.sort(key=lambda e: (not e.is_late, e.day))
    return events


def imminent_outflow(events: list[UpcomingObligation]) -> Decimal:
    """Total of outgoing amounts among upcoming obligations."""
    return sum((e.amount for e in events if e.direction == FlowDirection.OUT), Decimal("0"))


def advice_summary(state: AppState) -> str:
    """The short, numbers-only summary handed to the advice agent."""
    return f"Cash: {state.cash_balance}, Wealth: {total_wealth(state)}"
