"""Dashboard query package."""

from smart_wallet.queries.dashboard import (
    CashFlowSummary,
    FlowDirection,
    PillarBudgetStatus,
    UpcomingObligation,
    advice_summary,
    budget_status,
    cash_flow_summary,
    expenses_by_pillar,
    imminent_outflow,
    total_wealth,
    upcoming_obligations,
)

__all__ = [
    "CashFlowSummary",
    "FlowDirection",
    "PillarBudgetStatus",
    "UpcomingObligation",
    "advice_summary",
    "budget_status",
    "cash_flow_summary",
    "expenses_by_pillar",
    "imminent_outflow",
    "total_wealth",
    "upcoming_obligations",
]
