"""AI Agents package."""

from smart_wallet.agents.ai_agents import (
    FinancialAdviceAgent,
    SmsParsingAgent,
    TransactionSuggestion,
    guess_amount,
    guess_type,
)

__all__ = [
    "FinancialAdviceAgent",
    "SmsParsingAgent",
    "TransactionSuggestion",
    "guess_amount",
    "guess_type",
]
