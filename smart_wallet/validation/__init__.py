"""Draft validation package."""

from smart_wallet.validation.validator import TransactionDraftValidator

__all__ = ["TransactionDraftValidator"]
