"""Ledger package."""

from smart_wallet.ledger.engine import LedgerEngine, NotificationSink

__all__ = ["LedgerEngine", "NotificationSink"]
