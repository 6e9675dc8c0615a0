"""Shared fixtures for Smart Wallet tests."""

from datetime import datetime
from decimal import Decimal

import pytest

from smart_wallet.audit import AuditRecorder
from smart_wallet.ledger import LedgerEngine
from smart_wallet.models import Notification, TransactionDraft, TransactionType
from smart_wallet.models.defaults import default_state


@pytest.fixture
def state():
    """A fresh wallet with the default taxonomy and zero balance."""
    return default_state()


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def ledger(notifications):
    """Ledger engine whose notifications are collected into a list."""
    def sink(notification: Notification) -> None:
        notifications.append(notification)

    return LedgerEngine(audit=AuditRecorder(), notification_sink=sink)


def make_draft(
    amount: str,
    type: TransactionType = TransactionType.EXPENSE,
    description: str = "Groceries",
    pillar_id: str = "2",
    **kwargs,
) -> TransactionDraft:
    """Build a draft with sensible defaults for tests."""
    return TransactionDraft(
        amount=Decimal(amount),
        type=type,
        description=description,
        pillar_id=pillar_id,
        date=kwargs.pop("date", datetime(2024, 3, 10, 12, 0)),
        **kwargs,
    )


@pytest.fixture
def draft():
    """Factory fixture: draft(amount, type=..., description=..., pillar_id=...)."""
    return make_draft
