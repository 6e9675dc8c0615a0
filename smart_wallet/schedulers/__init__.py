"""Obligation schedulers package."""

from smart_wallet.schedulers.certificates import CertificateScheduler
from smart_wallet.schedulers.installments import InstallmentScheduler
from smart_wallet.schedulers.receivables import ReceivableScheduler

__all__ = [
    "CertificateScheduler",
    "InstallmentScheduler",
    "ReceivableScheduler",
]
