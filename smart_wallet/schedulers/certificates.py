"""
Certificate Scheduler

A bank certificate pays interest every cycle (1, 3, 6 or 12 months)
from one cycle after its start date until its end date. Each payout is
keyed by its ISO date.

Redemption closes the certificate early: status becomes REDEEMED, no
further payouts are possible, and the principal returns as INCOME.
Only deleting the redemption transaction reactivates the certificate.
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
from smart_wallet.models.obligations import BankCertificate, CertificateStatus, PayoutCycle
from smart_wallet.schedulers.base import ObligationScheduler
from smart_wallet.schedulers.periods import cycle_ladder, first_unpaid, period_label


class CertificateScheduler(ObligationScheduler[BankCertificate]):
    """Schedules interest payouts and redemption of bank certificates."""

    target = AuditTarget.CERTIFICATE

    def registry(self, state: AppState) -> list[BankCertificate]:
        return state.certificates

    def label(self, item: BankCertificate) -> str:
        return item.bank_name

    def add(
        self,
        state: AppState,
        bank_name: str,
        amount: Decimal,
        interest_rate: Decimal,
        start_date: date,
        end_date: date,
        pillar_id: str,
        payout_cycle: PayoutCycle = PayoutCycle.MONTHLY,
    ) -> BankCertificate:
        certificate = BankCertificate(
            bank_name=bank_name,
            amount=amount,
            interest_rate=interest_rate,
            start_date=start_date,
            end_date=end_date,
            payout_cycle=payout_cycle,
            status=CertificateStatus.ACTIVE,
            pillar_id=pillar_id,
        )
        return self._register(
            state, certificate, details=f"principal {amount} {self._ledger.currency}"
        )

    def period_ladder(self, certificate: BankCertificate) -> list[str]:
        """ISO date keys of every payout, first one cycle after start."""
        return cycle_ladder(
            certificate.start_date, certificate.end_date, certificate.payout_cycle.months
        )

    def next_unpaid_period(self, certificate: BankCertificate) -> Optional[str]:
        if certificate.is_redeemed:
            return None
        return first_unpaid(self.period_ladder(certificate), certificate.paid_payouts)

    def payout(
        self,
        state: AppState,
        certificate_id: str,
        amount: Optional[Decimal],
        period_key: str,
    ) -> Optional[Transaction]:
        """
        Collect one interest payout.

        amount defaults to the certificate's per-cycle interest.
        Returns the posted transaction, or None on a missing or redeemed
        certificate or an already collected payout.
        """
        certificate = self.get(state, certificate_id)
        if certificate is None:
            self._not_found(certificate_id)
            return None
        if certificate.is_redeemed:
            self._skip(certificate_id, "certificate already redeemed")
            return None
        if period_key in certificate.paid_payouts:
            self._skip(certificate_id, f"payout {period_key} already collected")
            return None

        if amount is None:
            amount = certificate.payout_amount

        now = datetime.now()
        certificate.paid_payouts.append(period_key)
        certificate.last_payout_date = now

        self._ledger.audit.append(
            state,
            AuditEntryBuilder.certificate_payout(
                certificate.bank_name, amount, self._ledger.currency
            ),
        )

        draft = TransactionDraft(
            amount=amount,
            type=TransactionType.INCOME,
            date=now,
            description=f"Certificate interest: {certificate.bank_name} ({period_label(period_key)})",
            pillar_id=certificate.pillar_id,
            is_auto=True,
            source_id=certificate.id,
            source_type=SourceType.CERTIFICATE,
            source_month=period_key,
            source_kind=SourceKind.PAYOUT,
        )
        transaction = self._ledger.commit_transaction(state, draft, silent=True)

        self._ledger.notify(
            "Interest collected", f"Interest from {certificate.bank_name} was added to the balance."
        )
        return transaction

    def redeem(
        self,
        state: AppState,
        certificate_id: str,
        redemption_amount: Decimal,
    ) -> Optional[Transaction]:
        """
        Close the certificate and post the redeemed principal as INCOME.

        The transaction carries no period key: redemption is a single
        terminal event.
        """
        certificate = self.get(state, certificate_id)
        if certificate is None:
            self._not_found(certificate_id)
            return None
        if certificate.is_redeemed:
            self._skip(certificate_id, "certificate already redeemed")
            return None

        certificate.status = CertificateStatus.REDEEMED

        self._ledger.audit.append(
            state,
            AuditEntryBuilder.certificate_redeemed(
                certificate.bank_name, redemption_amount, self._ledger.currency
            ),
        )

        draft = TransactionDraft(
            amount=redemption_amount,
            type=TransactionType.INCOME,
            date=datetime.now(),
            description=f"Certificate redemption: {certificate.bank_name}",
            pillar_id=certificate.pillar_id,
            is_auto=True,
            source_id=certificate.id,
            source_type=SourceType.CERTIFICATE,
            source_kind=SourceKind.REDEMPTION,
        )
        transaction = self._ledger.commit_transaction(state, draft, silent=True)

        self._ledger.notify(
            "Redeemed", f"{certificate.bank_name} was redeemed and added to the balance."
        )
        return transaction
