"""
Ledger Engine

The single authority for changing the cash balance, and it only ever
does so together with the transaction list:

    commit  -> prepend transaction, apply its signed amount
    update  -> replace transaction, apply (new - old) signed amount
    delete  -> remove transaction, undo its signed amount, reopen the
               obligation period it settled

Deleting is the system's only rollback. Updating deliberately does NOT
touch the source obligation: editing an amount or description neither
reopens nor re-closes a period.

Missing ids are silent no-ops. Callers are expected to offer only valid
actions; a stale id is not an error worth raising.
"""

from decimal import Decimal
from typing import Callable, Optional

import structlog

from smart_wallet.audit import AuditRecorder
from smart_wallet.models.audit import AuditEntryBuilder
from smart_wallet.models.ledger import (
    AppState,
    SourceKind,
    SourceType,
    Transaction,
    TransactionDraft,
    find_by_id,
    remove_by_id,
    replace_by_id,
)
from smart_wallet.models.notification import Notification, NotificationLevel
from smart_wallet.models.obligations import CertificateStatus


NotificationSink = Callable[[Notification], None]


class LedgerEngine:
    """
    Applies and reverses transaction effects on a wallet state.

    The state is always passed in explicitly; the engine keeps nothing
    between calls except its collaborators.
    """

    def __init__(
        self,
        audit: Optional[AuditRecorder] = None,
        notification_sink: Optional[NotificationSink] = None,
        currency: str = "EGP",
    ):
        self._audit = audit or AuditRecorder()
        self._notification_sink = notification_sink
        self._currency = currency
        self._logger = structlog.get_logger()

        # One reversal handler per obligation variant
        self._reopen_handlers: dict[SourceType, Callable[[AppState, Transaction], bool]] = {
            SourceType.RECEIVABLE: self._reopen_receivable,
            SourceType.INSTALLMENT: self._reopen_installment,
            SourceType.CERTIFICATE: self._reopen_certificate,
        }

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    @property
    def currency(self) -> str:
        return self._currency

    def notify(
        self,
        title: str,
        message: str,
        level: NotificationLevel = NotificationLevel.SUCCESS,
    ) -> None:
        """Hand a notification to the sink, if one is plugged in."""
        if self._notification_sink is None:
            return
        try:
            self._notification_sink(Notification(title=title, message=message, level=level))
        except Exception as e:
            self._logger.warning("notification_failed", error=str(e), title=title)

    # -------------------------------------------------------------------------
    # Commit / update / delete
    # -------------------------------------------------------------------------

    def commit_transaction(
        self,
        state: AppState,
        draft: TransactionDraft,
        silent: bool = False,
    ) -> Transaction:
        """
        Record a new transaction and apply it to the balance.

        `silent` only suppresses the notification. The audit entry is
        always written, so auto-generated transactions stay traceable.
        """
        transaction = Transaction.from_draft(draft)

        state.transactions.insert(0, transaction)
        state.cash_balance += transaction.signed_amount

        self._audit.append(
            state,
            AuditEntryBuilder.transaction_added(
                transaction.description, transaction.amount, self._currency
            ),
        )
        self._logger.debug(
            "transaction_committed",
            transaction_id=transaction.id,
            type=transaction.type.value,
            amount=str(transaction.amount),
            source_type=transaction.source_type.value if transaction.source_type else None,
        )

        if not silent:
            self.notify("Recorded", f"{transaction.description} was added.")
        return transaction

    def update_transaction(
        self,
        state: AppState,
        transaction: Transaction,
    ) -> Optional[Transaction]:
        """
        Replace a transaction by id and re-apply its balance effect.

        Returns the stored transaction, or None if the id is unknown.
        """
        old = find_by_id(state.transactions, transaction.id)
        if old is None:
            self._logger.debug("transaction_not_found", transaction_id=transaction.id)
            return None

        state.cash_balance += transaction.signed_amount - old.signed_amount
        replace_by_id(state.transactions, transaction)

        self._audit.append(
            state,
            AuditEntryBuilder.transaction_updated(
                transaction.description, old.amount, transaction.amount
            ),
        )
        self.notify(
            "Updated",
            "The transaction and the balance were updated.",
            NotificationLevel.INFO,
        )
        return transaction

    def delete_transaction(self, state: AppState, transaction_id: str) -> Optional[Transaction]:
        """
        Remove a transaction, undo its balance effect and reopen the
        obligation period it settled.

        Returns the removed transaction, or None if the id is unknown.
        """
        transaction = remove_by_id(state.transactions, transaction_id)
        if transaction is None:
            self._logger.debug("transaction_not_found", transaction_id=transaction_id)
            return None

        state.cash_balance -= transaction.signed_amount

        if transaction.source_type is not None and transaction.source_id:
            handler = self._reopen_handlers[transaction.source_type]
            if not handler(state, transaction):
                self._logger.debug(
                    "obligation_not_found",
                    source_type=transaction.source_type.value,
                    source_id=transaction.source_id,
                )

        self._audit.append(state, AuditEntryBuilder.transaction_deleted(transaction.description))
        self.notify(
            "Transaction deleted",
            "The transaction was rolled back and linked records were corrected.",
            NotificationLevel.WARNING,
        )
        return transaction

    # -------------------------------------------------------------------------
    # Reversal handlers
    # -------------------------------------------------------------------------

    def _reopen_receivable(self, state: AppState, transaction: Transaction) -> bool:
        receivable = find_by_id(state.receivables, transaction.source_id)
        if receivable is None:
            return False

        if transaction.source_month in receivable.paid_months:
            receivable.paid_months.remove(transaction.source_month)
            if receivable.remaining_months is not None:
                receivable.remaining_months += 1
        receivable.is_collected_this_month = False
        return True

    def _reopen_installment(self, state: AppState, transaction: Transaction) -> bool:
        installment = find_by_id(state.installments, transaction.source_id)
        if installment is None:
            return False

        if transaction.source_month in installment.paid_months:
            installment.paid_months.remove(transaction.source_month)
            installment.remaining_months = installment.total_months - len(installment.paid_months)
        return True

    def _reopen_certificate(self, state: AppState, transaction: Transaction) -> bool:
        certificate = find_by_id(state.certificates, transaction.source_id)
        if certificate is None:
            return False

        kind = transaction.source_kind
        if kind is None:
            # Older snapshots carry no kind: payouts always have a period key
            kind = SourceKind.PAYOUT if transaction.source_month else SourceKind.REDEMPTION

        if kind == SourceKind.PAYOUT:
            if transaction.source_month in certificate.paid_payouts:
                certificate.paid_payouts.remove(transaction.source_month)
        elif kind == SourceKind.REDEMPTION:
            certificate.status = CertificateStatus.ACTIVE
        return True

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def rebuild_balance(self, state: AppState) -> Decimal:
        """Recompute the cash balance from the transaction history."""
        state.cash_balance = state.ledger_balance()
        return state.cash_balance

    def detach_sub_category(self, state: AppState, sub_category_id: str) -> int:
        """
        Clear a deleted sub-category from transactions that reference it.

        Returns the number of transactions touched.
        """
        touched = 0
        for transaction in state.transactions:
            if transaction.sub_category_id == sub_category_id:
                transaction.sub_category_id = None
                touched += 1
        return touched
