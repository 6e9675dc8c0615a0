"""
Main Orchestrator for Smart Wallet

This module ties together all the components and defines the action
surface a presentation layer calls:
1. Ledger actions (add / update / delete transactions)
2. Obligation actions (installments, receivables, certificates)
3. Category, asset and settings maintenance
4. Data actions (reset, import, export)
5. Advisory flow (SMS -> suggestion -> validate -> confirm)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing suggested by the advisory model is committed without an
  explicit confirm_suggestion() call
- Every mutation is audited
- Every successful mutation is followed by a (debounced) snapshot write

Missing ids and unmet preconditions are silent no-ops: the action
returns None and nothing is written.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import BaseModel

from smart_wallet.agents import FinancialAdviceAgent, SmsParsingAgent, TransactionSuggestion
from smart_wallet.audit import AuditRecorder
from smart_wallet.config import get_settings
from smart_wallet.ledger import LedgerEngine, NotificationSink
from smart_wallet.models.audit import AuditEntry, AuditEntryBuilder, AuditTarget
from smart_wallet.models.defaults import (
    default_investment_settings,
    default_pillars,
    default_state,
    default_sub_categories,
)
from smart_wallet.models.ledger import (
    AppState,
    InvestmentSettings,
    LifePillar,
    MetalId,
    PreciousMetal,
    SubCategory,
    Transaction,
    TransactionDraft,
    find_by_id,
    remove_by_id,
)
from smart_wallet.models.notification import NotificationLevel
from smart_wallet.models.obligations import (
    BankCertificate,
    Installment,
    PayoutCycle,
    Receivable,
    ReceivableKind,
)
from smart_wallet.models.validation import ValidationResult
from smart_wallet.queries import UpcomingObligation, advice_summary, upcoming_obligations
from smart_wallet.schedulers import (
    CertificateScheduler,
    InstallmentScheduler,
    ReceivableScheduler,
)
from smart_wallet.services.storage import (
    DebouncedSnapshotWriter,
    InMemorySnapshotStorage,
    JsonFileSnapshotStorage,
    PersistenceGateway,
    SnapshotStorageInterface,
)
from smart_wallet.validation import TransactionDraftValidator


ChangeListener = Callable[[AppState], None]


class ResetOptions(BaseModel):
    """Which parts of the wallet a selective reset clears."""

    transactions: bool = False
    installments: bool = False
    receivables: bool = False
    certificates: bool = False
    metals: bool = False
    settings: bool = False

    def selected(self) -> list[str]:
        return [name for name, chosen in self.model_dump().items() if chosen]


class WalletService:
    """
    Owns the wallet state and exposes every user action on it.

    The state is replaced wholesale only by load() and import_snapshot();
    every other action mutates it in place through the ledger engine or
    a scheduler.
    """

    def __init__(
        self,
        state: Optional[AppState] = None,
        ledger: Optional[LedgerEngine] = None,
        gateway: Optional[PersistenceGateway] = None,
        writer: Optional[DebouncedSnapshotWriter] = None,
        validator: Optional[TransactionDraftValidator] = None,
        sms_agent: Optional[SmsParsingAgent] = None,
        advice_agent: Optional[FinancialAdviceAgent] = None,
        change_listener: Optional[ChangeListener] = None,
        upcoming_horizon_days: int = 7,
    ):
        self._state = state if state is not None else default_state()
        self._ledger = ledger or LedgerEngine()
        self._gateway = gateway
        self._writer = writer
        if self._writer is None and gateway is not None:
            self._writer = DebouncedSnapshotWriter(gateway)
        self._validator = validator or TransactionDraftValidator()
        self._sms_agent = sms_agent
        self._advice_agent = advice_agent
        self._change_listener = change_listener
        self._horizon_days = upcoming_horizon_days
        self._logger = structlog.get_logger()

        self.installments = InstallmentScheduler(self._ledger)
        self.receivables = ReceivableScheduler(self._ledger)
        self.certificates = CertificateScheduler(self._ledger)

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def ledger(self) -> LedgerEngine:
        return self._ledger

    @property
    def gateway(self) -> Optional[PersistenceGateway]:
        return self._gateway

    @property
    def writer(self) -> Optional[DebouncedSnapshotWriter]:
        return self._writer

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def load(self) -> AppState:
        """Replace the in-memory state with the stored snapshot (or defaults)."""
        if self._gateway is not None:
            self._state = await self._gateway.load_state()
        return self._state

    async def flush(self) -> bool:
        """Write the snapshot now, dropping any pending debounced write."""
        if self._writer is None:
            return False
        return await self._writer.flush(self._state)

    def _changed(self, result: Any) -> Any:
        """Notify the listener and schedule a write after a successful mutation."""
        if result is None:
            return None
        if self._change_listener is not None:
            try:
                self._change_listener(self._state)
            except Exception as e:
                self._logger.warning("change_listener_failed", error=str(e))
        if self._writer is not None:
            self._writer.schedule(self._state)
        return result

    def _record(self, entry: AuditEntry) -> None:
        self._ledger.audit.append(self._state, entry)

    # -------------------------------------------------------------------------
    # Ledger actions
    # -------------------------------------------------------------------------

    def add_transaction(self, draft: TransactionDraft) -> Transaction:
        return self._changed(self._ledger.commit_transaction(self._state, draft))

    def update_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        return self._changed(self._ledger.update_transaction(self._state, transaction))

    def delete_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._changed(self._ledger.delete_transaction(self._state, transaction_id))

    # -------------------------------------------------------------------------
    # Installments
    # -------------------------------------------------------------------------

    def add_installment(
        self,
        name: str,
        monthly_amount: Decimal,
        total_months: int,
        start_date: date,
        pillar_id: str,
        sub_category_id: Optional[str] = None,
        payment_day: int = 1,
    ) -> Installment:
        return self._changed(self.installments.add(
            self._state, name, monthly_amount, total_months, start_date,
            pillar_id, sub_category_id=sub_category_id, payment_day=payment_day,
        ))

    def update_installment(self, installment: Installment) -> Optional[Installment]:
        return self._changed(self.installments.update(self._state, installment))

    def delete_installment(self, installment_id: str) -> Optional[Installment]:
        return self._changed(self.installments.delete(self._state, installment_id))

    def pay_installment(self, installment_id: str, period_key: str) -> Optional[Transaction]:
        return self._changed(self.installments.pay_period(self._state, installment_id, period_key))

    # -------------------------------------------------------------------------
    # Receivables
    # -------------------------------------------------------------------------

    def add_receivable(
        self,
        name: str,
        amount: Decimal,
        pillar_id: str,
        start_date: date,
        due_day: int = 1,
        kind: ReceivableKind = ReceivableKind.OTHER,
        is_recurring: bool = True,
        total_months: Optional[int] = None,
    ) -> Receivable:
        return self._changed(self.receivables.add(
            self._state, name, amount, pillar_id, start_date,
            due_day=due_day, kind=kind, is_recurring=is_recurring, total_months=total_months,
        ))

    def update_receivable(self, receivable: Receivable) -> Optional[Receivable]:
        return self._changed(self.receivables.update(self._state, receivable))

    def delete_receivable(self, receivable_id: str) -> Optional[Receivable]:
        return self._changed(self.receivables.delete(self._state, receivable_id))

    def collect_receivable(
        self,
        receivable_id: str,
        period_key: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Optional[Transaction]:
        return self._changed(
            self.receivables.collect(self._state, receivable_id, period_key, today=today)
        )

    # -------------------------------------------------------------------------
    # Certificates
    # -------------------------------------------------------------------------

    def add_certificate(
        self,
        bank_name: str,
        amount: Decimal,
        interest_rate: Decimal,
        start_date: date,
        end_date: date,
        pillar_id: str,
        payout_cycle: PayoutCycle = PayoutCycle.MONTHLY,
    ) -> BankCertificate:
        return self._changed(self.certificates.add(
            self._state, bank_name, amount, interest_rate, start_date, end_date,
            pillar_id, payout_cycle=payout_cycle,
        ))

    def update_certificate(self, certificate: BankCertificate) -> Optional[BankCertificate]:
        return self._changed(self.certificates.update(self._state, certificate))

    def delete_certificate(self, certificate_id: str) -> Optional[BankCertificate]:
        return self._changed(self.certificates.delete(self._state, certificate_id))

    def payout_certificate(
        self,
        certificate_id: str,
        period_key: str,
        amount: Optional[Decimal] = None,
    ) -> Optional[Transaction]:
        return self._changed(
            self.certificates.payout(self._state, certificate_id, amount, period_key)
        )

    def redeem_certificate(self, certificate_id: str, amount: Decimal) -> Optional[Transaction]:
        return self._changed(self.certificates.redeem(self._state, certificate_id, amount))

    # -------------------------------------------------------------------------
    # Categories, assets and settings
    # -------------------------------------------------------------------------

    def update_pillar_budget(self, pillar_id: str, budget: Decimal) -> Optional[LifePillar]:
        pillar = find_by_id(self._state.pillars, pillar_id)
        if pillar is None:
            self._logger.debug("pillar_not_found", pillar_id=pillar_id)
            return None
        if budget < 0:
            self._logger.debug("precondition_not_met", pillar_id=pillar_id, reason="negative budget")
            return None

        pillar.budget = budget
        self._record(AuditEntryBuilder.record_updated(
            AuditTarget.BUDGET, pillar.name, f"budget {budget} {self._ledger.currency}"
        ))
        self._ledger.notify("Budget updated", f"Budget for {pillar.name} was saved.", NotificationLevel.INFO)
        return self._changed(pillar)

    def add_sub_category(self, pillar_id: str, name: str) -> Optional[SubCategory]:
        if find_by_id(self._state.pillars, pillar_id) is None:
            self._logger.debug("pillar_not_found", pillar_id=pillar_id)
            return None

        sub = SubCategory(pillar_id=pillar_id, name=name)
        self._state.sub_categories.append(sub)
        self._record(AuditEntryBuilder.record_added(AuditTarget.SUB_CATEGORY, sub.name))
        return self._changed(sub)

    def rename_sub_category(self, sub_category_id: str, name: str) -> Optional[SubCategory]:
        sub = find_by_id(self._state.sub_categories, sub_category_id)
        if sub is None:
            self._logger.debug("sub_category_not_found", sub_category_id=sub_category_id)
            return None

        old_name = sub.name
        renamed = SubCategory(id=sub.id, pillar_id=sub.pillar_id, name=name)
        self._state.sub_categories[self._state.sub_categories.index(sub)] = renamed
        self._record(AuditEntryBuilder.record_updated(
            AuditTarget.SUB_CATEGORY, renamed.name, f"renamed from {old_name}"
        ))
        return self._changed(renamed)

    def delete_sub_category(self, sub_category_id: str) -> Optional[SubCategory]:
        """Remove a sub-category and clear it from the transactions that used it."""
        sub = remove_by_id(self._state.sub_categories, sub_category_id)
        if sub is None:
            self._logger.debug("sub_category_not_found", sub_category_id=sub_category_id)
            return None

        touched = self._ledger.detach_sub_category(self._state, sub_category_id)
        self._record(AuditEntryBuilder.record_deleted(
            AuditTarget.SUB_CATEGORY, sub.name, f"detached from {touched} transactions"
        ))
        return self._changed(sub)

    def update_metal(
        self,
        metal_id: Union[MetalId, str],
        weight: Optional[Decimal] = None,
        price_per_gram: Optional[Decimal] = None,
        karat: Optional[int] = None,
    ) -> Optional[PreciousMetal]:
        """Change the held weight, the unit price or the karat of a metal."""
        metal = find_by_id(self._state.metals, metal_id)
        if metal is None:
            self._logger.debug("metal_not_found", metal_id=str(metal_id))
            return None

        changes: dict[str, Any] = {}
        if weight is not None:
            changes["weight"] = weight
        if price_per_gram is not None:
            changes["current_price_per_gram"] = price_per_gram
        if karat is not None:
            changes["karat"] = karat
        updated = PreciousMetal.model_validate({**metal.model_dump(), **changes})

        self._state.metals[self._state.metals.index(metal)] = updated
        self._record(AuditEntryBuilder.record_updated(
            AuditTarget.METAL, updated.name,
            f"weight {updated.weight} g at {updated.current_price_per_gram} {self._ledger.currency}/g",
        ))
        return self._changed(updated)

    def update_investment_settings(self, settings: InvestmentSettings) -> InvestmentSettings:
        self._state.investment_settings = settings
        self._record(AuditEntryBuilder.record_updated(
            AuditTarget.SETTINGS, "investment settings",
            f"threshold {settings.threshold_percentage}% after {settings.min_days} days",
        ))
        return self._changed(settings)

    # -------------------------------------------------------------------------
    # Data actions
    # -------------------------------------------------------------------------

    def reset_selected(self, options: ResetOptions) -> AuditEntry:
        """
        Clear the selected parts of the wallet.

        The audit log is always replaced by a single RESET entry, whatever
        was selected.
        """
        state = self._state
        if options.transactions:
            state.transactions = []
            state.cash_balance = Decimal("0")
        if options.installments:
            state.installments = []
        if options.receivables:
            state.receivables = []
        if options.certificates:
            state.certificates = []
        if options.metals:
            for metal in state.metals:
                metal.weight = Decimal("0")
        if options.settings:
            state.investment_settings = default_investment_settings()
            state.pillars = default_pillars()
            state.sub_categories = default_sub_categories()

        cleared = options.selected()
        entry = self._ledger.audit.replace_with(state, AuditEntryBuilder.data_reset(cleared))
        self._logger.info("wallet_reset", cleared=cleared)
        self._ledger.notify("Reset", "The selected data was cleared.", NotificationLevel.WARNING)
        return self._changed(entry)

    def import_snapshot(self, raw: Union[str, bytes]) -> AppState:
        """
        Replace the whole wallet with an imported snapshot.

        Raises:
            InvalidImportFormatError: the document is not a wallet snapshot;
                the current state is left untouched
            RuntimeError: no persistence gateway is configured
        """
        gateway = self._require_gateway()
        imported = gateway.parse_import(raw)

        if not imported.is_consistent():
            self._logger.warning(
                "balance_mismatch",
                cash_balance=str(imported.cash_balance),
                ledger_balance=str(imported.ledger_balance()),
            )

        self._state = imported
        self._record(AuditEntryBuilder.data_imported())
        self._logger.info(
            "snapshot_imported",
            transactions=len(imported.transactions),
            cash_balance=str(imported.cash_balance),
        )
        self._ledger.notify("Restored", "Data was loaded successfully.")
        return self._changed(imported)

    def rebuild_balance(self) -> Optional[Decimal]:
        """
        Reset the cash balance to the sum of the transaction history.

        No-op (None) when the two already agree.
        """
        state = self._state
        if state.is_consistent():
            return None
        old_balance = state.cash_balance
        balance = self._ledger.rebuild_balance(state)
        self._record(AuditEntryBuilder.record_updated(
            AuditTarget.SYSTEM, "cash balance", f"{old_balance} -> {balance}"
        ))
        self._logger.info("balance_rebuilt", old_balance=str(old_balance), balance=str(balance))
        return self._changed(balance)

    def export_snapshot(self) -> str:
        return self._require_gateway().export_snapshot(self._state)

    def export_filename(self, today: Optional[date] = None) -> str:
        return self._require_gateway().export_filename(today)

    def _require_gateway(self) -> PersistenceGateway:
        if self._gateway is None:
            raise RuntimeError("No persistence gateway configured")
        return self._gateway

    # -------------------------------------------------------------------------
    # Advisory flow
    # -------------------------------------------------------------------------

    async def parse_sms(self, text: str) -> TransactionSuggestion:
        """Suggest a transaction from a bank SMS. Nothing is committed."""
        if self._sms_agent is None:
            self._sms_agent = SmsParsingAgent()
        return await self._sms_agent.parse_bank_sms(text, self._state.pillars)

    async def get_advice(self) -> str:
        if self._advice_agent is None:
            self._advice_agent = FinancialAdviceAgent()
        return await self._advice_agent.get_advice(advice_summary(self._state))

    def validate_suggestion(self, draft: TransactionDraft) -> ValidationResult:
        return self._validator.validate(draft, self._state)

    def confirm_suggestion(self, draft: TransactionDraft) -> Optional[Transaction]:
        """
        The explicit confirmation step for a suggested draft.

        Drafts with error-level validation issues are not committed.
        """
        result = self.validate_suggestion(draft)
        if result.has_errors:
            self._logger.debug(
                "suggestion_rejected",
                errors=[issue.message for issue in result.issues if issue.severity == "error"],
            )
            return None
        return self.add_transaction(draft)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def upcoming(self, today: Optional[date] = None) -> list[UpcomingObligation]:
        return upcoming_obligations(self._state, today, self._horizon_days)


def create_app_components(
    use_storage: bool = True,
    storage: Optional[SnapshotStorageInterface] = None,
    notification_sink: Optional[NotificationSink] = None,
    change_listener: Optional[ChangeListener] = None,
) -> WalletService:
    """
    Factory function to create a fully wired wallet service.

    Args:
        use_storage: Whether to persist to the configured snapshot file.
                    Set to False for an in-memory wallet.
        storage: Explicit storage backend, overriding use_storage.

    The returned service holds the default state; await load() to read
    the stored snapshot.
    """
    settings = get_settings()
    app_settings = settings.app
    storage_settings = settings.storage

    if storage is None:
        storage = JsonFileSnapshotStorage(storage_settings.snapshot_path) if use_storage else InMemorySnapshotStorage()

    gateway = PersistenceGateway(storage, backup_prefix=storage_settings.backup_prefix)
    writer = DebouncedSnapshotWriter(gateway, delay_seconds=storage_settings.debounce_seconds)
    ledger = LedgerEngine(
        audit=AuditRecorder(limit=app_settings.audit_log_limit),
        notification_sink=notification_sink,
        currency=app_settings.currency_label,
    )

    return WalletService(
        ledger=ledger,
        gateway=gateway,
        writer=writer,
        change_listener=change_listener,
        upcoming_horizon_days=app_settings.upcoming_horizon_days,
    )
