"""Integration tests for the wallet service action surface."""

import asyncio
import json
import pytest
import time
from datetime import date
from decimal import Decimal

from smart_wallet.agents import SmsParsingAgent, FinancialAdviceAgent
from smart_wallet.config import get_settings
from smart_wallet.models import (
    AuditAction,
    CertificateStatus,
    InvestmentSettings,
    MetalId,
    TransactionType,
)
from smart_wallet.orchestrator import ResetOptions, WalletService, create_app_components
from smart_wallet.services.storage import (
    DebouncedSnapshotWriter,
    InMemorySnapshotStorage,
    InvalidImportFormatError,
    PersistenceGateway,
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, text):
        self._text = text

    async def generate_content_async(self, prompt):
        return FakeResponse(self._text)


@pytest.fixture
def storage():
    return InMemorySnapshotStorage()


@pytest.fixture
def service(ledger, storage):
    """Wallet service persisting to memory; pending writes are dropped on teardown."""
    service = WalletService(ledger=ledger, gateway=PersistenceGateway(storage))
    yield service
    service.writer.cancel()


class TestLedgerActions:
    """Tests for transaction actions and change propagation."""

    def test_burst_of_changes_is_written_once(self, service, storage, draft):
        groceries = service.add_transaction(draft("200", description="Groceries"))
        service.add_transaction(draft("1000", type=TransactionType.INCOME, description="Salary"))
        service.delete_transaction(groceries.id)

        assert service.state.cash_balance == Decimal("1000")
        assert service.writer.has_pending_write
        assert storage.save_count == 0

        assert asyncio.run(service.flush()) is True
        assert storage.save_count == 1
        assert json.loads(storage.document)["cash_balance"] == "1000"

    def test_sync_burst_saves_once_after_quiet_period(self, ledger, storage, draft):
        gateway = PersistenceGateway(storage)
        service = WalletService(
            ledger=ledger,
            gateway=gateway,
            writer=DebouncedSnapshotWriter(gateway, delay_seconds=0.05),
        )
        for amount in ("10", "20", "30"):
            service.add_transaction(draft(amount))

        deadline = time.monotonic() + 5
        while storage.save_count == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.1)

        assert storage.save_count == 1
        assert json.loads(storage.document)["cash_balance"] == "-60"

    def test_noop_does_not_notify_listener(self, ledger, draft):
        changes = []
        service = WalletService(ledger=ledger, change_listener=changes.append)

        service.add_transaction(draft("10"))
        service.delete_transaction("missing")
        service.pay_installment("missing", "2024-01")
        assert len(changes) == 1

    def test_listener_failure_is_logged_not_raised(self, ledger, draft):
        def broken(state):
            raise RuntimeError("listener bug")

        service = WalletService(ledger=ledger, change_listener=broken)
        service.add_transaction(draft("10"))
        assert service.state.cash_balance == Decimal("-10")

    def test_update_transaction(self, service, draft):
        tx = service.add_transaction(draft("100"))
        service.update_transaction(tx.model_copy(update={"amount": Decimal("80")}))
        assert service.state.cash_balance == Decimal("-80")


class TestObligationActions:
    """Tests for the scheduler-backed actions."""

    def test_installment_flow(self, service):
        inst = service.add_installment("Car loan", Decimal("500"), 2, date(2024, 1, 1), "1")
        tx = service.pay_installment(inst.id, "2024-01")
        assert service.pay_installment(inst.id, "2024-01") is None
        assert service.state.cash_balance == Decimal("-500")

        service.delete_transaction(tx.id)
        assert service.installments.next_unpaid_period(inst) == "2024-01"

        service.update_installment(inst.model_copy(update={"name": "Car"}))
        assert service.state.installments[0].name == "Car"
        service.delete_installment(inst.id)
        assert service.state.installments == []

    def test_receivable_flow(self, service):
        rec = service.add_receivable(
            "Rent", Decimal("3000"), "2", date(2024, 1, 1), total_months=12,
        )
        service.collect_receivable(rec.id, "2024-01")
        assert service.state.receivables[0].remaining_months == 11
        assert service.state.cash_balance == Decimal("3000")

        service.update_receivable(rec.model_copy(update={"amount": Decimal("3500")}))
        assert service.state.receivables[0].amount == Decimal("3500")
        assert service.delete_receivable(rec.id) is not None

    def test_certificate_flow(self, service):
        cert = service.add_certificate(
            "NBE", Decimal("100000"), Decimal("12"), date(2024, 1, 1), date(2024, 12, 1), "4",
        )
        service.payout_certificate(cert.id, "2024-02-01")
        redemption = service.redeem_certificate(cert.id, Decimal("100000"))
        assert service.state.cash_balance == Decimal("101000.00")
        assert cert.status == CertificateStatus.REDEEMED

        service.delete_transaction(redemption.id)
        assert cert.status == CertificateStatus.ACTIVE

        service.update_certificate(cert.model_copy(update={"bank_name": "NBE Platinum"}))
        assert service.delete_certificate(cert.id).bank_name == "NBE Platinum"


class TestSettingsActions:
    """Tests for categories, metals and settings."""

    def test_update_pillar_budget(self, service):
        pillar = service.update_pillar_budget("1", Decimal("2500"))
        assert pillar.budget == Decimal("2500")
        assert service.state.audit_logs[0].target_type == "budget"
        assert service.update_pillar_budget("nope", Decimal("1")) is None
        assert service.update_pillar_budget("1", Decimal("-1")) is None

    def test_sub_category_lifecycle(self, service, draft):
        sub = service.add_sub_category("1", "Parking")
        assert sub.pillar_id == "1"
        assert service.add_sub_category("nope", "Ghost") is None

        renamed = service.rename_sub_category(sub.id, "  Garage  ")
        assert renamed.name == "Garage"
        assert renamed.id == sub.id

        service.add_transaction(draft("15", pillar_id="1", sub_category_id=sub.id))
        service.delete_sub_category(sub.id)
        assert all(s.id != sub.id for s in service.state.sub_categories)
        assert service.state.transactions[0].sub_category_id is None
        assert service.state.audit_logs[0].details == "detached from 1 transactions"

    def test_update_metal(self, service):
        gold = service.update_metal(MetalId.GOLD, weight=Decimal("12.5"), price_per_gram=Decimal("3600"))
        assert gold.value == Decimal("45000.0")
        assert service.state.metals[0] is gold
        assert service.update_metal("GOLD", karat=24).karat == 24
        assert service.update_metal("PLATINUM", weight=Decimal("1")) is None

    def test_update_metal_rejects_invalid_weight(self, service):
        with pytest.raises(ValueError):
            service.update_metal(MetalId.SILVER, weight=Decimal("-1"))

    def test_update_investment_settings(self, service):
        settings = InvestmentSettings(enabled=False, threshold_percentage=30, min_days=10)
        service.update_investment_settings(settings)
        assert service.state.investment_settings.enabled is False
        assert service.state.audit_logs[0].target_type == "settings"


class TestDataActions:
    """Tests for reset, import and export."""

    def test_reset_selected(self, service, draft):
        service.add_transaction(draft("10"))
        service.add_installment("Loan", Decimal("100"), 3, date(2024, 1, 1), "1")
        service.update_metal(MetalId.GOLD, weight=Decimal("5"))
        service.update_pillar_budget("1", Decimal("900"))

        entry = service.reset_selected(ResetOptions(transactions=True, metals=True))

        state = service.state
        assert state.transactions == []
        assert state.cash_balance == Decimal("0")
        assert len(state.installments) == 1
        assert all(m.weight == Decimal("0") for m in state.metals)
        assert state.pillars[0].budget == Decimal("900")
        assert state.audit_logs == [entry]
        assert entry.details == "cleared: transactions, metals"

    def test_reset_settings_restores_defaults(self, service):
        service.update_pillar_budget("1", Decimal("900"))
        service.add_sub_category("1", "Parking")
        service.reset_selected(ResetOptions(settings=True))
        assert service.state.pillars[0].budget == Decimal("0")
        assert [s.id for s in service.state.sub_categories] == ["s1", "s2", "s3", "s4", "s5", "s6"]

    def test_empty_reset_still_replaces_log(self, service, draft):
        service.add_transaction(draft("10"))
        service.reset_selected(ResetOptions())
        assert len(service.state.audit_logs) == 1
        assert service.state.audit_logs[0].action == AuditAction.RESET
        assert service.state.cash_balance == Decimal("-10")

    def test_export_import_round_trip(self, service, draft):
        service.add_transaction(draft("250"))
        document = service.export_snapshot()

        other = WalletService(gateway=PersistenceGateway(InMemorySnapshotStorage()))
        imported = other.import_snapshot(document)

        assert imported.cash_balance == Decimal("-250")
        assert other.state is imported
        assert imported.audit_logs[0].action == AuditAction.IMPORT
        assert imported.audit_logs[1].action == AuditAction.ADD

    def test_invalid_import_leaves_state(self, service, draft):
        service.add_transaction(draft("250"))
        before = service.state
        with pytest.raises(InvalidImportFormatError):
            service.import_snapshot('{"cash_balance": 1}')
        assert service.state is before
        assert before.cash_balance == Decimal("-250")

    def test_import_keeps_stored_balance_until_rebuilt(self, service, draft):
        source = WalletService()
        source.add_transaction(draft("300", type=TransactionType.INCOME))
        source.state.cash_balance = Decimal("500")
        document = service.gateway.export_snapshot(source.state)

        imported = service.import_snapshot(document)
        assert imported.cash_balance == Decimal("500")
        assert not imported.is_consistent()

        assert service.rebuild_balance() == Decimal("300")
        assert service.state.cash_balance == Decimal("300")
        entry = service.state.audit_logs[0]
        assert entry.action == AuditAction.UPDATE
        assert entry.details == "500 -> 300"

    def test_rebuild_balance_noop_when_consistent(self, service, draft):
        service.add_transaction(draft("20"))
        logs = len(service.state.audit_logs)
        assert service.rebuild_balance() is None
        assert len(service.state.audit_logs) == logs

    def test_export_filename(self, service):
        assert service.export_filename(date(2024, 1, 2)) == "smart_wallet_backup_2024-01-02.json"

    def test_export_without_gateway_raises(self):
        with pytest.raises(RuntimeError):
            WalletService().export_snapshot()

    def test_load_and_flush(self, storage, draft):
        async def run():
            service = WalletService(gateway=PersistenceGateway(storage))
            await service.load()
            service.add_transaction(draft("10"))
            assert service.writer.has_pending_write
            assert await service.flush() is True
            return service

        asyncio.run(run())
        assert storage.save_count == 1

        reloaded = WalletService(gateway=PersistenceGateway(storage))
        asyncio.run(reloaded.load())
        assert reloaded.state.cash_balance == Decimal("-10")


class TestAdvisoryFlow:
    """Suggestion → validate → explicit confirm."""

    def test_sms_to_confirmed_transaction(self, ledger):
        agent = SmsParsingAgent(model=FakeModel(
            '{"amount": 120, "vendor": "Shell", "type": "EXPENSE", "suggestedPillarId": "1"}'
        ))
        service = WalletService(ledger=ledger, sms_agent=agent)

        suggestion = asyncio.run(service.parse_sms("Card purchase 120 at Shell"))
        assert service.state.transactions == []

        proposed = suggestion.to_draft(sub_category_id="s1")
        assert service.validate_suggestion(proposed).is_valid
        tx = service.confirm_suggestion(proposed)
        assert tx.description == "Shell"
        assert service.state.cash_balance == Decimal("-120")

    def test_confirm_refuses_invalid_draft(self, ledger, draft):
        service = WalletService(ledger=ledger)
        assert service.confirm_suggestion(draft("10", pillar_id="missing")) is None
        assert service.state.transactions == []

    def test_advice_uses_summary(self, ledger):
        service = WalletService(
            ledger=ledger, advice_agent=FinancialAdviceAgent(model=FakeModel("Keep it up."))
        )
        assert asyncio.run(service.get_advice()) == "Keep it up."

    def test_upcoming_uses_configured_horizon(self, ledger):
        service = WalletService(ledger=ledger, upcoming_horizon_days=30)
        service.add_installment("Loan", Decimal("100"), 3, date(2024, 1, 1), "1", payment_day=28)
        assert [e.name for e in service.upcoming(date(2024, 2, 1))] == ["Loan"]


class TestFactory:
    """Tests for create_app_components."""

    def test_in_memory_components(self, monkeypatch):
        monkeypatch.setenv("AUDIT_LOG_LIMIT", "3")
        monkeypatch.setenv("CURRENCY_LABEL", "USD")
        get_settings.cache_clear()
        try:
            service = create_app_components(use_storage=False)
        finally:
            get_settings.cache_clear()

        assert isinstance(service.gateway.storage, InMemorySnapshotStorage)
        assert service.ledger.audit.limit == 3
        assert service.ledger.currency == "USD"

    def test_json_file_components(self, monkeypatch, tmp_path):
        path = tmp_path / "wallet.json"
        monkeypatch.setenv("STORAGE_SNAPSHOT_PATH", str(path))
        get_settings.cache_clear()
        try:
            service = create_app_components()
        finally:
            get_settings.cache_clear()

        service.update_pillar_budget("1", Decimal("100"))
        assert not path.exists()
        asyncio.run(service.flush())
        assert path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
