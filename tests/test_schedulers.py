"""Tests for period ladders and the three obligation schedulers."""

import pytest
from datetime import date
from decimal import Decimal

from smart_wallet.models import (
    AuditAction,
    CertificateStatus,
    PayoutCycle,
    SourceKind,
    SourceType,
    TransactionType,
)
from smart_wallet.schedulers import (
    CertificateScheduler,
    InstallmentScheduler,
    ReceivableScheduler,
)
from smart_wallet.schedulers.base import ObligationScheduler
from smart_wallet.schedulers.periods import (
    add_months,
    cycle_ladder,
    first_unpaid,
    monthly_ladder,
    open_monthly_ladder,
    period_label,
)


class TestPeriods:
    """Tests for calendar arithmetic and ladders."""

    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    def test_steps_do_not_drift(self):
        """Each step is computed from the start, so Feb clamping does not stick."""
        ladder = cycle_ladder(date(2024, 1, 31), date(2024, 5, 31), 1)
        assert ladder == ["2024-02-29", "2024-03-31", "2024-04-30", "2024-05-31"]

    def test_monthly_ladder(self):
        assert monthly_ladder(date(2024, 11, 20), 3) == ["2024-11", "2024-12", "2025-01"]

    def test_open_monthly_ladder_runs_to_today(self):
        ladder = open_monthly_ladder(date(2024, 1, 20), date(2024, 4, 2))
        assert ladder == ["2024-01", "2024-02", "2024-03", "2024-04"]

    def test_first_unpaid(self):
        assert first_unpaid(["a", "b", "c"], ["a", "c"]) == "b"
        assert first_unpaid(["a"], ["a"]) is None

    def test_cycle_ladder_rejects_zero_cycle(self):
        with pytest.raises(ValueError):
            cycle_ladder(date(2024, 1, 1), date(2024, 12, 1), 0)

    def test_period_label(self):
        assert period_label("2024-02") == "Feb 2024"
        assert period_label("2024-06-01") == "Jun 2024"
        assert period_label("garbage") == "garbage"


class TestObligationScheduler:
    """Tests for the shared scheduler base."""

    def test_base_cannot_be_instantiated(self, ledger):
        with pytest.raises(TypeError):
            ObligationScheduler(ledger)

    def test_subclass_must_name_its_registry(self, ledger):
        class NoRegistry(ObligationScheduler):
            pass

        with pytest.raises(TypeError):
            NoRegistry(ledger)


class TestInstallmentScheduler:
    """Tests for installment registration, payment and reversal."""

    @pytest.fixture
    def scheduler(self, ledger):
        return InstallmentScheduler(ledger)

    @pytest.fixture
    def installment(self, scheduler, state):
        return scheduler.add(
            state, "Car loan", Decimal("500"), 3, date(2024, 1, 15), "1",
            sub_category_id="s1", payment_day=15,
        )

    def test_add_registers_and_audits(self, installment, state):
        assert installment.total_amount == Decimal("1500")
        assert installment.remaining_months == 3
        assert state.installments == [installment]
        assert state.audit_logs[0].action == AuditAction.ADD
        assert state.audit_logs[0].target_type == "installment"

    def test_ladder(self, scheduler, installment):
        assert scheduler.period_ladder(installment) == ["2024-01", "2024-02", "2024-03"]
        assert scheduler.next_unpaid_period(installment) == "2024-01"

    def test_pay_period_posts_expense(self, scheduler, installment, state, notifications):
        tx = scheduler.pay_period(state, installment.id, "2024-01")

        assert tx.type == TransactionType.EXPENSE
        assert tx.amount == Decimal("500")
        assert tx.description == "Installment payment: Car loan (Jan 2024)"
        assert tx.is_auto is True
        assert tx.source_type == SourceType.INSTALLMENT
        assert tx.source_kind == SourceKind.PERIOD
        assert tx.source_month == "2024-01"
        assert tx.sub_category_id == "s1"
        assert installment.remaining_months == 2
        assert installment.last_payment_date is not None
        assert state.cash_balance == Decimal("-500")
        assert notifications[-1].title == "Paid"

    def test_pay_all_then_reopen(self, scheduler, installment, state):
        """After paying every period remaining is 0; deleting one reopens it."""
        txs = [
            scheduler.pay_period(state, installment.id, key)
            for key in scheduler.period_ladder(installment)
        ]
        assert installment.remaining_months == 0
        assert scheduler.next_unpaid_period(installment) is None
        assert scheduler.pay_period(state, installment.id, "2024-04") is None

        scheduler._ledger.delete_transaction(state, txs[1].id)
        assert installment.remaining_months == 1
        assert installment.paid_months == ["2024-01", "2024-03"]
        assert scheduler.next_unpaid_period(installment) == "2024-02"
        assert state.cash_balance == Decimal("-1000")

    def test_paying_same_period_twice_is_noop(self, scheduler, installment, state):
        scheduler.pay_period(state, installment.id, "2024-01")
        assert scheduler.pay_period(state, installment.id, "2024-01") is None
        assert state.cash_balance == Decimal("-500")
        assert len(state.transactions) == 1

    def test_pay_unknown_installment_is_noop(self, scheduler, state):
        assert scheduler.pay_period(state, "missing", "2024-01") is None
        assert state.transactions == []

    def test_delete_keeps_posted_transactions(self, scheduler, installment, state):
        tx = scheduler.pay_period(state, installment.id, "2024-01")
        scheduler.delete(state, installment.id)

        assert state.installments == []
        assert state.transactions == [tx]
        assert state.audit_logs[0].action == AuditAction.DELETE

        # Reversing after the obligation is gone only restores the balance
        scheduler._ledger.delete_transaction(state, tx.id)
        assert state.cash_balance == Decimal("0")

    def test_update_replaces_record(self, scheduler, installment, state):
        renamed = installment.model_copy(update={"name": "Car loan (BMW)"})
        assert scheduler.update(state, renamed) is renamed
        assert state.installments[0].name == "Car loan (BMW)"
        assert state.audit_logs[0].action == AuditAction.UPDATE

    def test_update_unknown_is_noop(self, scheduler, installment, state):
        stranger = installment.model_copy(update={"id": "other"})
        assert scheduler.update(state, stranger) is None


class TestReceivableScheduler:
    """Tests for receivable collection in its three shapes."""

    @pytest.fixture
    def scheduler(self, ledger):
        return ReceivableScheduler(ledger)

    def test_bounded_receivable(self, scheduler, state):
        receivable = scheduler.add(
            state, "Flat rent", Decimal("3000"), "2", date(2024, 1, 5), total_months=3,
        )
        assert receivable.remaining_months == 3
        assert receivable.end_date == date(2024, 3, 5)
        assert scheduler.period_ladder(receivable) == ["2024-01", "2024-02", "2024-03"]

    def test_collect_records_collect_then_add(self, scheduler, state):
        """COLLECT is written first, so the transaction's ADD is newest."""
        receivable = scheduler.add(
            state, "Flat rent", Decimal("3000"), "2", date(2024, 1, 5), total_months=3,
        )
        tx = scheduler.collect(state, receivable.id, "2024-01", today=date(2024, 1, 10))

        assert tx.type == TransactionType.INCOME
        assert tx.description == "Collection: Flat rent (Jan 2024)"
        assert tx.source_month == "2024-01"
        assert receivable.remaining_months == 2
        assert receivable.is_collected_this_month is True
        assert state.cash_balance == Decimal("3000")
        assert [e.action for e in state.audit_logs[:2]] == [AuditAction.ADD, AuditAction.COLLECT]

    def test_collect_defaults_to_current_month(self, scheduler, state):
        receivable = scheduler.add(state, "Side job", Decimal("800"), "4", date(2024, 1, 1))
        tx = scheduler.collect(state, receivable.id, today=date(2024, 3, 10))

        assert tx.source_month == "2024-03"
        assert tx.description == "Collection: Side job"
        assert scheduler.collect(state, receivable.id, today=date(2024, 3, 20)) is None
        assert state.cash_balance == Decimal("800")

    def test_collect_past_period_keeps_current_flag(self, scheduler, state):
        receivable = scheduler.add(state, "Side job", Decimal("800"), "4", date(2024, 1, 1))
        scheduler.collect(state, receivable.id, "2024-01", today=date(2024, 3, 10))
        assert receivable.is_collected_this_month is False
        assert scheduler.next_unpaid_period(receivable, date(2024, 3, 10)) == "2024-02"

    def test_bounded_completion(self, scheduler, state):
        receivable = scheduler.add(
            state, "Loan back", Decimal("100"), "5", date(2024, 1, 1), total_months=1,
        )
        scheduler.collect(state, receivable.id, "2024-01")
        assert receivable.is_completed is True
        assert scheduler.collect(state, receivable.id, "2024-02") is None
        assert scheduler.next_unpaid_period(receivable) is None

    def test_one_time_receivable(self, scheduler, state):
        receivable = scheduler.add(
            state, "Refund", Decimal("250"), "5", date(2024, 1, 1), is_recurring=False,
        )
        assert scheduler.period_ladder(receivable) == []
        assert scheduler.next_unpaid_period(receivable, date(2024, 2, 1)) == "2024-02"

        scheduler.collect(state, receivable.id, today=date(2024, 2, 1))
        assert receivable.is_completed is True
        assert scheduler.collect(state, receivable.id, today=date(2024, 3, 1)) is None
        assert scheduler.next_unpaid_period(receivable) is None

    def test_total_months_ignored_for_one_time(self, scheduler, state):
        receivable = scheduler.add(
            state, "Refund", Decimal("250"), "5", date(2024, 1, 1),
            is_recurring=False, total_months=4,
        )
        assert receivable.total_months is None
        assert receivable.remaining_months is None

    def test_reversal_reopens_period(self, scheduler, state):
        receivable = scheduler.add(
            state, "Flat rent", Decimal("3000"), "2", date(2024, 1, 5), total_months=3,
        )
        tx = scheduler.collect(state, receivable.id, "2024-01", today=date(2024, 1, 10))

        scheduler._ledger.delete_transaction(state, tx.id)
        assert receivable.paid_months == []
        assert receivable.remaining_months == 3
        assert receivable.is_collected_this_month is False
        assert state.cash_balance == Decimal("0")


class TestCertificateScheduler:
    """Tests for certificate payouts and redemption."""

    @pytest.fixture
    def scheduler(self, ledger):
        return CertificateScheduler(ledger)

    @pytest.fixture
    def certificate(self, scheduler, state):
        return scheduler.add(
            state, "NBE", Decimal("100000"), Decimal("12"),
            date(2024, 1, 1), date(2024, 12, 1), "4",
        )

    def test_monthly_ladder_excludes_start(self, scheduler, certificate):
        """2024-01-01 → 2024-12-01 monthly has 11 payouts, none on the start date."""
        ladder = scheduler.period_ladder(certificate)
        assert len(ladder) == 11
        assert "2024-01-01" not in ladder
        assert ladder[0] == "2024-02-01"
        assert ladder[-1] == "2024-12-01"

    def test_quarterly_ladder(self, scheduler, state):
        cert = scheduler.add(
            state, "CIB", Decimal("50000"), Decimal("20"),
            date(2024, 1, 1), date(2025, 1, 1), "4", payout_cycle=PayoutCycle.QUARTERLY,
        )
        assert scheduler.period_ladder(cert) == [
            "2024-04-01", "2024-07-01", "2024-10-01", "2025-01-01",
        ]

    def test_payout_uses_default_amount(self, scheduler, certificate, state):
        tx = scheduler.payout(state, certificate.id, None, "2024-02-01")

        assert tx.amount == Decimal("1000.00")
        assert tx.source_kind == SourceKind.PAYOUT
        assert tx.source_month == "2024-02-01"
        assert certificate.paid_payouts == ["2024-02-01"]
        assert certificate.last_payout_date is not None
        assert [e.action for e in state.audit_logs[:2]] == [AuditAction.ADD, AuditAction.PAYOUT]
        assert scheduler.next_unpaid_period(certificate) == "2024-03-01"

    def test_payout_twice_is_noop(self, scheduler, certificate, state):
        scheduler.payout(state, certificate.id, Decimal("950"), "2024-02-01")
        assert scheduler.payout(state, certificate.id, Decimal("950"), "2024-02-01") is None
        assert state.cash_balance == Decimal("950")

    def test_redeem_and_reverse(self, scheduler, certificate, state):
        """Redeem → REDEEMED + one INCOME; deleting it → ACTIVE."""
        tx = scheduler.redeem(state, certificate.id, Decimal("98000"))

        assert certificate.status == CertificateStatus.REDEEMED
        assert tx.type == TransactionType.INCOME
        assert tx.source_kind == SourceKind.REDEMPTION
        assert tx.source_month is None
        assert len(state.transactions) == 1
        assert state.audit_logs[1].action == AuditAction.REDEEM
        assert scheduler.next_unpaid_period(certificate) is None

        scheduler._ledger.delete_transaction(state, tx.id)
        assert certificate.status == CertificateStatus.ACTIVE
        assert state.cash_balance == Decimal("0")

    def test_redeemed_certificate_refuses_actions(self, scheduler, certificate, state):
        scheduler.redeem(state, certificate.id, Decimal("100000"))
        assert scheduler.redeem(state, certificate.id, Decimal("100000")) is None
        assert scheduler.payout(state, certificate.id, None, "2024-02-01") is None
        assert len(state.transactions) == 1

    def test_deleting_payout_keeps_status(self, scheduler, certificate, state):
        """Payout and redemption are told apart by kind, not by description."""
        payout = scheduler.payout(state, certificate.id, None, "2024-02-01")
        scheduler.redeem(state, certificate.id, Decimal("100000"))

        scheduler._ledger.delete_transaction(state, payout.id)
        assert certificate.paid_payouts == []
        assert certificate.status == CertificateStatus.REDEEMED

    def test_label_is_bank_name(self, scheduler, certificate, state):
        assert state.audit_logs[-1].target_name == "NBE"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
