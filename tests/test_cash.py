"""Tests for manual expenses, other income and transfers."""

from decimal import Decimal

import pytest

from ledger_kernel.selectors.financial_selector import FinancialSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.cash import CashService


@pytest.fixture
def cash(session, tenant_id, clock, chart):
    return CashService(session, tenant_id, clock=clock, template=chart)


class TestManualExpense:

    def test_expense_posts_to_category_account(self, cash, session, tenant_id):
        outcome = cash.record_expense("rent", Decimal("2500000"), "March rent", payment_method="bank_transfer")

        ledger = LedgerSelector(session, tenant_id)
        assert ledger.account_balance("5220") == Decimal("2500000")
        assert ledger.account_balance("1112") == Decimal("-2500000")
        assert outcome.records[0].record_type == "expense"
        assert outcome.records[0].reference == outcome.entry.reference

    def test_unknown_category_is_miscellaneous(self, cash, session, tenant_id):
        cash.record_expense("parking", Decimal("5000"), "Parking")
        assert LedgerSelector(session, tenant_id).account_balance("5290") == Decimal("5000")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_amount_must_be_positive(self, cash, amount):
        with pytest.raises(ValueError):
            cash.record_expense("rent", amount, "Nothing")


class TestManualIncome:

    def test_income_credits_other_revenue(self, cash, session, tenant_id):
        cash.record_income(Decimal("75000"), "Scrap sale")

        ledger = LedgerSelector(session, tenant_id)
        assert ledger.account_balance("4300") == Decimal("-75000")
        assert ledger.account_balance("1111") == Decimal("75000")
        assert FinancialSelector(session, tenant_id).get_summary().total_income == Decimal("75000")


class TestTransfer:

    def test_transfer_moves_between_settlement_accounts(self, cash, session, tenant_id):
        outcome = cash.record_transfer(Decimal("1000000"), "cash", "bank", description="Deposit")

        ledger = LedgerSelector(session, tenant_id)
        assert ledger.account_balance("1112") == Decimal("1000000")
        assert ledger.account_balance("1111") == Decimal("-1000000")
        assert outcome.records[0].record_type == "transfer"
        assert outcome.records[0].tags == ["source:cash", "destination:bank"]

    def test_transfer_does_not_touch_profit(self, cash, session, tenant_id):
        cash.record_transfer(Decimal("1000000"), "cash", "bank")
        summary = FinancialSelector(session, tenant_id).get_summary()
        assert summary.net_profit == Decimal("0")
        assert summary.transfer_total == Decimal("1000000")

    def test_same_account_rejected(self, cash):
        # bank and credit_card settle to the same account
        with pytest.raises(ValueError):
            cash.record_transfer(Decimal("100"), "bank", "credit_card")
