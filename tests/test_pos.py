"""Tests for the POS sale translator."""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.selectors.financial_selector import FinancialSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.catalog.orm import Product
from ledger_modules.pos import PosSale, PosSaleLine, PosSaleService


@pytest.fixture
def pos(session, tenant_id, clock, chart):
    return PosSaleService(session, tenant_id, clock=clock, template=chart)


@pytest.fixture
def phone_case(session, tenant_id):
    product = Product(
        tenant_id=tenant_id,
        sku="CASE-01",
        name="Phone case",
        stock=10,
        min_stock=2,
        average_cost=Decimal("30000"),
        last_purchase_price=Decimal("28000"),
        selling_price=Decimal("50000"),
    )
    session.add(product)
    session.flush()
    return product


def _lines_by_account(entry) -> dict[str, tuple[Decimal, Decimal]]:
    return {line.account.code: (line.debit_amount, line.credit_amount) for line in entry.lines}


class TestPosSale:

    def test_sale_posts_revenue_and_cogs(self, pos, phone_case):
        sale = PosSale(
            transaction_id="trx-1001",
            transaction_number="TRX-1001",
            lines=(PosSaleLine(phone_case.id, 2, Decimal("50000")),),
        )
        outcome = pos.record_sale(sale)

        entry = outcome.entry
        assert outcome.created is True
        assert entry.entry_type == "pos_sale"
        assert entry.total_amount == Decimal("160000")
        lines = _lines_by_account(entry)
        assert lines["1111"] == (Decimal("100000"), Decimal("0"))
        assert lines["5110"] == (Decimal("60000"), Decimal("0"))
        assert lines["4110"] == (Decimal("0"), Decimal("100000"))
        assert lines["1130"] == (Decimal("0"), Decimal("60000"))

        income = outcome.record("sales_revenue")
        expense = outcome.record("cogs")
        assert income.record_type == "income"
        assert income.amount == Decimal("100000")
        assert income.reference_type == "pos_sale"
        assert expense.record_type == "expense"
        assert expense.amount == Decimal("60000")
        assert expense.reference_type == "pos_cogs"
        assert expense.payment_method == "inventory"

    def test_settlement_follows_payment_method(self, pos, phone_case):
        sale = PosSale(
            transaction_id="trx-1002",
            transaction_number="TRX-1002",
            lines=(PosSaleLine(phone_case.id, 1, Decimal("50000")),),
            payment_method="credit_card",
        )
        lines = _lines_by_account(pos.record_sale(sale).entry)
        assert lines["1112"] == (Decimal("50000"), Decimal("0"))
        assert "1111" not in lines

    def test_last_purchase_price_used_without_average_cost(self, pos, phone_case, session):
        phone_case.average_cost = None
        session.flush()
        sale = PosSale("trx-1003", "TRX-1003", (PosSaleLine(phone_case.id, 1, Decimal("50000")),))
        assert pos.compute_amounts(sale).cogs == Decimal("28000")

    def test_line_cost_overrides_catalog(self, pos, phone_case):
        sale = PosSale(
            "trx-1004", "TRX-1004", (PosSaleLine(phone_case.id, 3, Decimal("50000"), unit_cost=Decimal("10000")),)
        )
        assert pos.compute_amounts(sale).cogs == Decimal("30000")

    def test_unknown_product_has_no_cogs_line(self, pos):
        sale = PosSale("trx-1005", "TRX-1005", (PosSaleLine(uuid4(), 1, Decimal("20000")),))
        outcome = pos.record_sale(sale)

        assert set(_lines_by_account(outcome.entry)) == {"1111", "4110"}
        assert outcome.record("cogs") is None
        assert len(outcome.records) == 1

    def test_repeated_sale_is_not_posted_twice(self, pos, phone_case, session, tenant_id):
        sale = PosSale("trx-1006", "TRX-1006", (PosSaleLine(phone_case.id, 1, Decimal("50000")),))
        first = pos.record_sale(sale)
        second = pos.record_sale(sale)

        assert second.created is False
        assert second.entry.id == first.entry.id
        assert len(second.records) == 2
        summary = FinancialSelector(session, tenant_id).get_summary()
        assert summary.total_income == Decimal("50000")
        assert summary.transaction_count == 2

    def test_ledger_balances_after_sale(self, pos, phone_case, session, tenant_id):
        pos.record_sale(PosSale("trx-1007", "TRX-1007", (PosSaleLine(phone_case.id, 2, Decimal("50000")),)))
        ledger = LedgerSelector(session, tenant_id)

        assert ledger.trial_balance().is_balanced
        assert ledger.account_balance("1130") == Decimal("-60000")
        statement = ledger.income_statement()
        assert statement.total_revenue == Decimal("100000")
        assert statement.gross_profit == Decimal("40000")

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValueError):
            PosSaleLine(uuid4(), 0, Decimal("1000"))

    def test_sale_logged(self, pos, phone_case, captured_logs):
        pos.record_sale(PosSale("trx-1008", "TRX-1008", (PosSaleLine(phone_case.id, 1, Decimal("50000")),)))
        logged = [r for r in captured_logs() if r["message"] == "pos_sale_recorded"]
        assert logged[0]["revenue"] == "50000.00"
