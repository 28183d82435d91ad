"""Tests for the reporting aggregators."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_modules.catalog.orm import Product, SaleTransaction, ServiceTicket
from ledger_modules.cash import CashService
from ledger_modules.pos import PosSale, PosSaleLine, PosSaleService
from ledger_modules.reporting import ReportingService

NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
MARCH = (datetime(2024, 3, 1, tzinfo=timezone.utc), datetime(2024, 3, 31, 23, 59, 59, tzinfo=timezone.utc))


@pytest.fixture
def reports(session, tenant_id, clock):
    return ReportingService(session, tenant_id, clock=clock)


def _product(tenant_id, sku, stock, min_stock, **costs) -> Product:
    return Product(tenant_id=tenant_id, sku=sku, name=sku, stock=stock, min_stock=min_stock, **costs)


def _sale(tenant_id, number, amount, at, transaction_type="sale") -> SaleTransaction:
    return SaleTransaction(
        tenant_id=tenant_id,
        transaction_number=number,
        transaction_type=transaction_type,
        total_amount=Decimal(amount),
        payment_method="cash",
        created_at=at,
    )


class TestSalesReport:

    def test_sales_only_and_inclusive(self, reports, session, tenant_id):
        start, end = MARCH
        session.add_all([
            _sale(tenant_id, "S-1", "100000", start),
            _sale(tenant_id, "S-2", "50000", end),
            _sale(tenant_id, "S-3", "70000", end + timedelta(seconds=1)),
            _sale(tenant_id, "P-1", "900000", start, transaction_type="purchase"),
            _sale("globex", "S-1", "123", start),
        ])
        session.flush()

        report = reports.sales_report(start, end)
        assert report.total_sales == Decimal("150000")
        assert [t.transaction_number for t in report.transactions] == ["S-2", "S-1"]


class TestServiceReport:

    def test_counts_tickets_in_window(self, reports, session, tenant_id):
        start, end = MARCH
        session.add_all([
            ServiceTicket(tenant_id=tenant_id, ticket_number="SRV-1", created_at=start),
            ServiceTicket(tenant_id=tenant_id, ticket_number="SRV-2", created_at=end),
            ServiceTicket(tenant_id=tenant_id, ticket_number="SRV-3", created_at=start - timedelta(days=1)),
        ])
        session.flush()

        report = reports.service_report(start, end)
        assert report.total_services == 2


class TestInventoryReport:

    def test_low_stock_and_valuation(self, reports, session, tenant_id):
        session.add_all([
            _product(tenant_id, "A", stock=2, min_stock=2, average_cost=Decimal("10000")),
            _product(tenant_id, "B", stock=10, min_stock=3, last_purchase_price=Decimal("5000")),
            _product(tenant_id, "C", stock=4, min_stock=1, selling_price=Decimal("7000")),
            _product(tenant_id, "D", stock=0, min_stock=0, is_active=False, average_cost=Decimal("1")),
        ])
        session.flush()

        report = reports.inventory_report()
        assert report.total_products == 3
        assert [p.sku for p in report.low_stock_products] == ["A"]
        assert report.inventory_value == Decimal("20000") + Decimal("50000") + Decimal("28000")
        sources = {v.product.sku: v.cost_source for v in report.valuations}
        assert sources == {"A": "average_cost", "B": "last_purchase_price", "C": "selling_price"}


class TestFinancialReport:

    def test_profit_from_records(self, reports, session, tenant_id, clock, chart):
        PosSaleService(session, tenant_id, clock=clock, template=chart).record_sale(
            PosSale("trx-1", "TRX-1", (PosSaleLine(uuid4(), 1, Decimal("80000"), unit_cost=Decimal("30000")),))
        )
        CashService(session, tenant_id, clock=clock, template=chart).record_expense(
            "utilities", Decimal("20000"), "Electricity"
        )

        report = reports.financial_report(*MARCH)
        assert report.total_income == Decimal("80000")
        assert report.total_expense == Decimal("50000")
        assert report.profit == Decimal("30000")
        assert len(report.records) == 3

        statement = reports.income_statement()
        assert statement.net_income == Decimal("30000")
        assert reports.trial_balance().is_balanced


class TestDashboard:

    def test_dashboard_tiles(self, reports, session, tenant_id, clock, chart):
        session.add_all([
            _sale(tenant_id, "S-1", "40000", NOW.replace(hour=9)),
            _sale(tenant_id, "S-0", "99000", NOW - timedelta(days=1)),
            ServiceTicket(tenant_id=tenant_id, ticket_number="SRV-1", status="in-progress"),
            ServiceTicket(tenant_id=tenant_id, ticket_number="SRV-2", status="menunggu-sparepart"),
            ServiceTicket(tenant_id=tenant_id, ticket_number="SRV-3", status="selesai"),
            ServiceTicket(tenant_id=tenant_id, ticket_number="SRV-4", status="cancelled"),
            _product(tenant_id, "LOW", stock=1, min_stock=5),
        ])
        session.flush()
        CashService(session, tenant_id, clock=clock, template=chart).record_income(Decimal("60000"), "Deposit refund")

        stats = reports.dashboard_stats(NOW)
        assert stats.today_sales == Decimal("40000")
        assert stats.active_services == 2
        assert stats.low_stock_count == 1
        assert stats.monthly_profit == Decimal("60000")


class TestBalanceSheet:

    def _post_activity(self, session, tenant_id, clock, chart):
        PosSaleService(session, tenant_id, clock=clock, template=chart).record_sale(
            PosSale("trx-1", "TRX-1", (PosSaleLine(uuid4(), 1, Decimal("80000"), unit_cost=Decimal("30000")),))
        )
        CashService(session, tenant_id, clock=clock, template=chart).record_expense(
            "utilities", Decimal("20000"), "Electricity"
        )

    def test_assets_equal_liabilities_and_equity(self, reports, session, tenant_id, clock, chart):
        self._post_activity(session, tenant_id, clock, chart)

        sheet = reports.balance_sheet()
        assert sheet.current_earnings == Decimal("30000")
        assert sheet.total_assets == Decimal("30000")
        assert sheet.total_liabilities == Decimal("0")
        assert {"cash", "inventory"} <= set(sheet.assets)
        assert sheet.is_balanced

    def test_as_of_excludes_later_entries(self, reports, session, tenant_id, clock, chart):
        self._post_activity(session, tenant_id, clock, chart)

        sheet = reports.balance_sheet(datetime(2024, 2, 29, tzinfo=timezone.utc))
        assert sheet.assets == {}
        assert sheet.total_equity == Decimal("0")


class TestFinancialCategories:

    def test_income_and_expense_categories(self, reports, session, tenant_id, clock, chart):
        PosSaleService(session, tenant_id, clock=clock, template=chart).record_sale(
            PosSale("trx-1", "TRX-1", (PosSaleLine(uuid4(), 1, Decimal("80000"), unit_cost=Decimal("30000")),))
        )
        cash = CashService(session, tenant_id, clock=clock, template=chart)
        cash.record_expense("utilities", Decimal("20000"), "Electricity")
        cash.record_expense("utilities", Decimal("5000"), "Water")

        categories = reports.financial_categories()
        assert categories.income == ["sales_revenue"]
        assert categories.expense == ["cogs", "utilities"]
