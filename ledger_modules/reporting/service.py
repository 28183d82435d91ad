"""
Reporting Aggregators (``ledger_modules.reporting.service``).

Responsibility
--------------
Read-only period summaries for dashboards and the reports screen:
financial (record feed), sales (POS transactions), service (tickets),
inventory (stock and valuation) and the dashboard tiles.  Ledger-based
statements (income statement, trial balance, balance sheet) come from
``LedgerSelector``.

Invariants
----------
- Reports never write.
- Every date window is inclusive at both ends.
- Inventory value uses average cost, then last purchase price, then
  selling price.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, round_money, to_decimal
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.models.financial_record import FinancialRecord
from ledger_kernel.selectors.financial_selector import (
    FinancialCategories,
    FinancialSelector,
    FinancialSummary,
    TransactionFilter,
)
from ledger_kernel.selectors.ledger_selector import (
    BalanceSheet,
    IncomeStatement,
    LedgerSelector,
    TrialBalance,
)
from ledger_modules.catalog.orm import Product, SaleTransaction, ServiceTicket
from ledger_modules.catalog.reader import CatalogReader, valuation_cost
from ledger_modules.service_ticket.models import FINAL_STATUSES, normalize_service_status


@dataclass(frozen=True)
class FinancialReport:
    summary: FinancialSummary
    records: tuple[FinancialRecord, ...]

    @property
    def total_income(self) -> Decimal:
        return self.summary.total_income

    @property
    def total_expense(self) -> Decimal:
        return self.summary.total_expense

    @property
    def profit(self) -> Decimal:
        return self.summary.net_profit


@dataclass(frozen=True)
class SalesReport:
    total_sales: Decimal
    transactions: tuple[SaleTransaction, ...]


@dataclass(frozen=True)
class ServiceReport:
    total_services: int
    tickets: tuple[ServiceTicket, ...]


@dataclass(frozen=True)
class ProductValuation:
    product: Product
    unit_cost: Decimal
    cost_source: str

    @property
    def value(self) -> Decimal:
        return self.unit_cost * self.product.stock


@dataclass(frozen=True)
class InventoryReport:
    total_products: int
    low_stock_products: tuple[Product, ...]
    valuations: tuple[ProductValuation, ...] = field(default_factory=tuple)

    @property
    def low_stock_count(self) -> int:
        return len(self.low_stock_products)

    @property
    def inventory_value(self) -> Decimal:
        return round_money(sum((v.value for v in self.valuations), ZERO))


@dataclass(frozen=True)
class DashboardStats:
    today_sales: Decimal
    active_services: int
    low_stock_count: int
    monthly_profit: Decimal


class ReportingService:
    """Period summaries for one tenant."""

    def __init__(self, session: Session, tenant_id: str, clock: Clock | None = None):
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._financial = FinancialSelector(session, tenant_id)
        self._ledger = LedgerSelector(session, tenant_id)

    def financial_report(self, start: datetime, end: datetime) -> FinancialReport:
        summary = self._financial.get_summary(start, end)
        records = self._financial.get_transactions(TransactionFilter(start=start, end=end))
        return FinancialReport(summary=summary, records=tuple(records))

    def _sales(self, start: datetime, end: datetime | None = None) -> list[SaleTransaction]:
        stmt = select(SaleTransaction).where(
            SaleTransaction.tenant_id == self._tenant_id,
            SaleTransaction.transaction_type == "sale",
            SaleTransaction.created_at >= start,
        )
        if end is not None:
            stmt = stmt.where(SaleTransaction.created_at <= end)
        return list(self._session.execute(stmt.order_by(SaleTransaction.created_at.desc())).scalars())

    def sales_report(self, start: datetime, end: datetime) -> SalesReport:
        sales = self._sales(start, end)
        total = sum((to_decimal(s.total_amount) for s in sales), ZERO)
        return SalesReport(total_sales=round_money(total), transactions=tuple(sales))

    def service_report(self, start: datetime, end: datetime) -> ServiceReport:
        tickets = list(
            self._session.execute(
                select(ServiceTicket)
                .where(
                    ServiceTicket.tenant_id == self._tenant_id,
                    ServiceTicket.created_at >= start,
                    ServiceTicket.created_at <= end,
                )
                .order_by(ServiceTicket.created_at.desc())
            ).scalars()
        )
        return ServiceReport(total_services=len(tickets), tickets=tuple(tickets))

    def inventory_report(self) -> InventoryReport:
        products = CatalogReader(self._session, self._tenant_id).active_products()
        low_stock = tuple(p for p in products if p.stock <= p.min_stock)
        valuations = []
        for product in products:
            cost, source = valuation_cost(product)
            valuations.append(ProductValuation(product=product, unit_cost=cost, cost_source=source))
        return InventoryReport(
            total_products=len(products),
            low_stock_products=low_stock,
            valuations=tuple(valuations),
        )

    def dashboard_stats(self, now: datetime | None = None) -> DashboardStats:
        """
        Today's sales, open tickets, low-stock count and month-to-date profit.

        "Today" and "this month" are calendar periods of ``now`` in its own
        timezone (UTC from the default clock).
        """
        now = now or self._clock.now()
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        start_of_month = start_of_day.replace(day=1)

        today_sales = sum((to_decimal(s.total_amount) for s in self._sales(start_of_day)), ZERO)

        statuses = self._session.execute(
            select(ServiceTicket.status).where(ServiceTicket.tenant_id == self._tenant_id)
        ).scalars()
        active = sum(1 for s in statuses if normalize_service_status(s) not in FINAL_STATUSES)

        inventory = self.inventory_report()
        month = self._financial.get_summary(start_of_month, now)
        return DashboardStats(
            today_sales=round_money(today_sales),
            active_services=active,
            low_stock_count=inventory.low_stock_count,
            monthly_profit=round_money(month.net_profit),
        )

    def income_statement(self, start: datetime | None = None, end: datetime | None = None) -> IncomeStatement:
        return self._ledger.income_statement(start, end)

    def trial_balance(self) -> TrialBalance:
        return self._ledger.trial_balance()

    def balance_sheet(self, as_of: datetime | None = None) -> BalanceSheet:
        return self._ledger.balance_sheet(as_of or self._clock.now())

    def financial_categories(self) -> FinancialCategories:
        return self._financial.get_categories()
