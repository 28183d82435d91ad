"""
Module: ledger_kernel.selectors.financial_selector
Responsibility: Read-only queries over the financial record feed:
    filtered transaction listings and period summaries with breakdowns.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only records with status "confirmed" are visible.
    - Date windows are inclusive at BOTH ends (created_at >= start and
      created_at <= end).
    - total_income / total_expense count only income / expense rows.
      asset and transfer rows are never counted as profit or loss, so an
      inventory purchase leaves net_profit unchanged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from ledger_kernel.db.types import ZERO, to_decimal
from ledger_kernel.domain.codes import RecordStatus, RecordType
from ledger_kernel.models.financial_record import FinancialRecord
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class TransactionFilter:
    record_type: str | None = None
    category: str | None = None
    reference_type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int | None = None


@dataclass
class CategoryBreakdown:
    income: Decimal = ZERO
    expense: Decimal = ZERO
    count: int = 0


@dataclass
class FinancialSummary:
    """Totals and breakdowns for a window of confirmed records."""

    total_income: Decimal
    total_expense: Decimal
    transaction_count: int
    categories: dict[str, CategoryBreakdown] = field(default_factory=dict)
    payment_methods: dict[str, Decimal] = field(default_factory=dict)
    asset_total: Decimal = ZERO
    transfer_total: Decimal = ZERO

    @property
    def net_profit(self) -> Decimal:
        return self.total_income - self.total_expense


@dataclass(frozen=True)
class FinancialCategories:
    income: list[str]
    expense: list[str]


def _v(item) -> str | None:
    return None if item is None else str(getattr(item, "value", item))


class FinancialSelector(BaseSelector):
    """Reads the tenant's financial record feed."""

    def _window(self, stmt, start: datetime | None, end: datetime | None):
        if start is not None:
            stmt = stmt.where(FinancialRecord.created_at >= start)
        if end is not None:
            stmt = stmt.where(FinancialRecord.created_at <= end)
        return stmt

    def _confirmed(self):
        return select(FinancialRecord).where(
            FinancialRecord.tenant_id == self.tenant_id,
            FinancialRecord.status == RecordStatus.CONFIRMED.value,
        )

    def get_transactions(self, filters: TransactionFilter | None = None) -> list[FinancialRecord]:
        """Confirmed records matching ``filters``, newest first."""
        filters = filters or TransactionFilter()
        stmt = self._confirmed()
        if filters.record_type is not None:
            stmt = stmt.where(FinancialRecord.record_type == _v(filters.record_type))
        if filters.category is not None:
            stmt = stmt.where(FinancialRecord.category == _v(filters.category))
        if filters.reference_type is not None:
            stmt = stmt.where(FinancialRecord.reference_type == _v(filters.reference_type))
        stmt = self._window(stmt, filters.start, filters.end)
        stmt = stmt.order_by(FinancialRecord.created_at.desc())
        if filters.limit is not None:
            stmt = stmt.limit(filters.limit)
        return list(self.session.execute(stmt).scalars())

    def get_summary(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> FinancialSummary:
        """
        Summarise confirmed records in [start, end].

        Breakdowns are computed in Python over the window's rows so the
        same code runs on PostgreSQL and SQLite.
        """
        rows = self.session.execute(self._window(self._confirmed(), start, end)).scalars()

        summary = FinancialSummary(total_income=ZERO, total_expense=ZERO, transaction_count=0)
        for record in rows:
            amount = to_decimal(record.amount)
            summary.transaction_count += 1
            bucket = summary.categories.setdefault(record.category, CategoryBreakdown())
            bucket.count += 1

            if record.record_type == RecordType.INCOME.value:
                summary.total_income += amount
                bucket.income += amount
            elif record.record_type == RecordType.EXPENSE.value:
                summary.total_expense += amount
                bucket.expense += amount
            elif record.record_type == RecordType.ASSET.value:
                summary.asset_total += amount
            elif record.record_type == RecordType.TRANSFER.value:
                summary.transfer_total += amount

            if record.payment_method:
                summary.payment_methods[record.payment_method] = (
                    summary.payment_methods.get(record.payment_method, ZERO) + amount
                )
        return summary

    def get_categories(self) -> FinancialCategories:
        """Distinct categories the feed has used, split by income and expense."""
        rows = self.session.execute(
            select(FinancialRecord.record_type, FinancialRecord.category)
            .where(
                FinancialRecord.tenant_id == self.tenant_id,
                FinancialRecord.record_type.in_([RecordType.INCOME.value, RecordType.EXPENSE.value]),
            )
            .distinct()
            .order_by(FinancialRecord.category)
        ).all()
        return FinancialCategories(
            income=[category for record_type, category in rows if record_type == RecordType.INCOME.value],
            expense=[category for record_type, category in rows if record_type == RecordType.EXPENSE.value],
        )
